from __future__ import annotations
from typing import Optional
from datetime import date, datetime, time

from sqlalchemy import Date, DateTime, String, Text, Time, func
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base

class SubmittedEvent(Base):
    __tablename__ = "submitted_events"

    id:          Mapped[str]      = mapped_column(String(36), primary_key=True)
    title:       Mapped[str]      = mapped_column(String(200), nullable=False)
    description: Mapped[str]      = mapped_column(String(2000), nullable=False)
    event_date:  Mapped[date]     = mapped_column(Date, nullable=False)
    start_time:  Mapped[time]     = mapped_column(Time, nullable=False)
    end_time:    Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    location:    Mapped[str]      = mapped_column(String(300), nullable=False)
    category:    Mapped[str]      = mapped_column(String(100), nullable=False)
    contact_email: Mapped[Optional[str]] = mapped_column(String(254), nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(32),  nullable=True)
    website:     Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    image_url:   Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at:  Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
