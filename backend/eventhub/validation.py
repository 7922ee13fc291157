# backend/eventhub/validation.py
"""
Validation of untrusted input before it reaches a store.

Submissions are checked with the EventSubmission pydantic model; every
failing field is collected so the client can highlight all of them at once.
Image files are checked on size and declared MIME type only.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Mapping, Optional
import re

from dateutil.parser import isoparse as iso_parse
from email_validator import EmailNotValidError, validate_email
from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError

MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")

TIME_RE = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")

_url_adapter = TypeAdapter(AnyUrl)

# messages for fields that are absent from the payload entirely
REQUIRED_MESSAGES = {
    "title": "Title is required",
    "description": "Description is required",
    "event_date": "Event date is required",
    "start_time": "Start time is required",
    "location": "Location is required",
    "category": "Category is required",
}

# (max length, message) for the bounded text fields
LENGTH_LIMITS = {
    "title": (200, "Title must be 200 characters or less"),
    "description": (2000, "Description must be 2000 characters or less"),
    "location": (300, "Location must be 300 characters or less"),
    "category": (100, "Category must be 100 characters or less"),
    "contact_email": (254, "Email must be 254 characters or less"),
    "contact_phone": (32, "Phone must be 32 characters or less"),
    "website": (300, "Website must be 300 characters or less"),
}

FieldErrors = Dict[str, List[str]]


class SubmissionValidationError(ValueError):
    """A submission failed validation; field_errors maps field -> messages."""

    def __init__(self, field_errors: FieldErrors) -> None:
        super().__init__("Invalid event submission")
        self.field_errors = field_errors


class ImageValidationError(ValueError):
    """An uploaded file is too large or of a type we do not accept."""


def _fail(message: str) -> PydanticCustomError:
    return PydanticCustomError("submission", message)


def _parse_instant(value: Any) -> datetime:
    """Date-only values mean midnight UTC; naive datetimes are UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        dt = iso_parse(value.strip())
    else:
        raise ValueError("not a date")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class EventSubmission(BaseModel):
    """A submission that passed validation and is ready to be persisted."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore", frozen=True)

    title: str
    description: str
    event_date: date
    start_time: time
    end_time: Optional[time] = None
    location: str
    category: str
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator(
        "contact_email", "contact_phone", "website", "image_url", mode="before"
    )
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("title", "description", "location", "category", "contact_phone")
    @classmethod
    def _bounded_text(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if v is None:
            return v
        if not v:
            raise _fail(REQUIRED_MESSAGES[info.field_name])
        limit, message = LENGTH_LIMITS[info.field_name]
        if len(v) > limit:
            raise _fail(message)
        return v

    @field_validator("event_date", mode="before")
    @classmethod
    def _future_date(cls, v: Any, info: ValidationInfo) -> date:
        try:
            instant = _parse_instant(v)
        except (ValueError, OverflowError):
            raise _fail("Event date must be a valid date")
        now = (info.context or {}).get("now") or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if instant <= now:
            raise _fail("Event date must be in the future")
        return instant.date()

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _clock_time(cls, v: Any, info: ValidationInfo) -> Any:
        if info.field_name == "end_time" and (v is None or (isinstance(v, str) and not v.strip())):
            return None
        if isinstance(v, time):
            return v
        if not isinstance(v, str) or not TIME_RE.match(v.strip()):
            label = "Start time" if info.field_name == "start_time" else "End time"
            raise _fail(f"{label} must be in HH:mm format")
        return time.fromisoformat(v.strip())

    @field_validator("contact_email")
    @classmethod
    def _email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v) > LENGTH_LIMITS["contact_email"][0]:
            raise _fail(LENGTH_LIMITS["contact_email"][1])
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError:
            raise _fail("Invalid email format")
        return v

    @field_validator("website")
    @classmethod
    def _website(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v) > LENGTH_LIMITS["website"][0]:
            raise _fail(LENGTH_LIMITS["website"][1])
        try:
            _url_adapter.validate_python(v)
        except ValidationError:
            raise _fail("Invalid URL format")
        # keep the caller's spelling; AnyUrl would normalize it
        return v


def _field_errors(exc: ValidationError) -> FieldErrors:
    out: FieldErrors = {}
    for err in exc.errors(include_url=False):
        field = str(err["loc"][0]) if err["loc"] else "__root__"
        if err["type"] == "missing":
            message = REQUIRED_MESSAGES.get(field, "This field is required")
        elif err["type"] == "submission":
            message = err["msg"]
        elif err["type"] in ("string_type", "model_type"):
            message = "Must be text"
        else:
            message = err["msg"]
        out.setdefault(field, []).append(message)
    return out


def validate_event_submission(
    payload: Mapping[str, Any], now: Optional[datetime] = None
) -> EventSubmission:
    """
    Validate an untrusted submission payload.

    Returns the normalized EventSubmission, or raises
    SubmissionValidationError carrying every field that failed.
    `now` defaults to the current UTC instant; event_date must be
    strictly later than it.
    """
    if not isinstance(payload, Mapping):
        raise SubmissionValidationError({"__root__": ["Expected a JSON object"]})
    try:
        return EventSubmission.model_validate(dict(payload), context={"now": now})
    except ValidationError as exc:
        raise SubmissionValidationError(_field_errors(exc)) from None


def validate_image_file(size: int, content_type: Optional[str]) -> None:
    """Raise ImageValidationError unless the file may be uploaded.

    Only the declared content type is checked; bytes are not sniffed.
    """
    if size > MAX_IMAGE_BYTES:
        raise ImageValidationError(
            f"File size must be less than 5MB (current: {size / 1024 / 1024:.2f}MB)"
        )
    if (content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise ImageValidationError("Only JPEG, PNG, and WebP images are allowed")
