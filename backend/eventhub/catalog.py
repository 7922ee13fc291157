# backend/eventhub/catalog.py
"""
Read side: the seeded event listing and its filter / sort pipeline.

The pipeline is always filter first, then sort. Both steps are pure and
return new lists; input order is preserved wherever the key ties.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import FrozenSet, Iterable, List, Sequence
import json
import unicodedata

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

SEED_PATH = Path(__file__).resolve().parent / "data" / "events.json"


class EventCategory(str, Enum):
    CONFERENCE = "Conference"
    WORKSHOP = "Workshop"
    NETWORKING = "Networking"
    TECH_TALK = "Tech Talk"


class PriceFilter(str, Enum):
    ALL = "all"
    FREE = "free"
    PAID = "paid"


class SortKey(str, Enum):
    DATE_ASC = "date-asc"
    DATE_DESC = "date-desc"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"


class Event(BaseModel):
    """A listed event. Category and price are checked on construction."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str
    category: EventCategory
    date: dt.date
    time: str = Field(pattern=r"^\d{2}:\d{2}$")
    location: str
    price: float = Field(ge=0)
    image: str
    featured: bool = False

    @property
    def is_free(self) -> bool:
        return self.price == 0


class FilterState(BaseModel):
    """Which events are visible. An empty category set means every category."""

    model_config = ConfigDict(frozen=True)

    categories: FrozenSet[EventCategory] = frozenset()
    price: PriceFilter = PriceFilter.ALL
    query: str = ""


def matches_search(event: Event, query: str) -> bool:
    if not query:
        return True
    needle = query.lower()
    return (
        needle in event.title.lower()
        or needle in event.description.lower()
        or needle in event.location.lower()
    )


def matches_filters(event: Event, state: FilterState) -> bool:
    if state.categories and event.category not in state.categories:
        return False
    if state.price is PriceFilter.FREE and event.price != 0:
        return False
    if state.price is PriceFilter.PAID and event.price == 0:
        return False
    return matches_search(event, state.query)


def filter_events(events: Iterable[Event], state: FilterState) -> List[Event]:
    return [e for e in events if matches_filters(e, state)]


def collation_key(text: str) -> tuple[str, str]:
    """
    Locale-style ordering key: accents and case are ignored at the
    primary level ("apple" < "Banana" < "cherry", "éclair" next to
    "eclair"), then lowercase-before-uppercase breaks ties.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), unicodedata.normalize("NFC", text).swapcase()


def sort_events(events: Sequence[Event], key: SortKey | str) -> List[Event]:
    """
    Return a new list ordered by `key`.

    sorted() is stable and keeps equal items in input order even with
    reverse=True, so date ties never reshuffle in either direction.
    """
    key = SortKey(key)
    if key is SortKey.DATE_ASC:
        return sorted(events, key=lambda e: e.date)
    if key is SortKey.DATE_DESC:
        return sorted(events, key=lambda e: e.date, reverse=True)
    if key is SortKey.NAME_ASC:
        return sorted(events, key=lambda e: collation_key(e.title))
    return sorted(events, key=lambda e: collation_key(e.title), reverse=True)


def list_events(
    events: Sequence[Event], state: FilterState, key: SortKey | str = SortKey.DATE_ASC
) -> List[Event]:
    """Filter, then sort. The order of the two steps is fixed."""
    return sort_events(filter_events(events, state), key)


def featured_events(events: Iterable[Event], limit: int = 6) -> List[Event]:
    out = [e for e in events if e.featured]
    return out[:limit]


@lru_cache(maxsize=1)
def load_seed_events(path: Path = SEED_PATH) -> tuple[Event, ...]:
    """Load and validate the bundled listing once per process."""
    with path.open(encoding="utf-8") as fh:
        raw = json.load(fh)
    events = TypeAdapter(List[Event]).validate_python(raw)
    ids = [e.id for e in events]
    if len(ids) != len(set(ids)):
        raise ValueError(f"duplicate event ids in {path}")
    return tuple(events)
