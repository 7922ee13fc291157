"""Shared fixtures: a throwaway sqlite database and blob directory per test."""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from eventhub.blob import LocalBlobStore
from eventhub.config import Settings
from eventhub.db import Database
from eventhub.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'eventhub.db'}",
        blob_dir=tmp_path / "blobs",
        log_level="DEBUG",
    )


@pytest.fixture
def database(settings):
    db = Database(settings.database_url)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def blob_store(settings):
    store = LocalBlobStore(settings.blob_dir, settings.blob_container, settings.blob_public_url)
    store.open()
    return store


@pytest.fixture
def app(settings, database, blob_store):
    return create_app(settings, database=database, blob_store=blob_store)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def valid_payload():
    """A submission that passes every rule (event a month from today)."""
    return {
        "title": "PyData Meetup",
        "description": "Lightning talks on dataframes and plotting.",
        "event_date": (date.today() + timedelta(days=30)).isoformat(),
        "start_time": "18:30",
        "end_time": "21:00",
        "location": "Seattle, WA",
        "category": "Networking",
        "contact_email": "organizer@eventhub.io",
        "contact_phone": "+1 206 555 0100",
        "website": "https://eventhub.io/pydata",
        "image_url": "",
    }
