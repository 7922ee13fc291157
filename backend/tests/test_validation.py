"""Tests for submission and image-file validation."""

from datetime import date, datetime, time, timezone

import pytest

from eventhub.validation import (
    MAX_IMAGE_BYTES,
    EventSubmission,
    ImageValidationError,
    SubmissionValidationError,
    validate_event_submission,
    validate_image_file,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def payload():
    return {
        "title": "  Rust Workshop  ",
        "description": "Ownership and borrowing, hands on.",
        "event_date": "2026-04-15",
        "start_time": "09:00",
        "location": "Portland, OR",
        "category": "Workshop",
    }


def _errors(payload, now=NOW):
    with pytest.raises(SubmissionValidationError) as excinfo:
        validate_event_submission(payload, now=now)
    return excinfo.value.field_errors


def test_valid_submission_is_normalized(payload):
    payload.update({"end_time": "", "contact_email": "", "website": "   "})
    result = validate_event_submission(payload, now=NOW)

    assert isinstance(result, EventSubmission)
    assert result.title == "Rust Workshop"
    assert result.event_date == date(2026, 4, 15)
    assert result.start_time == time(9, 0)
    assert result.end_time is None
    assert result.contact_email is None
    assert result.website is None


def test_unknown_keys_are_ignored(payload):
    payload["id"] = "client-chosen-id"
    result = validate_event_submission(payload, now=NOW)
    assert not hasattr(result, "id")


def test_empty_title_is_a_title_error(payload):
    payload["title"] = ""
    errors = _errors(payload)
    assert errors == {"title": ["Title is required"]}


def test_whitespace_only_title_is_rejected(payload):
    payload["title"] = "    "
    assert "title" in _errors(payload)


def test_every_failing_field_is_reported():
    errors = _errors({
        "title": "",
        "start_time": "9am",
        "end_time": "25:00",
        "contact_email": "not-an-email",
        "website": "example dot com",
        "contact_phone": "5" * 33,
    })
    assert set(errors) == {
        "title", "description", "event_date", "start_time", "end_time",
        "location", "category", "contact_email", "website", "contact_phone",
    }
    assert errors["description"] == ["Description is required"]
    assert errors["start_time"] == ["Start time must be in HH:mm format"]
    assert errors["end_time"] == ["End time must be in HH:mm format"]
    assert errors["contact_email"] == ["Invalid email format"]
    assert errors["website"] == ["Invalid URL format"]
    assert errors["contact_phone"] == ["Phone must be 32 characters or less"]


@pytest.mark.parametrize("field,limit", [("title", 200), ("description", 2000), ("location", 300)])
def test_length_limits(payload, field, limit):
    payload[field] = "x" * limit
    validate_event_submission(payload, now=NOW)

    payload[field] = "x" * (limit + 1)
    assert field in _errors(payload)


def test_event_date_equal_to_now_fails(payload):
    payload["event_date"] = NOW.isoformat()
    assert _errors(payload) == {"event_date": ["Event date must be in the future"]}


def test_date_only_means_midnight_utc(payload):
    midnight = datetime(2026, 4, 15, tzinfo=timezone.utc)
    payload["event_date"] = "2026-04-15"
    assert "event_date" in _errors(payload, now=midnight)

    just_before = datetime(2026, 4, 14, 23, 59, 59, tzinfo=timezone.utc)
    assert validate_event_submission(payload, now=just_before).event_date == date(2026, 4, 15)


def test_past_and_garbage_dates(payload):
    payload["event_date"] = "2020-01-01"
    assert _errors(payload)["event_date"] == ["Event date must be in the future"]

    payload["event_date"] = "next tuesday"
    assert _errors(payload)["event_date"] == ["Event date must be a valid date"]


def test_missing_event_date(payload):
    del payload["event_date"]
    assert _errors(payload)["event_date"] == ["Event date is required"]


def test_category_is_free_text(payload):
    payload["category"] = "Hackathon"
    assert validate_event_submission(payload, now=NOW).category == "Hackathon"


def test_non_string_title_is_reported(payload):
    payload["title"] = 42
    assert _errors(payload)["title"] == ["Must be text"]


def test_optional_contact_fields_accepted(payload):
    payload.update({
        "contact_email": "organizer@eventhub.io",
        "website": "https://eventhub.io/rust?ref=form",
        "image_url": "anything goes here",
    })
    result = validate_event_submission(payload, now=NOW)
    assert result.website == "https://eventhub.io/rust?ref=form"
    assert result.image_url == "anything goes here"


def test_normalized_submission_revalidates_from_its_dump(payload):
    payload.update({"end_time": "17:30", "contact_email": "organizer@eventhub.io"})
    result = validate_event_submission(payload, now=NOW)

    again = EventSubmission.model_validate(result.model_dump(), context={"now": NOW})

    assert again == result
    assert again.start_time == time(9, 0)
    assert again.end_time == time(17, 30)


def test_time_objects_are_accepted():
    sub = EventSubmission(
        title="Kubernetes Office Hours",
        description="Bring your cluster questions.",
        event_date=date(2030, 5, 1),
        start_time=time(16, 0),
        end_time=time(17, 0),
        location="Virtual",
        category="Tech Talk",
    )
    assert sub.start_time == time(16, 0)
    assert sub.end_time == time(17, 0)



def test_non_mapping_payload():
    with pytest.raises(SubmissionValidationError) as excinfo:
        validate_event_submission(["not", "a", "dict"])
    assert "__root__" in excinfo.value.field_errors


def test_image_too_large_reports_size():
    with pytest.raises(ImageValidationError) as excinfo:
        validate_image_file(6 * 1024 * 1024, "image/jpeg")
    assert str(excinfo.value) == "File size must be less than 5MB (current: 6.00MB)"


def test_image_wrong_type():
    with pytest.raises(ImageValidationError) as excinfo:
        validate_image_file(1024, "text/plain")
    assert "Only JPEG, PNG, and WebP" in str(excinfo.value)


@pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/webp"])
def test_image_at_limit_is_accepted(content_type):
    validate_image_file(MAX_IMAGE_BYTES, content_type)


def test_image_missing_content_type():
    with pytest.raises(ImageValidationError):
        validate_image_file(10, None)
