"""
Unit tests for the schedule domain models and blob path derivation.

These tests verify the core business logic without touching
external services (no database, no object storage).
"""

import re
from datetime import date, datetime, timedelta, timezone

import pytest

from studyplanner.core.resources.models import (
    DEFAULT_FILE_TYPE,
    Permission,
    Resource,
    Schedule,
    ScheduleStatus,
    UploadCredential,
)
from studyplanner.core.resources.paths import (
    MillisecondClock,
    build_blob_path,
    sanitize_file_name,
)


SAFE_NAME = re.compile(r"^[A-Za-z0-9._-]*$")


def make_schedule(**overrides) -> Schedule:
    fields = dict(
        owner_id="U1",
        title="Exam prep",
        start_date=date(2026, 1, 5),
        end_date=date(2026, 1, 20),
    )
    fields.update(overrides)
    return Schedule(**fields)


def make_resource(**overrides) -> Resource:
    fields = dict(file_name="notes.pdf", file_url="mock://storage/b/U1/S1/1_notes.pdf")
    fields.update(overrides)
    return Resource(**fields)


# ---------------------------------------------------------------------------
# File name sanitization
# ---------------------------------------------------------------------------

class TestSanitizeFileName:

    @pytest.mark.parametrize("raw, expected", [
        ("notes.pdf", "notes.pdf"),
        ("my notes (v2).pdf", "my_notes__v2_.pdf"),
        ("../../etc/passwd", ".._.._etc_passwd"),
        ("résumé.docx", "r_sum_.docx"),
        ("already_safe-name.txt", "already_safe-name.txt"),
        ("", ""),
    ])
    def test_replaces_unsafe_characters(self, raw, expected):
        assert sanitize_file_name(raw) == expected

    @pytest.mark.parametrize("raw", [
        "a b c", "x/y\\z", "日本語.txt", "tab\there", "semi;colon&amp", "__", "...",
    ])
    def test_output_only_contains_safe_characters(self, raw):
        assert SAFE_NAME.match(sanitize_file_name(raw))

    @pytest.mark.parametrize("raw", ["my notes.pdf", "ü/ö", "a__b", "plain.txt"])
    def test_is_idempotent(self, raw):
        once = sanitize_file_name(raw)
        assert sanitize_file_name(once) == once


# ---------------------------------------------------------------------------
# Blob paths
# ---------------------------------------------------------------------------

class TestBuildBlobPath:

    def test_path_is_namespaced_by_owner_and_schedule(self):
        path = build_blob_path("U1", "S1", 1767225600000, "notes.pdf")
        assert path == "U1/S1/1767225600000_notes.pdf"

    def test_file_name_is_sanitized(self):
        path = build_blob_path("U1", "S1", 42, "week 1/notes.pdf")
        assert path == "U1/S1/42_week_1_notes.pdf"

    def test_different_timestamps_give_different_paths(self):
        first = build_blob_path("U1", "S1", 1000, "notes.pdf")
        second = build_blob_path("U1", "S1", 1001, "notes.pdf")
        assert first != second

    def test_rejects_empty_file_name(self):
        with pytest.raises(ValueError):
            build_blob_path("U1", "S1", 1000, "")

    def test_rejects_missing_owner(self):
        with pytest.raises(ValueError):
            build_blob_path("", "S1", 1000, "notes.pdf")


class TestMillisecondClock:

    def test_uses_wall_clock_milliseconds(self):
        clock = MillisecondClock(time_source=lambda: 1767225600.5)
        assert clock.next_timestamp() == 1767225600500

    def test_never_repeats_within_one_millisecond(self):
        clock = MillisecondClock(time_source=lambda: 1000.0)
        stamps = [clock.next_timestamp() for _ in range(5)]
        assert stamps == [1000000, 1000001, 1000002, 1000003, 1000004]

    def test_survives_wall_clock_stepping_back(self):
        times = iter([2000.0, 1999.0])
        clock = MillisecondClock(time_source=lambda: next(times))
        first = clock.next_timestamp()
        second = clock.next_timestamp()
        assert second > first


# ---------------------------------------------------------------------------
# Schedule aggregate
# ---------------------------------------------------------------------------

class TestSchedule:

    def test_new_schedule_is_pending_and_empty(self):
        schedule = make_schedule()

        assert schedule.status == ScheduleStatus.PENDING
        assert schedule.resources == []
        assert schedule.revision == 0
        assert schedule.id.startswith("schedule_")

    def test_rejects_blank_title(self):
        with pytest.raises(ValueError, match="title"):
            make_schedule(title="   ")

    def test_rejects_end_before_start(self):
        with pytest.raises(ValueError, match="end date"):
            make_schedule(start_date=date(2026, 2, 1), end_date=date(2026, 1, 1))

    def test_single_day_schedule_is_valid(self):
        schedule = make_schedule(start_date=date(2026, 2, 1), end_date=date(2026, 2, 1))
        assert schedule.start_date == schedule.end_date

    def test_add_resource_appends_and_touches_updated_at(self):
        schedule = make_schedule()
        schedule.updated_at = datetime(2020, 1, 1, tzinfo=timezone.utc)

        resource = schedule.add_resource(make_resource())

        assert schedule.resources == [resource]
        assert schedule.updated_at > datetime(2020, 1, 1, tzinfo=timezone.utc)

    def test_remove_resource_removes_only_that_one(self):
        schedule = make_schedule()
        keep = schedule.add_resource(make_resource(file_name="keep.pdf"))
        drop = schedule.add_resource(make_resource(file_name="drop.pdf"))

        removed = schedule.remove_resource(drop.id)

        assert removed is drop
        assert schedule.resources == [keep]

    def test_remove_unknown_resource_raises_key_error(self):
        schedule = make_schedule()
        with pytest.raises(KeyError):
            schedule.remove_resource("resource_missing")

    def test_find_resource_by_url_is_exact(self):
        schedule = make_schedule()
        resource = schedule.add_resource(make_resource())

        assert schedule.find_resource_by_url(resource.file_url) is resource
        assert schedule.find_resource_by_url(resource.file_url + "?x=1") is None

    def test_is_owned_by(self):
        schedule = make_schedule(owner_id="U1")
        assert schedule.is_owned_by("U1")
        assert not schedule.is_owned_by("U2")


class TestResource:

    def test_ids_are_unique(self):
        assert make_resource().id != make_resource().id

    def test_defaults_file_type(self):
        assert make_resource(file_type="").file_type == DEFAULT_FILE_TYPE

    def test_rejects_negative_size(self):
        with pytest.raises(ValueError, match="negative"):
            make_resource(file_size=-1)

    def test_rejects_blank_file_name(self):
        with pytest.raises(ValueError):
            make_resource(file_name=" ")


class TestUploadCredential:

    def test_expiry(self):
        expires_at = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        credential = UploadCredential(
            url="mock://x",
            blob_path="U1/S1/1_a.txt",
            permission=Permission.READ,
            expires_at=expires_at,
        )

        assert not credential.is_expired(expires_at - timedelta(seconds=1))
        assert credential.is_expired(expires_at)
