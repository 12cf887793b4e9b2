"""
Shared fixtures.

Everything runs against the in-memory Snowflake connection and the mock
storage client, so no test needs credentials or network access.
"""

from datetime import date

import pytest

from studyplanner.core.resources import CredentialIssuer, MillisecondClock, Resource, Schedule
from studyplanner.infrastructure.snowflake.client import MockSnowflakeConnection
from studyplanner.infrastructure.snowflake.repositories.schedules import ScheduleRepository
from studyplanner.infrastructure.storage.client import MockStorageClient, StorageError


class RecordingStorageClient(MockStorageClient):
    """Mock storage that remembers which URLs it signed and which blobs it was asked to delete."""

    def __init__(self) -> None:
        super().__init__()
        self.signed: list[tuple[str, str, int]] = []
        self.delete_requests: list[str] = []

    async def generate_signed_url(self, blob_path, permission, expires_in_seconds):
        self.signed.append((blob_path, permission.value, expires_in_seconds))
        return await super().generate_signed_url(blob_path, permission, expires_in_seconds)

    async def delete_blob(self, blob_path):
        self.delete_requests.append(blob_path)
        return await super().delete_blob(blob_path)


class FailingDeleteStorageClient(RecordingStorageClient):
    """Mock storage whose deletes always blow up."""

    async def delete_blob(self, blob_path):
        raise StorageError("connection reset by peer")


class ConflictingStore:
    """
    Wraps a repository and lets another writer sneak in before our saves.

    Each of the first `conflicts` saves is preceded by a competing write
    that appends a resource of its own to the stored schedule.
    """

    def __init__(self, inner, conflicts: int = 1) -> None:
        self._inner = inner
        self._conflicts = conflicts
        self.save_calls = 0

    def get(self, schedule_id):
        return self._inner.get(schedule_id)

    def list_for_owner(self, owner_id):
        return self._inner.list_for_owner(owner_id)

    def delete(self, schedule_id, owner_id):
        return self._inner.delete(schedule_id, owner_id)

    def save(self, schedule):
        self.save_calls += 1
        if self._conflicts > 0:
            self._conflicts -= 1
            competitor = self._inner.get(schedule.id)
            file_name = f"other-{self.save_calls}.pdf"
            competitor.add_resource(Resource(
                file_name=file_name,
                file_url=(
                    f"mock://storage/study-resources/"
                    f"{competitor.owner_id}/{competitor.id}/1_{file_name}"
                ),
            ))
            self._inner.save(competitor)
        return self._inner.save(schedule)


@pytest.fixture
def storage() -> RecordingStorageClient:
    return RecordingStorageClient()


@pytest.fixture
def failing_storage() -> FailingDeleteStorageClient:
    return FailingDeleteStorageClient()


@pytest.fixture
def connection() -> MockSnowflakeConnection:
    return MockSnowflakeConnection()


@pytest.fixture
def repository(connection) -> ScheduleRepository:
    return ScheduleRepository(connection)


@pytest.fixture
def issuer(storage) -> CredentialIssuer:
    return CredentialIssuer(storage)


@pytest.fixture
def blob_clock() -> MillisecondClock:
    return MillisecondClock()


@pytest.fixture
def schedule(repository) -> Schedule:
    """Schedule S1 owned by U1, stored, with no resources."""
    s1 = Schedule(
        id="S1",
        owner_id="U1",
        title="Linear algebra revision",
        start_date=date(2026, 11, 1),
        end_date=date(2026, 11, 30),
    )
    repository.save(s1)
    return s1


@pytest.fixture
def conflicting_store(repository):
    """Factory for a repository wrapper that loses the first `conflicts` races."""
    def make(conflicts: int = 1) -> ConflictingStore:
        return ConflictingStore(repository, conflicts=conflicts)
    return make
