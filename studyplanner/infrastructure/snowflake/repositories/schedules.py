"""
Snowflake repository for schedules.

Each schedule is one row. Its resources are embedded as a JSON array in
a VARIANT column, so a schedule is read and written as a whole document,
the same way the upload and deletion flows think about it.

Table layout:

    CREATE TABLE schedules (
        schedule_id  VARCHAR PRIMARY KEY,
        user_id      VARCHAR NOT NULL,
        title        VARCHAR NOT NULL,
        description  VARCHAR,
        start_date   DATE,
        end_date     DATE,
        status       VARCHAR,
        resources    VARIANT,
        revision     INTEGER NOT NULL,
        created_at   TIMESTAMP_TZ,
        updated_at   TIMESTAMP_TZ
    ) CLUSTER BY (user_id);

Writes after the first insert are conditional on revision, which gives us
optimistic concurrency: two finalize calls racing on the same schedule
can no longer silently drop each other's resource.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Protocol

from studyplanner.core.resources.errors import ScheduleConflictError
from studyplanner.core.resources.models import (
    DEFAULT_FILE_TYPE,
    Resource,
    Schedule,
    ScheduleStatus,
)


logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "STUDYPLANNER"
    schema: str = "PLANNER"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


SCHEDULE_COLUMNS = (
    "schedule_id, user_id, title, description, start_date, end_date, "
    "status, resources, revision, created_at, updated_at"
)


class ScheduleRepository:
    """
    Repository for schedule documents.

    Implements core.resources.protocols.ScheduleStore:
    - get: query by id
    - list_for_owner: query by owner
    - save: insert, or replace conditionally on revision
    - delete: delete by id within the owner's partition
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def get(self, schedule_id: str) -> Optional[Schedule]:
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SCHEDULE_COLUMNS}
                FROM schedules
                WHERE schedule_id = %s
            """, (schedule_id,))

            row = cursor.fetchone()
            return self._build_schedule(row) if row else None

        finally:
            cursor.close()

    def list_for_owner(self, owner_id: str) -> list[Schedule]:
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SCHEDULE_COLUMNS}
                FROM schedules
                WHERE user_id = %s
                ORDER BY created_at DESC
            """, (owner_id,))

            return [self._build_schedule(row) for row in cursor.fetchall()]

        finally:
            cursor.close()

    def save(self, schedule: Schedule) -> Schedule:
        """
        Persist a schedule document.

        revision 0 means "never stored" and inserts. Anything else updates
        only if the stored revision still equals schedule.revision, and
        raises ScheduleConflictError when it doesn't. On success the
        schedule's revision is bumped in place.
        """
        cursor = self._conn.cursor()
        new_revision = schedule.revision + 1

        try:
            if schedule.revision == 0:
                self._insert(cursor, schedule, new_revision)
            else:
                self._conditional_update(cursor, schedule, new_revision)
                if cursor.rowcount == 0:
                    self._conn.rollback()
                    logger.warning(
                        "Schedule revision conflict",
                        extra={
                            "schedule_id": schedule.id,
                            "expected_revision": schedule.revision,
                        }
                    )
                    raise ScheduleConflictError(
                        f"Schedule {schedule.id} was modified concurrently"
                    )

            self._conn.commit()
            schedule.revision = new_revision
            return schedule

        except ScheduleConflictError:
            raise
        except Exception as e:
            logger.error(
                "Failed to save schedule",
                extra={"schedule_id": schedule.id, "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def delete(self, schedule_id: str, owner_id: str) -> bool:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                DELETE FROM schedules
                WHERE schedule_id = %s AND user_id = %s
            """, (schedule_id, owner_id))

            deleted = cursor.rowcount > 0
            self._conn.commit()
            return deleted

        finally:
            cursor.close()

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _insert(self, cursor, schedule: Schedule, revision: int) -> None:
        # VARIANT values can't be bound in VALUES, hence INSERT ... SELECT
        cursor.execute("""
            INSERT INTO schedules (
                schedule_id, user_id, title, description, start_date, end_date,
                status, resources, revision, created_at, updated_at
            )
            SELECT %s, %s, %s, %s, %s, %s, %s, PARSE_JSON(%s), %s, %s, %s
        """, (
            schedule.id,
            schedule.owner_id,
            schedule.title,
            schedule.description,
            schedule.start_date,
            schedule.end_date,
            schedule.status.value,
            self._resources_to_json(schedule.resources),
            revision,
            schedule.created_at,
            schedule.updated_at,
        ))

    def _conditional_update(self, cursor, schedule: Schedule, revision: int) -> None:
        cursor.execute("""
            UPDATE schedules SET
                title = %s,
                description = %s,
                start_date = %s,
                end_date = %s,
                status = %s,
                resources = PARSE_JSON(%s),
                revision = %s,
                updated_at = %s
            WHERE schedule_id = %s AND user_id = %s AND revision = %s
        """, (
            schedule.title,
            schedule.description,
            schedule.start_date,
            schedule.end_date,
            schedule.status.value,
            self._resources_to_json(schedule.resources),
            revision,
            schedule.updated_at,
            schedule.id,
            schedule.owner_id,
            schedule.revision,
        ))

    def _resources_to_json(self, resources: list[Resource]) -> str:
        return json.dumps([
            {
                "id": r.id,
                "file_name": r.file_name,
                "file_url": r.file_url,
                "file_size": r.file_size,
                "file_type": r.file_type,
                "uploaded_at": r.uploaded_at.isoformat(),
            }
            for r in resources
        ])

    def _build_schedule(self, row: tuple) -> Schedule:
        (
            schedule_id, user_id, title, description, start_date, end_date,
            status, resources, revision, created_at, updated_at,
        ) = row

        return Schedule(
            id=schedule_id,
            owner_id=user_id,
            title=title,
            description=description or "",
            start_date=_as_date(start_date),
            end_date=_as_date(end_date),
            status=ScheduleStatus(status) if status else ScheduleStatus.PENDING,
            resources=self._build_resources(resources),
            revision=int(revision),
            created_at=_as_datetime(created_at),
            updated_at=_as_datetime(updated_at),
        )

    def _build_resources(self, raw: Any) -> list[Resource]:
        # The connector returns VARIANT columns as JSON text
        if raw is None:
            return []
        items = json.loads(raw) if isinstance(raw, str) else raw

        return [
            Resource(
                id=item["id"],
                file_name=item["file_name"],
                file_url=item["file_url"],
                file_size=item.get("file_size") or 0,
                file_type=item.get("file_type") or DEFAULT_FILE_TYPE,
                uploaded_at=_as_datetime(item.get("uploaded_at")),
            )
            for item in items
        ]


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
