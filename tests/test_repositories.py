"""
SLA Repository Tests
=====================

Tests for the SQLAlchemy repositories against in-memory SQLite:
- Record round trip with aware UTC timestamps
- One open record per request enforced by the database
- Compare-and-swap transitions on the version column
- Notification persistence and escalation lookups
"""

from datetime import timezone

import pytest

from designdream.config import NotificationLevel, SLAStatus, WarningLevel
from designdream.core import ConcurrentModificationException, DuplicateActiveSLAException
from designdream.sla.domain import SLANotification, SLAStateMachine
from designdream.sla.infrastructure import (
    SQLAlchemyNotificationRepository,
    SQLAlchemySLARecordRepository,
)

from tests.helpers import MONDAY, TUESDAY, WEDNESDAY, utc


pytestmark = pytest.mark.unit


@pytest.fixture
def record_repo(db_session):
    return SQLAlchemySLARecordRepository(db_session)


@pytest.fixture
def notification_repo(db_session):
    return SQLAlchemyNotificationRepository(db_session)


class TestRecordRepository:
    """Tests for SQLAlchemySLARecordRepository."""

    async def test_create_and_fetch_round_trip(self, record_repo, db_session, new_record):
        # Arrange
        record = SLAStateMachine.pause(new_record("REQ-001"), utc(*MONDAY, 11), reason="Waiting on copy")

        # Act
        await record_repo.create(record)
        await db_session.commit()
        fetched = await record_repo.get_by_id(record.id)

        # Assert
        assert fetched == record
        assert fetched.metadata == {"pause_reason": "Waiting on copy"}
        assert fetched.started_at.tzinfo is not None
        assert fetched.started_at.utcoffset() == timezone.utc.utcoffset(None)
        assert fetched.paused_at == utc(*MONDAY, 11)

    async def test_get_by_id_unknown(self, record_repo):
        assert await record_repo.get_by_id("not-a-uuid") is None
        assert await record_repo.get_by_id("00000000-0000-0000-0000-000000000000") is None

    async def test_open_record_lookup(self, record_repo, new_record, business_hours):
        done = SLAStateMachine.complete(new_record("REQ-001"), utc(*MONDAY, 12), business_hours)
        await record_repo.create(done)
        assert await record_repo.get_open_by_request_id("REQ-001") is None

        active = new_record("REQ-001", started_at=utc(*TUESDAY, 9))
        await record_repo.create(active)

        found = await record_repo.get_open_by_request_id("REQ-001")
        assert found.id == active.id

    async def test_latest_by_request_id(self, record_repo, new_record, business_hours):
        first = SLAStateMachine.complete(new_record("REQ-001"), utc(*MONDAY, 12), business_hours)
        second = SLAStateMachine.complete(
            new_record("REQ-001", started_at=utc(*TUESDAY, 9)), utc(*TUESDAY, 12), business_hours
        )
        await record_repo.create(first)
        await record_repo.create(second)

        latest = await record_repo.get_latest_by_request_id("REQ-001")

        assert latest.id == second.id
        assert await record_repo.get_latest_by_request_id("REQ-404") is None

    async def test_database_rejects_second_open_record(self, record_repo, db_session, new_record):
        await record_repo.create(new_record("REQ-001"))
        await db_session.commit()

        with pytest.raises(DuplicateActiveSLAException):
            await record_repo.create(new_record("REQ-001", started_at=utc(*TUESDAY, 9)))

        # Session is usable again and still holds only the committed record
        records = await record_repo.list_by_status([SLAStatus.ACTIVE])
        assert len(records) == 1

    async def test_list_by_status_orders_and_pages(self, record_repo, new_record):
        for day, request_id in [(WEDNESDAY, "C"), (MONDAY, "A"), (TUESDAY, "B")]:
            await record_repo.create(new_record(request_id, started_at=utc(*day, 9)))

        records = await record_repo.list_by_status([SLAStatus.ACTIVE, SLAStatus.PAUSED])
        page = await record_repo.list_by_status([SLAStatus.ACTIVE], limit=1, offset=1)

        assert [r.request_id for r in records] == ["A", "B", "C"]
        assert [r.request_id for r in page] == ["B"]

    async def test_list_completed_since(self, record_repo, new_record, business_hours):
        early = SLAStateMachine.complete(new_record("A", 2), utc(*MONDAY, 12), business_hours)
        late = SLAStateMachine.complete(new_record("B", 2), utc(*WEDNESDAY, 12), business_hours)
        await record_repo.create(early)
        await record_repo.create(late)

        recent = await record_repo.list_completed_since([SLAStatus.VIOLATED], utc(*TUESDAY, 9))

        assert [r.request_id for r in recent] == ["B"]


class TestCompareAndSwap:
    """Transitions succeed only against the stored version."""

    async def test_save_transition_bumps_version(self, record_repo, new_record):
        record = await record_repo.create(new_record())
        paused = SLAStateMachine.pause(record, utc(*MONDAY, 11))

        saved = await record_repo.save_transition(record, paused)
        fetched = await record_repo.get_by_id(record.id)

        assert saved.version == 2
        assert fetched.version == 2
        assert fetched.status == SLAStatus.PAUSED

    async def test_stale_transition_rejected(self, record_repo, new_record, business_hours):
        record = await record_repo.create(new_record())
        await record_repo.save_transition(record, SLAStateMachine.pause(record, utc(*MONDAY, 11)))

        # A second caller still holding version 1
        stale_update = SLAStateMachine.complete(record, utc(*MONDAY, 12), business_hours)

        with pytest.raises(ConcurrentModificationException) as exc_info:
            await record_repo.save_transition(record, stale_update)

        assert exc_info.value.expected_version == 1
        fetched = await record_repo.get_by_id(record.id)
        assert fetched.status == SLAStatus.PAUSED

    async def test_completed_record_frees_the_request(self, record_repo, new_record, business_hours):
        record = await record_repo.create(new_record("REQ-001"))
        done = SLAStateMachine.complete(record, utc(*MONDAY, 12), business_hours)
        await record_repo.save_transition(record, done)

        again = await record_repo.create(new_record("REQ-001", started_at=utc(*TUESDAY, 9)))

        assert again.status == SLAStatus.ACTIVE


class TestNotificationRepository:
    """Tests for SQLAlchemyNotificationRepository."""

    def _notification(self, sla_id: str, level: str) -> SLANotification:
        return SLANotification(
            id=None,
            sla_id=sla_id,
            request_id="REQ-001",
            level=level,
            hours_remaining=4.0,
            triggered_at=utc(*MONDAY, 13),
        )

    async def test_create_assigns_id(self, notification_repo, new_record):
        created = await notification_repo.create(self._notification(new_record().id, WarningLevel.YELLOW))
        assert created.id

    async def test_last_level_is_highest_recorded(self, notification_repo, new_record):
        sla_id = new_record().id
        assert await notification_repo.get_last_level(sla_id) is None

        await notification_repo.create(self._notification(sla_id, NotificationLevel.RED))
        await notification_repo.create(self._notification(sla_id, NotificationLevel.YELLOW))

        assert await notification_repo.get_last_level(sla_id) == NotificationLevel.RED

    async def test_pending_and_mark_sent(self, notification_repo, new_record):
        sla_id = new_record().id
        first = await notification_repo.create(self._notification(sla_id, NotificationLevel.YELLOW))
        await notification_repo.create(self._notification(sla_id, NotificationLevel.RED))

        await notification_repo.mark_sent(first.id, utc(*MONDAY, 14))
        pending = await notification_repo.get_pending(sla_id)

        assert [n.level for n in pending] == [NotificationLevel.RED]
        assert pending[0].triggered_at == utc(*MONDAY, 13)
