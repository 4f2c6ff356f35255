"""Tests for the reminder service (store + timers)."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.domain.entities.reminder import Reminder
from app.domain.time_pattern import TimePattern
from app.scheduler.registry import JobRegistry
from app.services.reminder_service import (
    LifecycleState,
    ReminderService,
    format_notification,
)
from app.utils.errors import ConsistencyFault, NotFoundError, TelegramAPIError, ValidationError

BRAIN_KEY = "test.reminders"

WILD = "*"


def add_wednesday(service, message="eat cheese", room="room1", user="alice") -> str:
    return service.add(0, 0, 23, WILD, WILD, 3, WILD, message, room, user)


def add_one_shot(service, year=2099, message="renew passport") -> str:
    return service.add(0, 30, 8, 24, 12, WILD, year, message, "room1", "alice")


def assert_consistent(service) -> None:
    assert service.count() == len(service.list())
    assert service.registry.ids() == {r.id for r in service.list()}


class TestAddAndRemove:
    """Test suite for add/remove/list/count."""

    def test_add_recurring(self, service):
        rid = add_wednesday(service)

        assert service.count() == 1
        assert [r.id for r in service.list()] == [rid]
        assert service.get(rid).time == TimePattern(hours=23, weekday=3)
        assert_consistent(service)

    def test_add_persists_before_returning(self, service, restart):
        rid = add_wednesday(service)

        restored = restart()

        assert [r.id for r in restored.list()] == [rid]

    def test_weekday_seven_behaves_like_zero(self, service):
        seven = service.add(0, 0, 9, WILD, WILD, 7, WILD, "a", "room1", "alice")
        zero = service.add(0, 0, 9, WILD, WILD, 0, WILD, "b", "room1", "alice")

        assert service.get(seven).time == service.get(zero).time
        job_seven = service.registry.get(seven)
        job_zero = service.registry.get(zero)
        assert str(job_seven.trigger) == str(job_zero.trigger)

    def test_invalid_fields_change_nothing(self, service):
        with pytest.raises(ValidationError):
            service.add(0, 0, 25, WILD, WILD, 3, WILD, "late", "room1", "alice")

        assert service.count() == 0
        assert service.list() == []

    def test_remove_known_id(self, service):
        rid = add_wednesday(service)

        result = service.remove(rid)

        assert result.found
        assert result.message == f"I've deleted the task with id [{rid}]"
        assert service.count() == 0
        assert service.list() == []

    def test_remove_unknown_id_changes_nothing(self, service):
        add_wednesday(service)

        result = service.remove("nope")

        assert not result.found
        assert result.message == "Whoops! Couldn't find the reminder [nope]"
        assert service.count() == 1
        assert_consistent(service)

    def test_remove_twice(self, service):
        rid = add_wednesday(service)

        assert service.remove(rid).found
        assert not service.remove(rid).found

    def test_remove_is_durable(self, service, restart):
        keep = add_wednesday(service, message="keep")
        drop = add_wednesday(service, message="drop")

        service.remove(drop)
        restored = restart()

        assert [r.id for r in restored.list()] == [keep]
        assert restored.count() == 1

    def test_get_unknown_id(self, service):
        with pytest.raises(NotFoundError):
            service.get("nope")

    def test_list_keeps_creation_order(self, service):
        ids = [add_wednesday(service, message=f"task {i}") for i in range(3)]

        assert [r.id for r in service.list()] == ids

    def test_wednesday_scenario(self, service):
        """Add, show and delete a weekly reminder, checking the counts at every step."""
        rid = add_wednesday(service)
        assert service.count() == 1
        assert_consistent(service)

        reminder = service.get(rid)
        assert reminder.message == "eat cheese"
        assert reminder.user == "alice"
        assert_consistent(service)

        assert service.remove(rid).found
        assert service.count() == 0
        assert_consistent(service)


class TestIds:
    """Test suite for id generation."""

    def test_ids_are_unique(self, service):
        ids = {add_wednesday(service) for _ in range(20)}

        assert len(ids) == 20

    def test_collision_retries_with_a_new_id(self, store, registry, notifier):
        factory = MagicMock(side_effect=["dup", "dup", "fresh"])
        service = ReminderService(store, registry, notifier, id_factory=factory)
        service.initialize()
        store.brain.load()

        assert add_wednesday(service) == "dup"
        assert add_wednesday(service) == "fresh"
        assert factory.call_count == 3

    def test_gives_up_after_repeated_collisions(self, store, registry, notifier):
        service = ReminderService(store, registry, notifier, id_factory=lambda: "dup")
        service.initialize()
        store.brain.load()
        add_wednesday(service)

        with pytest.raises(ConsistencyFault):
            add_wednesday(service)

        assert service.count() == 1


class TestFailures:
    """Test suite for partial failures during add."""

    def test_failed_schedule_rolls_back_record(self, service, restart):
        with patch.object(service.registry, "schedule", side_effect=RuntimeError("scheduler down")):
            with pytest.raises(RuntimeError):
                add_wednesday(service)

        assert service.list() == []
        assert service.count() == 0
        assert restart().list() == []


class TestFire:
    """Test suite for timer callbacks."""

    @pytest.mark.asyncio
    async def test_recurring_notifies_and_stays(self, service, notifier):
        rid = add_wednesday(service)

        await service.registry.get(rid).func()

        notifier.send.assert_awaited_once_with("room1", "@alice REMINDER: eat cheese")
        assert service.count() == 1
        assert_consistent(service)

    @pytest.mark.asyncio
    async def test_one_shot_deletes_itself(self, service, notifier, restart):
        add_wednesday(service)
        rid = add_one_shot(service)
        assert service.count() == 2

        await service.registry.get(rid).func()

        notifier.send.assert_awaited_once_with("room1", "@alice REMINDER: renew passport")
        assert service.count() == 1
        assert rid not in {r.id for r in service.list()}
        assert_consistent(service)
        assert rid not in {r.id for r in restart().list()}

    @pytest.mark.asyncio
    async def test_send_failure_does_not_propagate(self, service, notifier):
        notifier.send.side_effect = TelegramAPIError("chat not found")
        rid = add_one_shot(service)

        await service.registry.get(rid).func()

        # The one-shot is still cleaned up
        assert service.count() == 0
        assert service.list() == []

    @pytest.mark.asyncio
    async def test_fire_after_manual_removal(self, service, notifier):
        rid = add_one_shot(service)
        callback = service.registry.get(rid).func
        service.remove(rid)

        await callback()

        notifier.send.assert_awaited_once()
        assert service.count() == 0

    def test_format_notification(self, sample_reminder_dict):
        reminder = Reminder.from_dict(sample_reminder_dict)

        assert format_notification(reminder) == "@alice REMINDER: eat cheese"


class TestReconciliation:
    """Test suite for restoring timers from the brain."""

    def test_initial_state(self, store, registry, notifier):
        service = ReminderService(store, registry, notifier)

        assert service.state == LifecycleState.UNINITIALIZED
        service.initialize()
        assert service.state == LifecycleState.WAITING
        store.brain.load()
        assert service.state == LifecycleState.RECONCILED

    def test_restart_restores_every_timer(self, service, restart):
        weekly = add_wednesday(service)
        once = add_one_shot(service)

        restored = restart()

        assert restored.registry.ids() == {weekly, once}
        assert restored.get(weekly) == service.get(weekly)
        assert_consistent(restored)

    def test_persisted_string_fields(self, brain, store, registry, notifier, sample_reminder_dict):
        brain.set(BRAIN_KEY, [sample_reminder_dict])
        brain.save()
        service = ReminderService(store, registry, notifier)
        service.initialize()

        brain.load()

        assert service.count() == 1
        job = service.registry.get("abc123xyz")
        fields = {field.name: str(field) for field in job.trigger.fields}
        assert fields["hour"] == "23"
        assert fields["day_of_week"] == "wed"

    def test_repeated_ready_signal_does_not_duplicate(self, service, restart):
        add_wednesday(service)
        add_wednesday(service)
        restored = restart()

        restored.store.brain.load()
        restored.store.brain.load()

        assert restored.count() == 2
        assert len(restored.list()) == 2

    def test_initialize_after_reconcile_is_a_no_op(self, service):
        add_wednesday(service)

        service.initialize()
        service.store.brain.load()

        assert service.count() == 1
        assert len(service.list()) == 1

    def test_brain_loaded_before_initialize(self, brain, store, registry, notifier, sample_reminder_dict):
        brain.set(BRAIN_KEY, [sample_reminder_dict])
        brain.save()
        brain.load()
        service = ReminderService(store, registry, notifier)

        service.initialize()

        assert service.state == LifecycleState.RECONCILED
        assert service.count() == 1

    def test_expired_one_shot_is_dropped(self, service, restart):
        weekly = add_wednesday(service)
        expired = Reminder(
            id="old",
            time=TimePattern(hours=9, monthday=1, month=1, year=2020),
            message="too late",
            room="room1",
            user="alice",
        )
        service.store.append(expired)

        restored = restart()

        assert restored.registry.ids() == {weekly}
        assert [r.id for r in restored.list()] == [weekly]
        # Dropped from the durable copy as well
        assert [r.id for r in restart().list()] == [weekly]

    def test_orphan_timer_is_cancelled(self, service):
        service.registry.schedule("ghost", TimePattern(weekday=3), MagicMock())

        fixed = service.check_consistency()

        assert fixed == 1
        assert service.registry.get("ghost") is None
        assert_consistent(service)

    def test_orphan_record_is_removed(self, service):
        rid = add_wednesday(service)
        service.registry.cancel(rid)

        fixed = service.check_consistency()

        assert fixed == 1
        assert service.list() == []
        assert_consistent(service)

    def test_unreadable_record_does_not_block_the_rest(
        self, brain, store, registry, notifier, sample_reminder_dict
    ):
        broken = {**sample_reminder_dict, "id": "bad", "time": {**sample_reminder_dict["time"], "hours": "abc"}}
        brain.set(BRAIN_KEY, [broken, sample_reminder_dict])
        brain.save()
        service = ReminderService(store, registry, notifier)
        service.initialize()

        brain.load()

        assert service.state == LifecycleState.RECONCILED
        assert service.registry.ids() == {"abc123xyz"}
        assert [r.id for r in service.list()] == ["abc123xyz"]
        assert_consistent(service)


class TestMissedRun:
    """Test suite for runs the scheduler skipped (misfire)."""

    def test_missed_one_shot_is_removed(self, service, restart):
        weekly = add_wednesday(service)
        once = add_one_shot(service)

        service.registry.on_missed(once)

        assert service.registry.ids() == {weekly}
        assert [r.id for r in service.list()] == [weekly]
        assert [r.id for r in restart().list()] == [weekly]

    def test_missed_recurring_keeps_running(self, service):
        rid = add_wednesday(service)

        service.registry.on_missed(rid)

        assert service.count() == 1
        assert_consistent(service)


def one_shot_in(seconds: int) -> TimePattern:
    fire_at = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(seconds=seconds)
    return TimePattern.at(fire_at)


class TestRunningScheduler:
    """End-to-end tests against a started AsyncIOScheduler."""

    @staticmethod
    def build_service(store, notifier) -> ReminderService:
        # Created inside the running loop
        scheduler = AsyncIOScheduler(timezone="UTC", job_defaults={"misfire_grace_time": 1})
        service = ReminderService(store, JobRegistry(scheduler), notifier)
        service.initialize()
        store.brain.load()
        return service

    @pytest.mark.asyncio
    async def test_one_shot_fires_and_deletes_itself(self, store, notifier, restart):
        service = self.build_service(store, notifier)
        weekly = add_wednesday(service)
        once = service.add_pattern(one_shot_in(2), "stand up", "room1", "alice")
        scheduler = service.registry.scheduler

        scheduler.start()
        try:
            await asyncio.sleep(3.5)
        finally:
            scheduler.shutdown(wait=False)

        notifier.send.assert_awaited_once_with("room1", "@alice REMINDER: stand up")
        assert service.count() == 1
        assert [r.id for r in service.list()] == [weekly]
        assert_consistent(service)
        assert once not in {r.id for r in restart().list()}

    @pytest.mark.asyncio
    async def test_missed_one_shot_is_cleaned_up(self, store, notifier):
        service = self.build_service(store, notifier)
        weekly = add_wednesday(service)
        service.add_pattern(one_shot_in(2), "stand up", "room1", "alice")
        scheduler = service.registry.scheduler

        scheduler.start(paused=True)
        try:
            # Paused past the run time plus the grace period
            await asyncio.sleep(4.5)
            scheduler.resume()
            await asyncio.sleep(1)
        finally:
            scheduler.shutdown(wait=False)

        notifier.send.assert_not_awaited()
        assert service.count() == 1
        assert [r.id for r in service.list()] == [weekly]
        assert_consistent(service)
