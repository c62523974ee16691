from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta

from taskcycle.domain.entities import (
    BatchResult,
    RecurringTaskDefinition,
    TaskInstancePayload,
    TaskTemplate,
)
from taskcycle.domain.errors import PersistenceError
from taskcycle.services.lifecycle import RecurrenceLifecycle
from taskcycle.services.materializer import BatchMaterializer

from conftest import NOW, build_definition

CORRUPT_TEMPLATE = TaskTemplate(title="Broken", attachments=({"filename": "x.pdf"},))


class FakeDefinitionStore:
    def __init__(self, definitions: list[RecurringTaskDefinition] = ()) -> None:
        self.definitions = {definition.id: definition for definition in definitions}
        self.fail_on_save: set[str] = set()

    def load(self, definition_id: str) -> RecurringTaskDefinition:
        return self.definitions[definition_id]

    def save(self, definition: RecurringTaskDefinition) -> RecurringTaskDefinition:
        if definition.id in self.fail_on_save:
            raise PersistenceError(f"write failed for {definition.id}")
        self.definitions[definition.id] = definition
        return definition

    def find_due(self, now: datetime) -> list[RecurringTaskDefinition]:
        return [d for d in self.definitions.values() if d.is_due(now)]


class FakeInstanceStore:
    def __init__(self) -> None:
        self.payloads: dict[str, TaskInstancePayload] = {}

    def create(self, payload: TaskInstancePayload) -> str:
        ref = f"task-{payload.recurring_task_id}-{payload.scheduled_for}"
        if payload.scheduled_for is None:
            ref = f"task-{payload.recurring_task_id}-manual-{len(self.payloads)}"
        self.payloads[ref] = payload
        return ref

    def find_by_occurrence(self, recurring_task_id: str, scheduled_for: date) -> str | None:
        for ref, payload in self.payloads.items():
            if (
                payload.recurring_task_id == recurring_task_id
                and payload.scheduled_for == scheduled_for
            ):
                return ref
        return None


class FakeNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple[str, str, str | None]] = []
        self.fail = fail

    def notify(self, owner_id: str, instance_ref: str, definition_id: str | None) -> None:
        self.calls.append((owner_id, instance_ref, definition_id))
        if self.fail:
            raise ConnectionError("mail server down")


def _materializer(store, instances, notifier=None) -> BatchMaterializer:
    return BatchMaterializer(
        store,
        instances,
        notifier,
        lifecycle=RecurrenceLifecycle(clock=lambda: NOW),
    )


def _due(definition_id: str, **fields) -> RecurringTaskDefinition:
    return build_definition(definition_id, next_run_date=date(2026, 1, 7), **fields)


def test_due_definition_is_materialized_and_advanced() -> None:
    definition = _due("a")
    store = FakeDefinitionStore([definition])
    instances = FakeInstanceStore()
    notifier = FakeNotifier()

    result = _materializer(store, instances, notifier).process_due(NOW)

    assert result == BatchResult(processed=1, created=1, errors=0)
    saved = store.load("a")
    assert saved.created_instances == ("task-a-2026-01-07",)
    assert saved.last_task_created == NOW
    assert saved.next_run_date == date(2026, 1, 8)
    assert saved.active is True
    assert instances.payloads["task-a-2026-01-07"].tags == ("home", "recurring")
    assert notifier.calls == [("user-1", "task-a-2026-01-07", "a")]


def test_failing_projection_is_isolated() -> None:
    good = _due("a")
    broken = _due("b", template=CORRUPT_TEMPLATE)
    store = FakeDefinitionStore([good, broken])
    instances = FakeInstanceStore()

    result = _materializer(store, instances).process_due(NOW, [broken, good])

    assert result == BatchResult(processed=2, created=1, errors=1)
    assert store.load("a").next_run_date == date(2026, 1, 8)
    assert store.load("b") == broken
    assert store.load("b").next_run_date == date(2026, 1, 7)
    assert store.load("b").active is True
    assert list(instances.payloads) == ["task-a-2026-01-07"]


def test_processing_order_does_not_change_outcome() -> None:
    a = _due("a")
    b = _due("b", pattern={"interval": 2})

    first_store = FakeDefinitionStore([a, b])
    second_store = FakeDefinitionStore([a, b])
    _materializer(first_store, FakeInstanceStore()).process_due(NOW, [a, b])
    _materializer(second_store, FakeInstanceStore()).process_due(NOW, [b, a])

    assert first_store.definitions == second_store.definitions


def test_not_due_and_inactive_definitions_are_skipped() -> None:
    later = build_definition("later", next_run_date=date(2026, 1, 8))
    paused = _due("paused", active=False)
    store = FakeDefinitionStore([later, paused])

    result = _materializer(store, FakeInstanceStore()).process_due(NOW, [later, paused])

    assert result == BatchResult()
    assert store.definitions == {"later": later, "paused": paused}


def test_find_due_is_used_when_no_definitions_are_given() -> None:
    store = FakeDefinitionStore([_due("a"), build_definition("later", next_run_date=date(2026, 2, 1))])

    result = _materializer(store, FakeInstanceStore()).process_due(NOW)

    assert result.processed == 1
    assert result.created == 1


def test_last_occurrence_deactivates_definition() -> None:
    definition = _due("a", pattern={"end_date": date(2026, 1, 7)}, start_date=date(2026, 1, 1))
    store = FakeDefinitionStore([definition])

    result = _materializer(store, FakeInstanceStore()).process_due(NOW)

    assert result.created == 1
    saved = store.load("a")
    assert saved.active is False
    assert saved.next_run_date is None
    assert len(saved.created_instances) == 1


def test_occurrence_limit_deactivates_definition() -> None:
    definition = _due("a", pattern={"occurrences": 2}, created_instances=("old",))
    store = FakeDefinitionStore([definition])

    _materializer(store, FakeInstanceStore()).process_due(NOW)

    saved = store.load("a")
    assert saved.created_instances == ("old", "task-a-2026-01-07")
    assert saved.active is False


def test_second_pass_in_same_run_does_not_duplicate() -> None:
    store = FakeDefinitionStore([_due("a")])
    instances = FakeInstanceStore()
    materializer = _materializer(store, instances)

    materializer.process_due(NOW)
    result = materializer.process_due(NOW)

    assert result == BatchResult()
    assert len(instances.payloads) == 1


def test_rerun_after_failed_save_reuses_existing_instance() -> None:
    definition = _due("a")
    store = FakeDefinitionStore([definition])
    store.fail_on_save.add("a")
    instances = FakeInstanceStore()
    materializer = _materializer(store, instances)

    failed = materializer.process_due(NOW)
    assert failed == BatchResult(processed=1, created=0, errors=1)
    assert store.load("a") == definition
    assert len(instances.payloads) == 1

    store.fail_on_save.clear()
    retried = materializer.process_due(NOW)

    assert retried == BatchResult(processed=1, created=1, errors=0)
    assert len(instances.payloads) == 1
    assert store.load("a").created_instances == ("task-a-2026-01-07",)


def test_notification_failure_does_not_roll_back() -> None:
    store = FakeDefinitionStore([_due("a")])
    notifier = FakeNotifier(fail=True)

    result = _materializer(store, FakeInstanceStore(), notifier).process_due(NOW)

    assert result == BatchResult(processed=1, created=1, errors=0)
    assert len(notifier.calls) == 1
    assert store.load("a").next_run_date == date(2026, 1, 8)


def test_failing_due_query_is_reported_not_raised() -> None:
    class BrokenStore(FakeDefinitionStore):
        def find_due(self, now):
            raise PersistenceError("database unavailable")

    result = _materializer(BrokenStore(), FakeInstanceStore()).process_due(NOW)

    assert result == BatchResult(processed=0, created=0, errors=1)


def test_materialize_now_leaves_schedule_alone() -> None:
    definition = build_definition("a", next_run_date=date(2026, 1, 9))
    store = FakeDefinitionStore([definition])
    instances = FakeInstanceStore()

    ref, updated = _materializer(store, instances).materialize_now(definition, NOW)

    assert instances.payloads[ref].tags == ("home", "recurring", "manual-creation")
    assert instances.payloads[ref].scheduled_for is None
    assert updated.created_instances == (ref,)
    assert updated.next_run_date == date(2026, 1, 9)
    assert updated.last_task_created is None
    assert store.load("a") == updated


def test_upcoming_lists_occurrences_within_horizon() -> None:
    daily = build_definition("daily", next_run_date=date(2026, 1, 8))
    far = build_definition("far", next_run_date=date(2026, 3, 1))
    paused = replace(daily, id="paused", active=False)

    upcoming = _materializer(FakeDefinitionStore(), FakeInstanceStore()).upcoming(
        [far, daily, paused], NOW, days=7
    )

    assert [item.occurs_on for item in upcoming] == [
        date(2026, 1, 8) + timedelta(days=offset) for offset in range(7)
    ]
    assert {item.definition.id for item in upcoming} == {"daily"}
