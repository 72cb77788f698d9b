from __future__ import annotations

from datetime import date, timedelta

from planner.domain.entities import PlanStep
from planner.domain.errors import BatchCommitError
from planner.infra.store import PlannerStore
from planner.services.materializer import RoutineMaterializer
from planner.services.planner_session import PlannerSession

MONDAY = date(2026, 3, 2)


class CountingStore(PlannerStore):
    def __init__(self, session_factory, user_id) -> None:
        super().__init__(session_factory, user_id)
        self.commits = 0
        self.fail = False

    def commit(self, batch):
        if self.fail and batch:
            raise BatchCommitError("store offline")
        if batch:
            self.commits += 1
        return super().commit(batch)


def make_session(store, notices=None) -> PlannerSession:
    notices = notices if notices is not None else []
    return PlannerSession(
        store,
        materializer=RoutineMaterializer(store, clock=lambda: MONDAY),
        notify=notices.append,
        clock=lambda: MONDAY,
    )


def test_start_materializes_existing_routines_once(session_factory) -> None:
    store = CountingStore(session_factory, "user-1")
    store.routines.create({"title": "Gym", "frequency": [1, 3], "start_date": MONDAY})
    session = make_session(store)

    session.start()

    assert session.is_loading is False
    assert len(session.tasks) == 9
    assert store.commits == 1


def test_feedback_loop_stops_after_one_write(session_factory) -> None:
    store = CountingStore(session_factory, "user-1")
    session = make_session(store)
    session.start()

    session.add_routine("Gym", [1, 3], MONDAY)
    session.add_task("Dentist", MONDAY)

    # One write for the routine record, one batch of instances, one manual task.
    assert store.commits == 1
    assert len(session.tasks) == 10
    assert len(store.tasks.list_all()) == 10


def test_no_materialization_without_routines(session_factory) -> None:
    store = CountingStore(session_factory, "user-1")
    session = make_session(store)
    session.start()

    session.add_task("Dentist", MONDAY)

    assert store.commits == 0
    assert [task.title for task in session.tasks] == ["Dentist"]


def test_deleted_routine_instances_are_not_regenerated(session_factory) -> None:
    store = CountingStore(session_factory, "user-1")
    session = make_session(store)
    session.start()
    routine_id = session.add_routine("Gym", [1], MONDAY)
    first = min(session.tasks, key=lambda task: task.due_date)
    session.toggle_complete(first)

    removed = session.delete_routine(routine_id)

    assert len(removed) == 4
    assert session.routines == ()
    assert [task.id for task in session.tasks] == [first.id]
    assert session.routine_title(first.routine_id) is None


def test_materialization_failure_is_reported_not_raised(session_factory) -> None:
    store = CountingStore(session_factory, "user-1")
    notices: list[str] = []
    session = make_session(store, notices)
    session.start()
    store.fail = True

    routine_id = session.add_routine("Gym", [1], MONDAY)

    assert routine_id is not None
    assert session.tasks == ()
    assert notices and "store offline" in notices[0]


def test_next_change_retries_after_failure(session_factory) -> None:
    store = CountingStore(session_factory, "user-1")
    session = make_session(store, [])
    session.start()
    store.fail = True
    session.add_routine("Gym", [1], MONDAY)
    store.fail = False

    session.add_task("Dentist", MONDAY)

    assert len([task for task in session.tasks if task.is_routine]) == 5


def test_validation_failure_is_reported(session_factory) -> None:
    notices: list[str] = []
    session = make_session(PlannerStore(session_factory, "user-1"), notices)
    session.start()

    assert session.add_task("   ", MONDAY) is None
    assert session.add_routine("Gym", [], MONDAY) is None
    assert len(notices) == 2


def test_unavailable_store_turns_operations_into_no_ops() -> None:
    notices: list[str] = []
    session = make_session(PlannerStore(None, None), notices)

    session.start()

    assert session.add_task("Dentist", MONDAY) is None
    assert session.delete_task("missing") is None
    assert session.delete_routine("missing") is None
    assert session.is_loading is True
    assert notices == []


def test_apply_plan_adds_prefixed_tasks(session_factory) -> None:
    store = PlannerStore(session_factory, "user-1")
    session = make_session(store)
    session.start()

    created = session.apply_plan([PlanStep("Research", 0), PlanStep("Launch", 8)])

    assert len(created) == 2
    due = {task.title: task.due_date for task in session.tasks}
    assert due == {"[AI] Research": MONDAY, "[AI] Launch": MONDAY + timedelta(days=8)}


def test_generate_plan_with_unknown_provider_is_reported(session_factory) -> None:
    notices: list[str] = []
    session = make_session(PlannerStore(session_factory, "user-1"), notices)

    assert session.generate_plan("Learn Go", "skynet", "key") is None
    assert "unknown provider" in notices[0]


def test_stop_detaches_from_feeds(session_factory) -> None:
    store = PlannerStore(session_factory, "user-1")
    session = make_session(store)
    session.start()
    session.stop()

    store.tasks.create({"title": "Dentist", "due_date": MONDAY})

    assert session.tasks == ()


def test_update_routine_moves_open_instances_to_new_days(session_factory) -> None:
    store = CountingStore(session_factory, "user-1")
    session = make_session(store)
    session.start()
    routine_id = session.add_routine("Gym", [1], MONDAY)

    removed = session.update_routine(routine_id, {"title": "Swim", "frequency": [2]})

    assert len(removed) == 5
    assert sorted(task.due_date.day for task in session.tasks) == [3, 10, 17, 24, 31]
    assert {task.title for task in session.tasks} == {"Swim"}
    assert session.routine_title(routine_id) == "Swim"


def test_update_routine_failure_is_reported(session_factory) -> None:
    notices: list[str] = []
    session = make_session(PlannerStore(session_factory, "user-1"), notices)
    session.start()
    routine_id = session.add_routine("Gym", [1], MONDAY)

    assert session.update_routine(routine_id, {"frequency": []}) is None
    assert session.update_routine("missing", {"title": "Swim"}) is None
    assert len(notices) == 2
    assert len(session.tasks) == 5
