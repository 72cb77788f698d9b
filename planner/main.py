from __future__ import annotations

import argparse
import logging
import sys
from datetime import date

from planner.config import SETTINGS, Settings
from planner.domain.calendar import (
    SHORT_DAY_NAMES,
    WEEK_ORDER,
    add_months,
    frequency_label,
    month_grid,
    week_days,
    weekday_index,
)
from planner.domain.entities import TaskEntity
from planner.domain.enums import TaskFilterKey, Weekday
from planner.domain.errors import PlannerError, StoreUnavailableError, ValidationError
from planner.domain.filters import TaskFilters
from planner.domain.validation import coerce_date
from planner.infra.db import init_db
from planner.infra.identity import sign_in
from planner.infra.logging import setup_logging
from planner.infra.store import PlannerStore
from planner.services.ai_planner import AIPlanner
from planner.services.materializer import RoutineMaterializer
from planner.services.planner_session import PlannerSession
from planner.services.task_service import (
    completed_history,
    compute_stats,
    filter_tasks,
    overdue_tasks,
    tasks_for_day,
)

logger = logging.getLogger(__name__)

DAY_ALIASES = {day.name[:3].lower(): day.value for day in Weekday}


def parse_days(value: str) -> list[int]:
    days = []
    for part in value.split(","):
        part = part.strip().lower()
        if not part:
            continue
        if part in ("daily", "all"):
            return list(range(7))
        if part[:3] in DAY_ALIASES:
            days.append(DAY_ALIASES[part[:3]])
        elif part.isdigit():
            days.append(int(part))
        else:
            raise argparse.ArgumentTypeError(f"unknown weekday: {part}")
    return days


def parse_day(value: str) -> date:
    try:
        return coerce_date(value, "date")
    except ValidationError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _resolve(session: PlannerSession, prefix: str, kind: str = "task") -> str:
    records = session.tasks if kind == "task" else session.routines
    matches = [record.id for record in records if record.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        return prefix
    raise SystemExit(f"ambiguous {kind} id: {prefix}")


def _format_task(task: TaskEntity, session: PlannerSession) -> str:
    mark = "x" if task.is_completed else " "
    line = f"[{mark}] {task.id[:8]}  {task.title}"
    if task.is_routine:
        routine = session.routine_title(task.routine_id)
        line += "  (routine)" if routine else "  (routine removed)"
    return line


def _print_day(session: PlannerSession, day: date) -> None:
    listing = tasks_for_day(session.tasks, day)
    print(f"{SHORT_DAY_NAMES[weekday_index(day)]} {day.isoformat()}")
    if not listing.due and not listing.completed:
        print("  no tasks")
    for task in listing.due + listing.completed:
        print(f"  {_format_task(task, session)}")


def cmd_day(session: PlannerSession, args: argparse.Namespace) -> int:
    _print_day(session, args.date or date.today())
    return 0


def cmd_week(session: PlannerSession, args: argparse.Namespace) -> int:
    for day in week_days(args.date or date.today()):
        _print_day(session, day)
    return 0


def cmd_month(session: PlannerSession, args: argparse.Namespace) -> int:
    anchor = add_months(args.date or date.today(), args.offset)
    print(anchor.strftime("%B %Y"))
    print(" ".join(f"{SHORT_DAY_NAMES[index]:>4}" for index in WEEK_ORDER))
    grid = month_grid(anchor)
    for row in range(0, len(grid), 7):
        cells = []
        for cell in grid[row:row + 7]:
            if not cell.is_current_month:
                cells.append("    ")
                continue
            busy = "*" if tasks_for_day(session.tasks, cell.date).due else " "
            cells.append(f"{cell.date.day:>3}{busy}")
        print(" ".join(cells))
    return 0


def cmd_list(session: PlannerSession, args: argparse.Namespace) -> int:
    filters = TaskFilters(filter_key=TaskFilterKey(args.filter), search=args.search, due_on=args.on)
    for task in filter_tasks(session.tasks, filters):
        print(f"{task.due_date.isoformat()}  {_format_task(task, session)}")
    return 0


def cmd_overdue(session: PlannerSession, args: argparse.Namespace) -> int:
    tasks = overdue_tasks(session.tasks)
    for task in tasks:
        print(f"{task.due_date.isoformat()}  {_format_task(task, session)}")
    if not tasks:
        print("nothing overdue")
    return 0


def cmd_stats(session: PlannerSession, args: argparse.Namespace) -> int:
    stats = compute_stats(session.tasks)
    for key in ("total", "completed", "active", "overdue"):
        print(f"{key:>10}: {stats[key]}")
    print(f"{'rate':>10}: {stats['rate']}%")
    return 0


def cmd_history(session: PlannerSession, args: argparse.Namespace) -> int:
    for task in completed_history(session.tasks)[: args.limit]:
        print(f"{task.due_date.isoformat()}  {_format_task(task, session)}")
    return 0


def cmd_add(session: PlannerSession, args: argparse.Namespace) -> int:
    task_id = session.add_task(args.title, args.date)
    if task_id:
        print(task_id)
    return 0 if task_id else 1


def cmd_edit(session: PlannerSession, args: argparse.Namespace) -> int:
    fields = {}
    if args.title is not None:
        fields["title"] = args.title
    if args.date is not None:
        fields["due_date"] = args.date
    if not fields:
        print("nothing to change", file=sys.stderr)
        return 1
    session.update_task(_resolve(session, args.id), fields)
    return 0


def cmd_toggle(session: PlannerSession, args: argparse.Namespace) -> int:
    task_id = _resolve(session, args.id)
    task = next((t for t in session.tasks if t.id == task_id), None)
    if task is None:
        print(f"task {args.id} not found", file=sys.stderr)
        return 1
    session.toggle_complete(task)
    return 0


def cmd_rm(session: PlannerSession, args: argparse.Namespace) -> int:
    session.delete_task(_resolve(session, args.id))
    return 0


def cmd_routine_add(session: PlannerSession, args: argparse.Namespace) -> int:
    routine_id = session.add_routine(args.title, args.days, args.start or date.today())
    if routine_id:
        print(routine_id)
    return 0 if routine_id else 1


def cmd_routine_list(session: PlannerSession, args: argparse.Namespace) -> int:
    for routine in sorted(session.routines, key=lambda r: r.title):
        start = routine.start_date.isoformat() if routine.start_date else "-"
        print(f"{routine.id[:8]}  {routine.title}  [{frequency_label(routine.frequency)}] from {start}")
    return 0


def cmd_routine_edit(session: PlannerSession, args: argparse.Namespace) -> int:
    fields = {}
    if args.title is not None:
        fields["title"] = args.title
    if args.days is not None:
        fields["frequency"] = args.days
    if args.start is not None:
        fields["start_date"] = args.start
    if not fields:
        print("nothing to change", file=sys.stderr)
        return 1
    removed = session.update_routine(_resolve(session, args.id, kind="routine"), fields)
    if removed is None:
        return 1
    print(f"updated routine, dropped {len(removed)} open tasks")
    return 0


def cmd_routine_rm(session: PlannerSession, args: argparse.Namespace) -> int:
    removed = session.delete_routine(_resolve(session, args.id, kind="routine"))
    if removed is None:
        return 1
    print(f"removed routine and {len(removed)} open tasks")
    return 0


def cmd_sync(session: PlannerSession, args: argparse.Namespace) -> int:
    try:
        created = session.sync()
    except PlannerError as exc:
        print(f"sync failed: {exc}", file=sys.stderr)
        return 1
    print(f"created {len(created)} routine tasks")
    return 0


def cmd_plan(session: PlannerSession, args: argparse.Namespace) -> int:
    provider = args.provider or SETTINGS.ai_provider
    steps = session.generate_plan(args.goal, provider, args.key or SETTINGS.ai_api_key)
    if not steps:
        return 1
    for step in steps:
        print(f"+{step.days_offset:<3} {step.title}")
    if args.save:
        created = session.apply_plan(steps)
        if created is None:
            return 1
        print(f"added {len(created)} tasks to your plan")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="planner", description="Task and routine planner")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="create the database tables")

    for name, handler, help_text in (
        ("day", cmd_day, "tasks of one day"),
        ("week", cmd_week, "tasks of the week (Monday start)"),
    ):
        view = sub.add_parser(name, help=help_text)
        view.add_argument("date", nargs="?", type=parse_day)
        view.set_defaults(handler=handler)

    month = sub.add_parser("month", help="month grid")
    month.add_argument("date", nargs="?", type=parse_day)
    month.add_argument("--offset", type=int, default=0, help="months forward (negative for back)")
    month.set_defaults(handler=cmd_month)

    task_list = sub.add_parser("list", help="filtered task list")
    task_list.add_argument(
        "--filter",
        choices=[key.value for key in TaskFilterKey],
        default=TaskFilterKey.ALL.value,
    )
    task_list.add_argument("--search")
    task_list.add_argument("--on", type=parse_day, help="only tasks due that day")
    task_list.set_defaults(handler=cmd_list)

    sub.add_parser("overdue", help="open tasks due before today").set_defaults(handler=cmd_overdue)
    sub.add_parser("stats", help="completion statistics").set_defaults(handler=cmd_stats)
    history = sub.add_parser("history", help="completed tasks, newest first")
    history.add_argument("--limit", type=int, default=20)
    history.set_defaults(handler=cmd_history)

    add = sub.add_parser("add", help="add a task")
    add.add_argument("title")
    add.add_argument("--date", type=parse_day)
    add.set_defaults(handler=cmd_add)

    edit = sub.add_parser("edit", help="change title or date of a task")
    edit.add_argument("id")
    edit.add_argument("--title")
    edit.add_argument("--date", type=parse_day)
    edit.set_defaults(handler=cmd_edit)

    toggle = sub.add_parser("toggle", help="mark a task done / not done")
    toggle.add_argument("id")
    toggle.set_defaults(handler=cmd_toggle)

    rm = sub.add_parser("rm", help="delete a task")
    rm.add_argument("id")
    rm.set_defaults(handler=cmd_rm)

    routine = sub.add_parser("routine", help="manage routines")
    routine_sub = routine.add_subparsers(dest="routine_command", required=True)
    routine_add = routine_sub.add_parser("add")
    routine_add.add_argument("title")
    routine_add.add_argument("--days", type=parse_days, required=True, help="e.g. mon,wed or daily")
    routine_add.add_argument("--start", type=parse_day)
    routine_add.set_defaults(handler=cmd_routine_add)
    routine_sub.add_parser("list").set_defaults(handler=cmd_routine_list)
    routine_edit = routine_sub.add_parser("edit")
    routine_edit.add_argument("id")
    routine_edit.add_argument("--title")
    routine_edit.add_argument("--days", type=parse_days)
    routine_edit.add_argument("--start", type=parse_day)
    routine_edit.set_defaults(handler=cmd_routine_edit)
    routine_rm = routine_sub.add_parser("rm")
    routine_rm.add_argument("id")
    routine_rm.set_defaults(handler=cmd_routine_rm)

    sub.add_parser("sync", help="generate routine tasks for the next 30 days").set_defaults(handler=cmd_sync)

    plan = sub.add_parser("plan", help="generate a plan for a goal with AI")
    plan.add_argument("goal")
    plan.add_argument("--provider", choices=["mock", "gemini", "openai"])
    plan.add_argument("--key", help="provider API key (defaults to AI_API_KEY)")
    plan.add_argument("--save", action="store_true", help="add the generated tasks")
    plan.set_defaults(handler=cmd_plan)
    return parser


def build_session(settings: Settings, create_schema: bool = False) -> PlannerSession:
    identity = sign_in(settings)
    try:
        session_factory = init_db(settings.database_url, create_schema=create_schema)
    except StoreUnavailableError as exc:
        logger.warning("store unavailable: %s", exc)
        session_factory = None
    store = PlannerStore(session_factory, identity.user_id)
    return PlannerSession(
        store,
        materializer=RoutineMaterializer(store, horizon_days=settings.horizon_days),
        ai_planner=AIPlanner(
            gemini_model=settings.gemini_model,
            openai_model=settings.openai_model,
            timeout=settings.ai_timeout,
        ),
        notify=lambda message: print(message, file=sys.stderr),
    )


def main(argv: list[str] | None = None) -> int:
    setup_logging(SETTINGS)
    args = build_parser().parse_args(argv)

    session = build_session(SETTINGS, create_schema=args.command == "init")
    if args.command == "init":
        if not session.store.is_ready:
            print("DATABASE_URL is not set. Create a .env file with your connection string.", file=sys.stderr)
            return 2
        print(f"schema ready for user {session.store.user_id}")
        return 0

    if not session.store.is_ready and args.command != "plan":
        print("Database is not connected. Set DATABASE_URL and try again.", file=sys.stderr)
        return 2

    session.start()
    try:
        return args.handler(session, args)
    finally:
        session.stop()


if __name__ == "__main__":
    sys.exit(main())
