import argparse
import logging
import sys
import threading
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from .config import Config, load_config
from .execution_log import JsonFileExecutionLog
from .extractor import TaskExtractor
from .gmail_client import GmailMessageSource, MessageSourceError
from .llm_client import OpenAIChatClient
from .logging_config import setup_logging
from .models import EmailMessage, ExecutionLogEntry, RunSucceeded, Task, TaskStatus
from .pipeline import RefreshPipeline
from .scheduler import RefreshScheduler
from .task_api import TaskService
from .task_store import JsonFileTaskStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _task_service(config: Config) -> TaskService:
    return TaskService(
        JsonFileTaskStore(config.tasks_path),
        JsonFileExecutionLog(config.execution_log_path),
    )


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _build_scheduler(config: Config) -> RefreshScheduler:
    store = JsonFileTaskStore(config.tasks_path)
    execution_log = JsonFileExecutionLog(config.execution_log_path)
    extractor = TaskExtractor(OpenAIChatClient(config), store)
    pipeline = RefreshPipeline.from_config(
        config,
        source=GmailMessageSource.from_config(config),
        extractor=extractor,
        store=store,
        execution_log=execution_log,
    )
    return RefreshScheduler(pipeline, minute=config.refresh_minute)


def _render_tasks_table(tasks: List[Task]) -> None:
    console = Console()
    table = Table(title="Tasks")

    table.add_column("ID")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Due Date")
    table.add_column("From")
    table.add_column("Description")

    for t in tasks:
        table.add_row(
            t.id,
            t.status.value,
            t.priority.value,
            t.due_date.isoformat() if t.due_date else "",
            t.sender,
            t.description,
        )

    console.print(table)


def _render_task(task: Task) -> None:
    console = Console()
    console.print(f"[bold]{task.id}[/bold] ({task.status.value}, {task.priority.value})")
    console.print(f"  Subject: {task.subject}")
    console.print(f"  From: {task.sender}")
    console.print(f"  Email ID: {task.email_id}")
    if task.due_date:
        console.print(f"  Due: {task.due_date.isoformat()}")
    console.print(f"  Created: {task.created_at.isoformat()}")
    console.print(f"  {task.description}")
    for idx, note in enumerate(task.notes, start=1):
        console.print(f"  Note {idx}: {note}")


def _render_emails_table(emails: List[EmailMessage]) -> None:
    console = Console()
    table = Table(title="Unread Emails")

    table.add_column("ID")
    table.add_column("Date")
    table.add_column("From")
    table.add_column("Subject")

    for e in emails:
        table.add_row(e.id, e.date, e.sender, e.subject)

    console.print(table)


def _render_logs_table(entries: List[ExecutionLogEntry]) -> None:
    console = Console()
    table = Table(title="Task Refresh Runs")

    table.add_column("Timestamp")
    table.add_column("Status")
    table.add_column("Emails Checked")
    table.add_column("Tasks Extracted")
    table.add_column("Error")

    for e in entries:
        table.add_row(
            e.timestamp.isoformat(),
            e.status.value,
            str(e.emails_checked),
            str(e.tasks_extracted),
            e.error or "",
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_refresh(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level)

    result = _build_scheduler(config).trigger_now()
    if isinstance(result, RunSucceeded):
        print(result.summary.message)
        print(f"Total tasks in storage: {result.summary.total_tasks}")
        return 0

    print(f"Task refresh failed: {result.cause}", file=sys.stderr)
    return 1


def cmd_schedule(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level, log_to_file=args.log_file)

    scheduler = _build_scheduler(config)
    if args.run_now:
        scheduler.trigger_now()

    stop_event = threading.Event()
    try:
        scheduler.run_forever(stop_event)
    except KeyboardInterrupt:
        stop_event.set()
        logging.info("Scheduler stopped.")
    return 0


def cmd_show_tasks(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level)

    tasks = _task_service(config).list_tasks()
    if args.pending:
        tasks = [t for t in tasks if t.status == TaskStatus.PENDING]
    _render_tasks_table(tasks)
    return 0


def cmd_show_task(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level)

    task = _task_service(config).get_task(args.id)
    if task is None:
        print(f"Task {args.id!r} not found.")
        return 1
    _render_task(task)
    return 0


def cmd_complete_task(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level)

    result = _task_service(config).mark_complete(args.id)
    print(f"{args.id}: {result.message}")
    return 0 if result.success else 1


def cmd_add_note(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level)

    result = _task_service(config).add_note(args.id, args.note)
    print(f"{args.id}: {result.message}")
    return 0 if result.success else 1


def cmd_show_emails(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level)

    service = TaskService(
        JsonFileTaskStore(config.tasks_path),
        JsonFileExecutionLog(config.execution_log_path),
        source=GmailMessageSource.from_config(config),
        body_char_limit=config.body_char_limit,
    )
    try:
        result = service.preview_emails(args.max)
    except MessageSourceError as e:
        print(f"Failed to fetch emails: {e}", file=sys.stderr)
        return 1

    _render_emails_table(result.emails)
    print(result.message)
    return 0 if result.success else 1


def cmd_show_logs(args: argparse.Namespace) -> int:
    config = load_config()
    setup_logging(config.log_level)

    entries = _task_service(config).get_execution_logs()
    if args.limit:
        entries = entries[-args.limit :]
    _render_logs_table(entries)
    return 0


# ---------------------------------------------------------------------------
# Main CLI entrypoint
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inbox-tasks",
        description="Turn unread Gmail messages into a managed task list.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("refresh", help="Run one task refresh now.")

    p_schedule = subparsers.add_parser(
        "schedule",
        help="Run the task refresh every hour (at REFRESH_MINUTE) until interrupted.",
    )
    p_schedule.add_argument(
        "--run-now",
        action="store_true",
        help="Also run one refresh immediately before waiting for the schedule.",
    )
    p_schedule.add_argument(
        "--log-file",
        action="store_true",
        help="Also write logs to logs/inbox_tasks.log.",
    )

    p_show = subparsers.add_parser("show-tasks", help="Show current tasks.")
    p_show.add_argument(
        "--pending",
        action="store_true",
        help="Only show pending tasks.",
    )

    p_show_task = subparsers.add_parser("show-task", help="Show one task with its notes.")
    p_show_task.add_argument("id", type=str, help="ID of the task.")

    p_complete = subparsers.add_parser("complete-task", help="Mark a task as completed.")
    p_complete.add_argument("id", type=str, help="ID of the task to mark as completed.")

    p_note = subparsers.add_parser("add-note", help="Append a note to a task.")
    p_note.add_argument("id", type=str, help="ID of the task.")
    p_note.add_argument("note", type=str, help="Note text.")

    p_emails = subparsers.add_parser(
        "show-emails",
        help="List unread, non-promotional inbox emails without extracting tasks.",
    )
    p_emails.add_argument(
        "--max",
        type=_positive_int,
        default=10,
        help="Maximum number of unread messages to fetch (default 10).",
    )

    p_logs = subparsers.add_parser("show-logs", help="Show task refresh execution logs.")
    p_logs.add_argument(
        "--limit",
        type=_positive_int,
        default=None,
        help="Only show the most recent N runs.",
    )

    return parser


COMMANDS = {
    "refresh": cmd_refresh,
    "schedule": cmd_schedule,
    "show-tasks": cmd_show_tasks,
    "show-task": cmd_show_task,
    "complete-task": cmd_complete_task,
    "add-note": cmd_add_note,
    "show-emails": cmd_show_emails,
    "show-logs": cmd_show_logs,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
