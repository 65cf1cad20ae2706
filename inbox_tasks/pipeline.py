"""
Refresh pipeline: fetch unread mail, extract tasks, persist and log the run.

Each call to RefreshPipeline.run() is one run moving through

    idle -> fetching_messages -> extracting_tasks -> persisting -> succeeded
                     |                                   |
                     +--------------> failed <-----------+

Stage failures (mail source, persistence) end the run as RunFailed and are
recorded in the execution log. Per-message extraction problems are logged
and skipped. Nothing except the task store and the execution log survives
between runs.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from .config import Config
from .decoder import decode_payload, parse_header, payload_headers
from .eligibility import is_promotional
from .execution_log import ExecutionLogSink
from .extractor import TaskExtractor
from .models import (
    EmailMessage,
    ExecutionLogEntry,
    ExtractionError,
    ExtractionOutcome,
    PipelineState,
    RunFailed,
    RunOutcome,
    RunResult,
    RunSucceeded,
    RunSummary,
    Task,
    TaskExtracted,
)
from .task_store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 20
DEFAULT_BODY_CHAR_LIMIT = 2000


class MessageSource(Protocol):
    def list_unread(self, max_results: int) -> List[str]:
        ...

    def get_message(self, message_id: str) -> Dict[str, Any]:
        ...


def build_email_message(raw: Dict[str, Any], body_char_limit: int = DEFAULT_BODY_CHAR_LIMIT) -> Tuple[EmailMessage, bool]:
    """
    Turn a full Gmail message resource into an EmailMessage.

    Returns (message, eligible). Eligibility is judged on the full decoded
    body; the returned message carries the truncated body.
    """
    headers = payload_headers(raw)
    subject = parse_header(headers, "Subject") or "No Subject"
    sender = parse_header(headers, "From") or "Unknown"
    date = parse_header(headers, "Date") or ""
    body = decode_payload(raw.get("payload"))

    eligible = not is_promotional(sender, subject, body)
    message = EmailMessage(
        id=raw.get("id", ""),
        subject=subject,
        sender=sender,
        date=date,
        body=body[:body_char_limit],
    )
    return message, eligible


class _RunState:
    """Tracks the state of one run; never shared between runs."""

    def __init__(self, provenance: str):
        self.provenance = provenance
        self.state = PipelineState.IDLE
        self.emails_checked = 0
        self.eligible: List[EmailMessage] = []
        self.tasks: List[Task] = []

    def transition(self, new_state: PipelineState) -> None:
        logger.debug("Refresh run (%s): %s -> %s", self.provenance, self.state.value, new_state.value)
        self.state = new_state


class RefreshPipeline:
    def __init__(
        self,
        source: MessageSource,
        extractor: TaskExtractor,
        store: TaskStore,
        execution_log: ExecutionLogSink,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        body_char_limit: int = DEFAULT_BODY_CHAR_LIMIT,
        skip_known_messages: bool = True,
        extraction_workers: int = 1,
    ):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._source = source
        self._extractor = extractor
        self._store = store
        self._log = execution_log
        self._max_messages = max_messages
        self._body_char_limit = body_char_limit
        self._skip_known_messages = skip_known_messages
        self._extraction_workers = max(1, extraction_workers)

    @classmethod
    def from_config(
        cls,
        config: Config,
        source: MessageSource,
        extractor: TaskExtractor,
        store: TaskStore,
        execution_log: ExecutionLogSink,
    ) -> "RefreshPipeline":
        return cls(
            source,
            extractor,
            store,
            execution_log,
            max_messages=config.max_emails_per_run,
            body_char_limit=config.body_char_limit,
            skip_known_messages=config.skip_known_messages,
            extraction_workers=config.extraction_workers,
        )

    def get_execution_logs(self) -> List[ExecutionLogEntry]:
        return self._log.read()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, provenance: str = "manual") -> RunResult:
        run = _RunState(provenance)
        logger.info("Starting task refresh run (%s).", provenance)

        run.transition(PipelineState.FETCHING_MESSAGES)
        try:
            self._fetch(run)
        except Exception as e:
            logger.exception("Error fetching emails: %s", e)
            run.transition(PipelineState.FAILED)
            cause = str(e) or type(e).__name__
            self._append_entry(
                ExecutionLogEntry(
                    emails_checked=0,
                    tasks_extracted=0,
                    status=RunOutcome.ERROR,
                    error=cause,
                )
            )
            return RunFailed(cause=cause, failed_state=PipelineState.FETCHING_MESSAGES)

        run.transition(PipelineState.EXTRACTING_TASKS)
        self._extract(run)

        run.transition(PipelineState.PERSISTING)
        try:
            total_tasks = len(self._store.list_all())
            logger.info("Task list updated. Total tasks in storage: %d", total_tasks)
            self._append_entry(
                ExecutionLogEntry(
                    emails_checked=run.emails_checked,
                    tasks_extracted=len(run.tasks),
                    status=RunOutcome.SUCCESS,
                ),
                raise_errors=True,
            )
        except Exception as e:
            logger.exception("Error updating task list: %s", e)
            run.transition(PipelineState.FAILED)
            cause = str(e) or type(e).__name__
            self._append_entry(
                ExecutionLogEntry(
                    emails_checked=run.emails_checked,
                    tasks_extracted=len(run.tasks),
                    status=RunOutcome.ERROR,
                    error=cause,
                )
            )
            return RunFailed(
                cause=cause,
                failed_state=PipelineState.PERSISTING,
                emails_checked=run.emails_checked,
            )

        run.transition(PipelineState.SUCCEEDED)
        summary = RunSummary(
            emails_checked=run.emails_checked,
            eligible_emails=len(run.eligible),
            tasks_extracted=len(run.tasks),
            total_tasks=total_tasks,
            tasks=run.tasks,
            message=(
                f"Task refresh completed successfully. Extracted {len(run.tasks)} tasks"
                f" from {run.emails_checked} emails."
            ),
        )
        return RunSucceeded(summary=summary)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _fetch(self, run: _RunState) -> None:
        message_ids = self._source.list_unread(self._max_messages)[: self._max_messages]
        eligible: List[EmailMessage] = []
        for message_id in message_ids:
            raw = self._source.get_message(message_id)
            raw.setdefault("id", message_id)
            message, is_eligible = build_email_message(raw, self._body_char_limit)
            if not is_eligible:
                logger.debug("Skipping promotional/automated message %s.", message_id)
                continue
            eligible.append(message)

        # Nothing from a partially fetched batch is kept if any call above raised.
        run.emails_checked = len(message_ids)
        run.eligible = eligible
        logger.info(
            "Fetched %d emails, %d eligible for task extraction.",
            run.emails_checked,
            len(eligible),
        )

    def _extract(self, run: _RunState) -> None:
        logger.info("Extracting tasks from %d emails...", len(run.eligible))
        if self._extraction_workers > 1 and len(run.eligible) > 1:
            with ThreadPoolExecutor(max_workers=self._extraction_workers) as pool:
                outcomes = list(pool.map(self._extract_one, run.eligible))
        else:
            outcomes = [self._extract_one(message) for message in run.eligible]

        run.tasks = [o.task for o in outcomes if isinstance(o, TaskExtracted)]
        failures = sum(1 for o in outcomes if isinstance(o, ExtractionError))
        logger.info(
            "Extracted %d tasks (%d messages failed extraction).",
            len(run.tasks),
            failures,
        )

    def _extract_one(self, message: EmailMessage) -> Optional[ExtractionOutcome]:
        try:
            if self._skip_known_messages and self._store.find_by_message(message.id):
                logger.info("Message %s already has a task; not extracting again.", message.id)
                return None
            return self._extractor.extract(message)
        except Exception as e:
            logger.warning("Unexpected error extracting task from %s: %s", message.id, e)
            return ExtractionError(email_id=message.id, detail=str(e))

    # ------------------------------------------------------------------
    # Execution log
    # ------------------------------------------------------------------

    def _append_entry(self, entry: ExecutionLogEntry, raise_errors: bool = False) -> Optional[ExecutionLogEntry]:
        try:
            self._log.append(entry)
        except Exception:
            if raise_errors:
                raise
            logger.exception("Could not append execution log entry.")
            return None

        logger.info(
            "[Task Refresh] %s status=%s emails_checked=%d tasks_extracted=%d",
            entry.timestamp.astimezone(timezone.utc).isoformat(),
            entry.status.value,
            entry.emails_checked,
            entry.tasks_extracted,
        )
        if entry.error:
            logger.error("[Task Refresh] error: %s", entry.error)
        return entry
