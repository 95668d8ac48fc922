"""Execute a chat response's actions against the outside world.

Actions run sequentially in array order and each response is dispatched at
most once: sending the same note twice or navigating twice is visible to
the visitor, so a repeated ``dispatch`` of a response id is a no-op.

Navigation is fire-and-continue: it is scheduled ``navigation_delay``
seconds later so the visitor can read the reply before the page changes.
Every other action runs inline; a failing collaborator is logged and
counted, never raised.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from concierge.models import (
    ChatResponse,
    LearnMemoryAction,
    LearnMemoryPayload,
    NavigateAction,
    RequestHumanAction,
    SaveNoteAction,
    SaveNotePayload,
)
from concierge.services.metrics import metrics

logger = logging.getLogger(__name__)

DEFAULT_NAVIGATION_DELAY_SECONDS = 1.5
_MAX_REMEMBERED_RESPONSES = 1_024

Scheduler = Callable[[float, Callable[[], None]], None]


class ActionSink(Protocol):
    """The collaborators the dispatcher drives (note storage, router, ...)."""

    def save_note(self, payload: SaveNotePayload) -> None: ...

    def navigate(self, path: str) -> None: ...

    def learn_memory(self, payload: LearnMemoryPayload) -> None: ...

    def request_human(self) -> None: ...


class LoggingActionSink:
    """Sink used by the CLI and the API when no front-end is attached."""

    def save_note(self, payload: SaveNotePayload) -> None:
        logger.info(
            "Note from %s (%s) via %s: %s",
            payload.user_name, payload.user_contact, payload.source, payload.message,
        )

    def navigate(self, path: str) -> None:
        logger.info("Navigate to %s", path)

    def learn_memory(self, payload: LearnMemoryPayload) -> None:
        logger.info("Learned [%s]: %s", payload.topic, payload.content)

    def request_human(self) -> None:
        logger.info("Human handoff requested")


def _timer_scheduler(delay: float, fn: Callable[[], None]) -> None:
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()


@dataclass
class DispatchReport:
    executed: list[str] = field(default_factory=list)
    scheduled: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    already_dispatched: bool = False


class ActionDispatcher:
    def __init__(
        self,
        sink: ActionSink,
        *,
        navigation_delay: float = DEFAULT_NAVIGATION_DELAY_SECONDS,
        schedule: Scheduler | None = None,
    ) -> None:
        self._sink = sink
        self._navigation_delay = navigation_delay
        self._schedule = schedule or _timer_scheduler
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()

    def _claim(self, response_id: str) -> bool:
        """Mark *response_id* as dispatched; ``False`` if it already was."""
        with self._lock:
            if response_id in self._seen:
                return False
            self._seen[response_id] = None
            if len(self._seen) > _MAX_REMEMBERED_RESPONSES:
                self._seen.popitem(last=False)
            return True

    def _navigate_later(self, path: str) -> None:
        def _go() -> None:
            try:
                self._sink.navigate(path)
                metrics.record_action("navigate", success=True)
            except Exception:
                logger.exception("Delayed navigation to %s failed", path)
                metrics.record_action("navigate", success=False)

        self._schedule(self._navigation_delay, _go)

    def dispatch(self, response: ChatResponse) -> DispatchReport:
        """Run *response*'s actions once, in order."""
        report = DispatchReport()
        if not self._claim(response.id):
            logger.debug("Response %s already dispatched; skipping", response.id)
            report.already_dispatched = True
            return report

        for action in response.actions:
            if isinstance(action, NavigateAction):
                try:
                    self._navigate_later(action.payload.path)
                    report.scheduled.append(action.type)
                except Exception:
                    logger.exception("Could not schedule navigation")
                    report.failed.append(action.type)
                continue

            try:
                if isinstance(action, SaveNoteAction):
                    self._sink.save_note(action.payload)
                elif isinstance(action, LearnMemoryAction):
                    self._sink.learn_memory(action.payload)
                elif isinstance(action, RequestHumanAction):
                    self._sink.request_human()
                report.executed.append(action.type)
                metrics.record_action(action.type, success=True)
            except Exception:
                logger.exception("Action %s failed", action.type)
                report.failed.append(action.type)
                metrics.record_action(action.type, success=False)

        return report
