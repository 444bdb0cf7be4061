"""Debounced field-level autosave.

Edits are batched per logical group ("workflow" form fields, "materials"
choices). Each edit restarts the group's timer; when it expires
the latest values go out in one persistence call. Saves for the same
group are serialized so they land in submission order.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from roofline.core.config import get_config

logger = logging.getLogger(__name__)

WORKFLOW_GROUP = "workflow"
MATERIALS_GROUP = "materials"

# Columns added by recent migrations; not every backend has them yet, so
# they only travel with an explicit Save & Continue.
AUTOSAVE_EXCLUDED_FIELDS = frozenset({"date_type", "adjuster_not_assigned"})


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask: ...


class ThreadingScheduler:
    """Scheduler backed by daemon ``threading.Timer`` handles."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


def default_group_delays() -> dict[str, float]:
    config = get_config()
    return {
        WORKFLOW_GROUP: config.workflow_autosave_delay,
        MATERIALS_GROUP: config.materials_autosave_delay,
    }


@dataclass
class _PendingBatch:
    fields: dict[str, Any] = field(default_factory=dict)
    task: ScheduledTask | None = None
    generation: int = 0


class AutosaveScheduler:
    """Per-group debounce around a ``persist(fields)`` callable."""

    def __init__(
        self,
        persist: Callable[[dict[str, Any]], Any],
        scheduler: Scheduler | None = None,
        delays: dict[str, float] | None = None,
        excluded_fields: frozenset[str] = AUTOSAVE_EXCLUDED_FIELDS,
        on_saved: Callable[[str, dict[str, Any], Any], None] | None = None,
        on_error: Callable[[str, Exception], None] | None = None,
    ) -> None:
        self._persist = persist
        self._scheduler = scheduler or ThreadingScheduler()
        self._delays = delays if delays is not None else default_group_delays()
        self._excluded = excluded_fields
        self._on_saved = on_saved
        self._on_error = on_error
        self._batches: dict[str, _PendingBatch] = {}
        self._issued: dict[str, int] = {}
        self._served: dict[str, int] = {}
        self._turn = threading.Condition()
        self._lock = threading.Lock()
        self._closed = False
        self._saving: set[str] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    def is_dirty(self, group: str | None = None) -> bool:
        with self._lock:
            if group is None:
                return any(batch.fields for batch in self._batches.values())
            batch = self._batches.get(group)
            return bool(batch and batch.fields)

    def is_saving(self, group: str | None = None) -> bool:
        with self._lock:
            return bool(self._saving) if group is None else group in self._saving

    def schedule(self, group: str, fields: dict[str, Any]) -> bool:
        """Queue ``fields`` for ``group`` and restart its debounce window.

        Returns False when nothing eligible was queued.
        """
        eligible = {key: value for key, value in fields.items() if key not in self._excluded}
        skipped = sorted(set(fields) - set(eligible))
        if skipped:
            logger.debug(
                "autosave.fields_excluded",
                extra={"event": "autosave.fields_excluded", "group": group, "fields": skipped},
            )
        if not eligible:
            return False
        if group not in self._delays:
            raise ValueError(f"Unknown autosave group: {group}")

        with self._lock:
            if self._closed:
                return False
            batch = self._batches.setdefault(group, _PendingBatch())
            if batch.task is not None:
                batch.task.cancel()
            batch.fields.update(eligible)
            batch.generation += 1
            generation = batch.generation
            batch.task = self._scheduler.call_later(
                self._delays[group], lambda: self._fire(group, generation)
            )
        return True

    def _take(self, group: str, generation: int | None) -> tuple[dict[str, Any], int]:
        with self._lock:
            batch = self._batches.get(group)
            if batch is None or not batch.fields:
                return {}, -1
            if generation is not None and generation != batch.generation:
                # Superseded by a later edit.
                return {}, -1
            payload = batch.fields
            batch.fields = {}
            batch.task = None
            ticket = self._issued.get(group, 0)
            self._issued[group] = ticket + 1
            self._saving.add(group)
            return payload, ticket

    def _fire(self, group: str, generation: int) -> None:
        payload, ticket = self._take(group, generation)
        if payload:
            self._save(group, payload, ticket)

    def _wait_turn(self, group: str, ticket: int) -> None:
        with self._turn:
            while self._served.get(group, 0) != ticket:
                self._turn.wait()

    def _finish_turn(self, group: str) -> bool:
        """Hand the group to the next ticket; returns True once the scheduler is closed."""
        with self._turn:
            self._served[group] = self._served.get(group, 0) + 1
            self._turn.notify_all()
        with self._lock:
            if self._served[group] == self._issued.get(group, 0):
                self._saving.discard(group)
            return self._closed

    def _save(self, group: str, payload: dict[str, Any], ticket: int) -> None:
        # Tickets are issued under the batch lock, so saves run in submission order.
        self._wait_turn(group, ticket)
        try:
            result = self._persist(payload)
        except Exception as exc:
            closed = self._finish_turn(group)
            logger.warning(
                "autosave.failed",
                extra={"event": "autosave.failed", "group": group, "fields": sorted(payload)},
            )
            if self._on_error is not None and not closed:
                self._on_error(group, exc)
            return

        closed = self._finish_turn(group)
        logger.debug(
            "autosave.saved",
            extra={"event": "autosave.saved", "group": group, "fields": sorted(payload)},
        )
        if self._on_saved is not None and not closed:
            self._on_saved(group, payload, result)

    def flush(self, group: str | None = None) -> None:
        """Persist pending batches now instead of waiting for their timers."""
        with self._lock:
            groups = [group] if group is not None else list(self._batches)
            for name in groups:
                batch = self._batches.get(name)
                if batch is not None and batch.task is not None:
                    batch.task.cancel()
        for name in groups:
            payload, ticket = self._take(name, None)
            if payload:
                self._save(name, payload, ticket)

    def cancel(self, group: str | None = None) -> dict[str, Any]:
        """Drop pending batches without saving; returns what was discarded."""
        discarded: dict[str, Any] = {}
        with self._lock:
            groups = [group] if group is not None else list(self._batches)
            for name in groups:
                batch = self._batches.pop(name, None)
                if batch is None:
                    continue
                if batch.task is not None:
                    batch.task.cancel()
                discarded.update(batch.fields)
        return discarded

    def close(self, flush: bool = True) -> None:
        """Teardown: flush or cancel pending timers, then stop delivering results.

        A save already in flight completes; its result is just not reported.
        """
        if flush:
            self.flush()
        else:
            self.cancel()
        with self._lock:
            self._closed = True
