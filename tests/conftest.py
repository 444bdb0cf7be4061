from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from roofline.core.exceptions import NotFoundError, PersistenceError
from roofline.database.models import Base
from roofline.schemas.deals import Deal, RepProfile, merge_pending

FIXED_NOW = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)


class _ManualTask:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler: time only moves when a test calls ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.tasks: list[_ManualTask] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualTask:
        task = _ManualTask(self.now + delay, callback)
        self.tasks.append(task)
        return task

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted(
                (task for task in self.tasks if not task.cancelled and task.due <= target),
                key=lambda task: task.due,
            )
            if not due:
                break
            task = due[0]
            self.tasks.remove(task)
            self.now = task.due
            task.callback()
        self.now = target

    @property
    def active(self) -> list[_ManualTask]:
        return [task for task in self.tasks if not task.cancelled]


class InMemoryDeals:
    """Deals gateway double that records every update call."""

    def __init__(self, *deals: Deal, reps: dict[str, RepProfile] | None = None) -> None:
        self.deals = {deal.id: deal for deal in deals}
        self.reps = reps or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail_with: Exception | None = None

    def get(self, deal_id: str) -> Deal:
        if deal_id not in self.deals:
            raise NotFoundError(f"Deal {deal_id} not found")
        return self.deals[deal_id]

    def update(self, deal_id: str, fields: dict[str, Any]) -> Deal:
        self.calls.append((deal_id, dict(fields)))
        if self.fail_with is not None:
            raise self.fail_with
        saved = merge_pending(self.get(deal_id), fields)
        self.deals[deal_id] = saved
        return saved

    def create_from_pin(self, pin_id: str) -> Deal:
        deal = Deal(id=f"deal-from-{pin_id}")
        self.deals[deal.id] = deal
        return deal

    def get_rep(self, rep_id: str | None) -> RepProfile | None:
        return self.reps.get(rep_id) if rep_id else None


class FakeFiles:
    def __init__(self) -> None:
        self.uploads: list[dict[str, Any]] = []
        self.reject_after: int | None = None

    def upload_file(self, data: bytes, name: str, mime_type: str, category: str, deal_id: str) -> str | None:
        if self.reject_after is not None and len(self.uploads) >= self.reject_after:
            return None
        key = f"deals/{deal_id}/{category}/{len(self.uploads)}-{name.rsplit('/', 1)[-1]}"
        self.uploads.append({"data": data, "name": name, "mime_type": mime_type, "category": category, "key": key})
        return key


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def files_gateway() -> FakeFiles:
    return FakeFiles()


@pytest.fixture
def make_deals() -> Callable[..., InMemoryDeals]:
    return InMemoryDeals


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def persistence_failure() -> PersistenceError:
    return PersistenceError("update deal", "backend unavailable")
