"""
In-memory stand-in for RecordStore used by domain tests.
"""

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, Optional, Set

from opsdesk.app.core.exceptions import StoreError
from opsdesk.app.core.result import Result


class FakeStore:
    """
    Keeps rows per model in dicts and records every call.

    Ids listed in `failing_ids` make `update` fail with a StoreError;
    `stale_ids` simulate a concurrent transition between read and write;
    `fail_inserts` makes every insert fail.
    """

    def __init__(self):
        self.rows: Dict[Any, Dict[int, SimpleNamespace]] = {}
        self.calls = []
        self.inserted = []
        self.failing_ids: Set[int] = set()
        self.stale_ids: Set[int] = set()
        self.fail_inserts = False

    def add(self, model, record_id: int, **fields) -> SimpleNamespace:
        row = SimpleNamespace(id=record_id, **fields)
        self.rows.setdefault(model, {})[record_id] = row
        return row

    async def get(self, model, record_id) -> Result[Optional[SimpleNamespace]]:
        self.calls.append(("get", model, record_id))
        row = self.rows.get(model, {}).get(record_id)
        return Result.success(SimpleNamespace(**vars(row)) if row else None)

    async def update(self, model, record_id, fields, expected=None) -> Result[int]:
        self.calls.append(("update", model, record_id, dict(fields)))
        if record_id in self.failing_ids:
            return Result.failure(StoreError(f"Failed to update row {record_id}"))
        row = self.rows.get(model, {}).get(record_id)
        if row is None or record_id in self.stale_ids:
            return Result.success(0)
        for name, value in (expected or {}).items():
            if getattr(row, name) != value:
                return Result.success(0)
        for name, value in fields.items():
            setattr(row, name, value)
        return Result.success(1)

    async def insert(self, model, fields) -> Result[SimpleNamespace]:
        self.calls.append(("insert", model, dict(fields)))
        if self.fail_inserts:
            return Result.failure(StoreError("Failed to insert row"))
        self.inserted.append((model, dict(fields)))
        return Result.success(SimpleNamespace(id=len(self.inserted), **fields))


class InFlightStore(FakeStore):
    """FakeStore whose updates yield to the loop and track peak concurrency."""

    def __init__(self):
        super().__init__()
        self.in_flight = 0
        self.peak_in_flight = 0

    async def update(self, model, record_id, fields, expected=None) -> Result[int]:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            for _ in range(3):
                await asyncio.sleep(0)
            return await super().update(model, record_id, fields, expected)
        finally:
            self.in_flight -= 1
