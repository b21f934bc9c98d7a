from __future__ import annotations

import asyncio
import copy
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import pytest


@dataclass
class FakeApi:
    """In-memory stand-in for :class:`restsync.HttpTransport`.

    Each route holds a queue of responses; the last one is reused once the
    queue is drained. Exceptions are raised instead of returned. A gate
    (``asyncio.Event``) holds a route's requests until it is set.
    """

    routes: dict[tuple[str, str], deque[Any]] = field(default_factory=dict)
    gates: dict[tuple[str, str], asyncio.Event] = field(default_factory=dict)
    calls: list[tuple[str, str, Any]] = field(default_factory=list)

    def add(self, method: str, path: str, *responses: Any) -> None:
        self.routes.setdefault((method, path), deque()).extend(responses)

    def gate(self, method: str, path: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[(method, path)] = event
        return event

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.calls if m == method and p == path)

    async def request(self, method: str, path: str, *, json_body: Any = None) -> Any:
        self.calls.append((method, path, json_body))
        gate = self.gates.get((method, path))
        if gate is not None:
            await gate.wait()
        queue = self.routes.get((method, path))
        if not queue:
            raise AssertionError(f"Unexpected request {method} {path}")
        response = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(response, BaseException):
            raise response
        return copy.deepcopy(response)


@dataclass
class Recorder:
    """Collects positional arguments of every call."""

    calls: list[tuple[Any, ...]] = field(default_factory=list)

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
