"""
Shared test fixtures and stubs for the csrfguard test suite.
"""

from collections.abc import MutableMapping
from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, List, Optional

import pytest

from csrfguard.response import Response


# ============================================================================
# Request / Ctx / Session stubs
# ============================================================================


@dataclass
class FakeRequest:
    """Minimal Request stub for middleware testing."""
    method: str = "GET"
    path: str = "/"
    state: Dict[str, Any] = dc_field(default_factory=dict)


@dataclass
class FakeCtx:
    """Minimal RequestCtx stub."""
    request_id: str = "test-id"
    session: Optional[Any] = None


class FakeSession:
    """Dict-like session that tracks writes the way framework sessions do."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})
        self.writes = 0

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value
        self.writes += 1

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    @property
    def is_dirty(self) -> bool:
        return self.writes > 0


class MarkedSession(FakeSession):
    """Session that, like framework sessions, exposes an explicit mark_dirty()."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        super().__init__(data)
        self.dirty_marks = 0

    def mark_dirty(self) -> None:
        self.dirty_marks += 1


class RegisteredTokenMap:
    """
    Dict-backed store registered as a MutableMapping without subclassing it.

    It has no __reversed__, and __getitem__ takes token names, not positions.
    """

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self):
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)


MutableMapping.register(RegisteredTokenMap)


class RecordingHandler:
    """Async next-handler that records the requests it receives."""

    def __init__(self, status: int = 200, body: bytes = b"OK"):
        self.status = status
        self.body = body
        self.calls: List[FakeRequest] = []

    async def __call__(self, request, ctx):
        self.calls.append(request)
        return Response(self.body, status=self.status)

    @property
    def called(self) -> bool:
        return bool(self.calls)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def make_request():
    """Factory: ``make_request("POST", body={...}, session=...)``."""
    def factory(method: str = "GET", path: str = "/", body=None, session=None, **state):
        req = FakeRequest(method=method, path=path)
        if body is not None:
            req.state["parsed_body"] = body
        if session is not None:
            req.state["session"] = session
        req.state.update(state)
        return req
    return factory


@pytest.fixture
def ctx():
    return FakeCtx()


@pytest.fixture
def make_ctx():
    return FakeCtx


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_marked_session():
    return MarkedSession


@pytest.fixture
def make_registered_map():
    return RegisteredTokenMap
