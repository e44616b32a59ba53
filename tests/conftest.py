"""Shared pytest fixtures.

Services run against an in-memory stand-in for the async pymongo collection
API. It understands only the query and update operators this codebase uses.
"""

import copy
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from coursegate.app import App
from coursegate.config import Config
from coursegate.core.core import Core
from coursegate.core.modules.device.models import DeviceAttributes

_MISSING = object()


def _resolve(doc: Any, path: list[str]) -> list[Any]:
    """Values at a dotted path, fanning out over arrays like MongoDB does."""
    if not path:
        return [doc]
    head, rest = path[0], path[1:]
    if isinstance(doc, dict):
        if head not in doc:
            return [_MISSING]
        return _resolve(doc[head], rest)
    if isinstance(doc, list):
        if head.isdigit():
            index = int(head)
            return _resolve(doc[index], rest) if index < len(doc) else [_MISSING]
        values: list[Any] = []
        for item in doc:
            values.extend(_resolve(item, path))
        return values
    return [_MISSING]


def _match_value(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
        for op, operand in condition.items():
            if op == "$exists":
                if (value is not _MISSING) != bool(operand):
                    return False
            elif op == "$ne":
                if value == operand or (isinstance(value, list) and operand in value):
                    return False
            elif op == "$elemMatch":
                if not isinstance(value, list) or not any(matches(item, operand) for item in value):
                    return False
            elif value is _MISSING or value is None:
                return False
            elif op == "$lt" and not value < operand:
                return False
            elif op == "$lte" and not value <= operand:
                return False
            elif op == "$gt" and not value > operand:
                return False
            elif op == "$gte" and not value >= operand:
                return False
        return True
    if isinstance(value, list) and not isinstance(condition, list):
        return condition in value
    return value == condition


def matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for key, condition in query.items():
        values = _resolve(doc, key.split("."))
        if isinstance(condition, dict) and ("$ne" in condition or "$exists" in condition):
            if not all(_match_value(v, condition) for v in values):
                return False
        elif not any(_match_value(v, condition) for v in values):
            return False
    return True


def _set_path(doc: dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    target = doc
    for part in parents:
        target = target.setdefault(part, {})
    target[leaf] = copy.deepcopy(value)


def _unset_path(doc: dict[str, Any], path: str) -> None:
    *parents, leaf = path.split(".")
    target: Any = doc
    for part in parents:
        target = target.get(part)
        if not isinstance(target, dict):
            return
    target.pop(leaf, None)


@dataclass
class FakeUpdateResult:
    matched_count: int
    modified_count: int


@dataclass
class FakeInsertResult:
    inserted_id: Any


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        def sort_key(doc: dict[str, Any]) -> Any:
            value = _resolve(doc, key.split("."))[0]
            return (value is _MISSING, value if value is not _MISSING else 0)

        self._docs.sort(key=sort_key, reverse=direction < 0)
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._docs = self._docs[:count]
        return self

    def __aiter__(self) -> "FakeCursor":
        self._iter = iter(self._docs)
        return self

    async def __anext__(self) -> dict[str, Any]:
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration from None


class FakeCollection:
    def __init__(self) -> None:
        self.docs: list[dict[str, Any]] = []
        self.indexes: list[Any] = []

    async def create_index(self, keys: Any, **kwargs: Any) -> str:
        self.indexes.append((keys, kwargs))
        return "index"

    async def insert_one(self, doc: dict[str, Any]) -> FakeInsertResult:
        self.docs.append(copy.deepcopy(doc))
        return FakeInsertResult(inserted_id=doc["_id"])

    async def insert_many(self, docs: list[dict[str, Any]]) -> None:
        self.docs.extend(copy.deepcopy(doc) for doc in docs)

    async def find_one(self, query: dict[str, Any], projection: Any = None) -> dict[str, Any] | None:
        doc = next((d for d in self.docs if matches(d, query)), None)
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, query: dict[str, Any] | None = None, projection: Any = None) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self.docs if matches(d, query or {})])

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> FakeUpdateResult:
        doc = next((d for d in self.docs if matches(d, query)), None)
        if doc is None:
            return FakeUpdateResult(matched_count=0, modified_count=0)
        before = copy.deepcopy(doc)
        for path, value in update.get("$set", {}).items():
            _set_path(doc, path, value)
        for path in update.get("$unset", {}):
            _unset_path(doc, path)
        return FakeUpdateResult(matched_count=1, modified_count=int(before != doc))


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


class FakeMongoClient:
    def __init__(self) -> None:
        self.database = FakeDatabase()
        self.closed = False

    def get_database(self, name: str) -> FakeDatabase:
        return self.database

    async def aclose(self) -> None:
        self.closed = True


class Clock:
    """Frozen wall clock; every datetime.now() in the process follows it."""

    def __init__(self, traveller: Any) -> None:
        self._traveller = traveller

    @property
    def current(self) -> datetime:
        return datetime.now(UTC)

    def advance(self, **kwargs: float) -> datetime:
        self._traveller.shift(timedelta(**kwargs))
        return self.current


@pytest.fixture
def clock(time_machine):
    """Freeze time at the current second; tests move it with clock.advance()."""
    time_machine.move_to(datetime.now(UTC).replace(microsecond=0), tick=False)
    return Clock(time_machine)


@pytest.fixture
def config():
    return Config(
        database_url="mongodb://localhost:27017/coursegate_test",
        host="127.0.0.1",
        port=3100,
        debug=True,
        secret_key="test-secret",
        bcrypt_rounds=4,
        scheduler_enabled=False,
        admin_email="admin@example.com",
        admin_password="admin-pass",
    )


@pytest.fixture
def core(config, clock):
    return Core(config, mongo_client=FakeMongoClient())


@pytest.fixture
def services(core):
    return core.services


@pytest.fixture
def app(config, core):
    return App(config, core=core)


@pytest.fixture
def laptop():
    return DeviceAttributes(
        user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36",
        platform="windows",
        browser="chrome",
        screen_resolution="1920x1080",
        timezone="Europe/Berlin",
        language="en-US",
        color_depth="24",
        hardware_concurrency="8",
        max_touch_points="0",
    )


@pytest.fixture
def phone():
    return DeviceAttributes(
        user_agent="Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1",
        platform="ios",
        browser="safari",
        screen_resolution="390x844",
        timezone="Europe/Berlin",
        language="en-US",
        color_depth="32",
        hardware_concurrency="6",
        max_touch_points="5",
    )


@pytest.fixture
async def student(services):
    """A registered identity without a session."""
    return await services.identity.register("Ada Student", "ada@example.com", "secret-pass")
