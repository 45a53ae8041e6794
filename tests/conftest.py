"""Shared stubs for service and router tests."""
from __future__ import annotations

from typing import Any

import pytest

from hallcrm.repositories import app_settings as settings_repo


class DummySession:
    """In-memory stand-in for ``AsyncSession`` covering the calls services make."""

    def __init__(self, objects: dict[str, Any] | None = None) -> None:
        self.added: list[object] = []
        self.objects: dict[str, Any] = dict(objects or {})
        self.commits = 0
        self.rollbacks = 0
        self.flushes = 0

    def add(self, obj: object) -> None:
        if obj not in self.added:
            self.added.append(obj)
        obj_id = getattr(obj, "id", None)
        if obj_id is not None:
            self.objects.setdefault(obj_id, obj)

    async def flush(self) -> None:
        self.flushes += 1

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def refresh(self, obj: object) -> None:
        return None

    async def get(self, model: type, ident: str, **kwargs: Any) -> Any:
        obj = self.objects.get(ident)
        return obj if isinstance(obj, model) else None

    def added_of(self, model: type) -> list[Any]:
        return [obj for obj in self.added if isinstance(obj, model)]

    def _tx(self):
        session = self

        class _Tx:
            async def __aenter__(self_inner):
                return session

            async def __aexit__(self_inner, exc_type, exc, tb):
                return False

        return _Tx()

    def begin(self):  # noqa: D401 - mimic SQLAlchemy's async begin
        return self._tx()

    def begin_nested(self):
        return self._tx()


@pytest.fixture
def session() -> DummySession:
    return DummySession()


@pytest.fixture
def documents(monkeypatch) -> dict[str, dict]:
    """Configuration documents served to ``settings_store`` instead of the database."""

    stored: dict[str, dict] = {}

    async def get_document(session, key):
        return stored.get(key)

    monkeypatch.setattr(settings_repo, "get_document", get_document)
    return stored
