"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import paths for backend and root-level tool
    modules, plus in-memory stand-ins for the Mongo collections.
"""

from __future__ import annotations

import copy
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]
_REPO_ROOT = _THIS_FILE.parents[2]

for candidate in (str(_BACKEND_DIR), str(_REPO_ROOT)):
    if candidate not in sys.path:
        sys.path.insert(0, candidate)


class FakeCollection:
    def __init__(self, docs=None, *, fail_writes: bool = False):
        self.docs = [copy.deepcopy(doc) for doc in (docs or [])]
        self.fail_writes = fail_writes

    async def find_one(self, query, projection=None):
        for doc in self.docs:
            if all(doc.get(key) == value for key, value in query.items()):
                return copy.deepcopy(doc)
        return None

    async def replace_one(self, query, replacement, upsert=False):
        if self.fail_writes:
            raise RuntimeError("write failed")
        for idx, doc in enumerate(self.docs):
            if all(doc.get(key) == value for key, value in query.items()):
                self.docs[idx] = copy.deepcopy(replacement)
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if upsert:
            self.docs.append(copy.deepcopy(replacement))
            return SimpleNamespace(matched_count=0, upserted_id=replacement.get("_id"))
        return SimpleNamespace(matched_count=0, upserted_id=None)

    async def insert_one(self, doc):
        if self.fail_writes:
            raise RuntimeError("write failed")
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=len(self.docs))

    async def create_index(self, *_args, **_kwargs):
        return "ok"


@pytest.fixture
def fake_db():
    return SimpleNamespace(
        bets=FakeCollection(),
        bet_backups=FakeCollection(),
        meta=FakeCollection(),
    )


@pytest.fixture
def patch_db(monkeypatch, fake_db):
    import betoff.database as _db

    monkeypatch.setattr(_db, "db", fake_db, raising=False)
    return fake_db
