"""
Pytest configuration and shared fixtures.
"""

import pytest
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from slugfill.database import GlossaryEntry, init_database, get_session
from slugfill.logger import get_logger, reset_logger


@pytest.fixture(autouse=True)
def isolated_logger(tmp_path):
    """Give every test a fresh global logger writing under tmp_path."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield logger
    reset_logger()


class FakeSlugStore:
    """In-memory collision counter: slug -> ids of active rows holding it."""

    def __init__(self, rows: Optional[Dict[str, List[int]]] = None):
        self.rows = {slug: list(ids) for slug, ids in (rows or {}).items()}
        self.queries: List[Tuple[str, int]] = []

    def take(self, slug: str, row_id: int) -> None:
        self.rows.setdefault(slug, []).append(row_id)

    def count(self, slug: str, exclude_id: int) -> int:
        self.queries.append((slug, exclude_id))
        return len([i for i in self.rows.get(slug, []) if i != exclude_id])

    @property
    def queried_slugs(self) -> List[str]:
        return [slug for slug, _ in self.queries]


@pytest.fixture
def fake_store() -> FakeSlugStore:
    return FakeSlugStore()


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Create an empty glossary database file."""
    path = tmp_path / "glossary.db"
    init_database(path)
    return path


@pytest.fixture
def db_session(db_path):
    """Session on the empty glossary database."""
    session = get_session(db_path)
    yield session
    session.close()


def add_entries(session, entries) -> None:
    """Insert (uid, title, path_segment, deleted) tuples and commit."""
    for uid, title, slug, deleted in entries:
        session.add(GlossaryEntry(uid=uid, title=title, path_segment=slug, deleted=deleted))
    session.commit()


def slugs_by_uid(session) -> Dict[int, Optional[str]]:
    session.expire_all()
    return {e.uid: e.path_segment for e in session.query(GlossaryEntry).order_by(GlossaryEntry.uid)}


@pytest.fixture
def seeded_session(db_session):
    """
    Glossary with a mix of filled, blank, untitled and deleted rows.

    uid 1  "Hello World"   hello-world  (already filled)
    uid 2  "Hello World"   ''           -> hello-world-1
    uid 3  "Hello  World!" NULL         -> hello-world-2
    uid 4  ""              ''           stays blank
    uid 5  "Apfel"         apfel        deleted, does not block uid 6
    uid 6  "Äpfel"         NULL         -> apfel
    uid 7  None            NULL         stays blank
    """
    add_entries(db_session, [
        (1, "Hello World", "hello-world", 0),
        (2, "Hello World", "", 0),
        (3, "Hello  World!", None, 0),
        (4, "", "", 0),
        (5, "Apfel", "apfel", 1),
        (6, "Äpfel", None, 0),
        (7, None, None, 0),
    ])
    return db_session
