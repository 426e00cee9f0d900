"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from frflow.archive import ContentArchive  # noqa: E402
from frflow.core.models import Lesson  # noqa: E402
from frflow.storage import LocalDocumentStore, StorageAdapter  # noqa: E402

# 2026-01-01T00:00:00Z
FIXED_NOW = 1_767_225_600_000


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (real SQLite file)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


class FakeClock:
    """Settable millisecond clock."""

    def __init__(self, now: int = FIXED_NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_lesson_doc():
    """A stored lesson document with two vocabulary words."""
    return {
        "id": "lesson-001",
        "groupId": "au café__A1",
        "topic": "au café",
        "level": "A1",
        "title": [{"text": "Au café", "phonetic": "o ka.fe"}],
        "vocabulary": [
            {
                "word": [{"text": "le café", "phonetic": "lə ka.fe"}],
                "gender": "m",
                "plural": "les cafés",
                "meaning": "coffee",
                "grammar_tag": "n.",
                "example": {"text": [{"text": "Un café, s'il vous plaît."}], "translation": "A coffee, please."},
            },
            {
                "word": [{"text": "la table"}],
                "gender": "f",
                "plural": "les tables",
                "meaning": "table",
                "example": {"text": "La table est libre.", "translation": "The table is free."},
            },
        ],
        "grammar": [
            {
                "point": "Articles définis",
                "explanation": "le / la / les",
                "example": {"text": [{"text": "le café"}], "translation": "the coffee"},
            }
        ],
        "texts": {
            "dialogue": [
                {"role": "A", "name": "Serveur", "text": [{"text": "Bonjour !"}], "translation": "Hello!"},
                {"role": "B", "name": "Marie", "text": [{"text": "Un café, s'il vous plaît."}], "translation": "A coffee, please."},
            ],
            "essay": {
                "title": "Mon café préféré",
                "content": [{"text": [{"text": "J'aime ce café."}], "translation": "I like this café."}],
            },
        },
        "createdAt": FIXED_NOW - 60_000,
    }


@pytest.fixture
def sample_lesson(sample_lesson_doc):
    return Lesson.from_document(sample_lesson_doc)


@pytest.fixture
def local_store(tmp_path):
    """SQLite store in a temporary directory."""
    store = LocalDocumentStore(tmp_path / "local.db")
    yield store
    store.close()


@pytest.fixture
def archive(local_store, clock):
    """Archive over a local-only adapter with a fixed clock."""
    return ContentArchive(StorageAdapter(local_store), clock=clock)
