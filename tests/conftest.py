from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from canvasletter.adapters.sqlite.migrator import SQLiteMigrator
from canvasletter.adapters.sqlite.repos import (
    SQLiteNewsletterRepo,
    SQLiteShareTokenRepo,
    SQLiteUserRepo,
)
from canvasletter.domain.entities import Newsletter, User
from canvasletter.rules.loader import load_rules

PROJECT_ROOT = Path(__file__).resolve().parent.parent
MIGRATIONS_DIR = PROJECT_ROOT / "migrations"
RULES_PATH = PROJECT_ROOT / "rules.yaml"


class MockTimePort:
    """Mock time provider."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now or datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, seconds: int) -> None:
        self._now += timedelta(seconds=seconds)


@pytest.fixture
def rules():
    """Real rules from the project root."""
    return load_rules(RULES_PATH)


@pytest.fixture
def clock() -> MockTimePort:
    return MockTimePort()


@pytest.fixture
def db_path(tmp_path) -> str:
    """Temporary database with every migration applied."""
    path = str(tmp_path / "canvasletter.db")
    SQLiteMigrator(path, str(MIGRATIONS_DIR)).run_migrations()
    return path


@pytest.fixture
def user_repo(db_path) -> SQLiteUserRepo:
    return SQLiteUserRepo(db_path)


@pytest.fixture
def newsletter_repo(db_path) -> SQLiteNewsletterRepo:
    return SQLiteNewsletterRepo(db_path)


@pytest.fixture
def share_repo(db_path) -> SQLiteShareTokenRepo:
    return SQLiteShareTokenRepo(db_path)


@pytest.fixture
def owner(user_repo) -> User:
    return user_repo.save(User(email="owner@example.com", display_name="Owner"))


@pytest.fixture
def stored_newsletter(newsletter_repo, owner, clock) -> Newsletter:
    """Header section C1 (T1, I1) plus a loose text block X."""
    created = clock.now_utc() - timedelta(days=1)
    return newsletter_repo.save(
        Newsletter(
            owner_user_id=owner.id,
            title="Weekly",
            blocks=[
                {
                    "id": "C1",
                    "type": "container",
                    "position": {"x": 0, "y": 0},
                    "size": {"width": 600, "height": 300},
                    "styles": {},
                    "zIndex": 1,
                    "content": {},
                    "children": ["T1", "I1"],
                    "sectionMetadata": {
                        "sectionId": "section-1718000000000-abc1234",
                        "sectionType": "header",
                        "createdBy": "manual",
                    },
                },
                {
                    "id": "T1",
                    "type": "text",
                    "position": {"x": 10, "y": 10},
                    "size": {"width": 200, "height": 100},
                    "styles": {"fontSize": 16},
                    "zIndex": 2,
                    "content": "Hello readers",
                },
                {
                    "id": "I1",
                    "type": "image",
                    "position": {"x": 300, "y": 10},
                    "size": {"width": 200, "height": 200},
                    "styles": {},
                    "zIndex": 3,
                    "content": "https://example.com/a.png",
                },
                {
                    "id": "X",
                    "type": "text",
                    "position": {"x": 0, "y": 400},
                    "size": {"width": 200, "height": 100},
                    "styles": {},
                    "zIndex": 4,
                    "content": "Footer note",
                },
            ],
            structure_json={"layout": "single"},
            created_at=created,
            updated_at=created,
        )
    )
