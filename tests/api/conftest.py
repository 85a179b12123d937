from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from canvasletter.api import deps
from canvasletter.api.routes import newsletters, sections, shares
from canvasletter.domain.entities import ShareToken, User


@pytest.fixture
def app(rules, clock, user_repo, newsletter_repo, share_repo, owner) -> FastAPI:
    """Test FastAPI app with every route, backed by the temporary database."""
    app = FastAPI()
    app.include_router(shares.router, prefix="/api/shares")
    app.include_router(newsletters.router, prefix="/api/newsletters")
    app.include_router(sections.router, prefix="/api/sections")

    app.dependency_overrides[deps.get_rules] = lambda: rules
    app.dependency_overrides[deps.get_clock] = lambda: clock
    app.dependency_overrides[deps.get_user_repo] = lambda: user_repo
    app.dependency_overrides[deps.get_newsletter_repo] = lambda: newsletter_repo
    app.dependency_overrides[deps.get_share_repo] = lambda: share_repo
    app.dependency_overrides[deps.get_current_user] = lambda: owner

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client."""
    return TestClient(app)


@pytest.fixture
def stranger(user_repo) -> User:
    return user_repo.save(User(email="stranger@example.com", display_name="Stranger"))


@pytest.fixture
def make_share(share_repo, owner, stored_newsletter, clock):
    """Insert a share token directly, bypassing creation policy."""

    def _make(token: str, role: str = "viewer", expires_in: int | None = None) -> ShareToken:
        expires_at = clock.now_utc() + timedelta(seconds=expires_in) if expires_in else None
        return share_repo.create(
            ShareToken(
                token=token,
                newsletter_id=stored_newsletter.id,
                role=role,
                created_by=owner.id,
                expires_at=expires_at,
                created_at=clock.now_utc(),
            )
        )

    return _make
