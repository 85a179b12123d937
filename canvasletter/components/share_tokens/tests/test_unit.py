"""
Share token component unit tests.

Validity table, Gone vs NotFound, read-only links, owner-only management,
idempotent revocation.
"""

from __future__ import annotations

import string
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID, uuid4

import pytest

from canvasletter.components.share_tokens import (
    CreateShareInput,
    CreateShareOutput,
    ListActiveSharesInput,
    ResolvedShare,
    ResolveShareInput,
    RevokeShareInput,
    RevokeShareOutput,
    ShareConfig,
    authorize_mutation,
    generate_share_token,
    invalid_reason,
    is_token_valid,
    resolve,
    run,
    run_create,
    run_list_active,
    run_resolve,
    run_revoke,
    token_fingerprint,
)
from canvasletter.domain.entities import Newsletter, ShareToken, User
from canvasletter.domain.errors import ForbiddenError, GoneError, NotFoundError
from canvasletter.domain.policy import AccessPolicy
from canvasletter.rules.loader import load_rules

RULES_PATH = Path(__file__).resolve().parents[4] / "rules.yaml"
FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)
URL_SAFE = set(string.ascii_letters + string.digits + "-_")


# --- Mocks ---


class MockShareTokenRepo:
    """In-memory share link repository."""

    def __init__(self) -> None:
        self._shares: dict[str, ShareToken] = {}
        self.revoke_calls = 0

    def get(self, token: str) -> ShareToken | None:
        return self._shares.get(token)

    def create(self, share: ShareToken) -> ShareToken:
        self._shares[share.token] = share
        return share

    def mark_revoked(self, token: str) -> None:
        self.revoke_calls += 1
        share = self._shares.get(token)
        if share is not None:
            self._shares[token] = share.model_copy(update={"revoked": True})

    def list_for_newsletter(self, newsletter_id: UUID) -> list[ShareToken]:
        return [s for s in self._shares.values() if s.newsletter_id == newsletter_id]


class MockNewsletterRepo:
    def __init__(self, *newsletters: Newsletter) -> None:
        self._items = {n.id: n for n in newsletters}

    def get_by_id(self, newsletter_id: UUID) -> Newsletter | None:
        return self._items.get(newsletter_id)


class MockTimePort:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self._now = now

    def now_utc(self) -> datetime:
        return self._now


# --- Fixtures ---


@pytest.fixture
def policy() -> AccessPolicy:
    return AccessPolicy(load_rules(RULES_PATH))


@pytest.fixture
def editor_policy(policy: AccessPolicy) -> AccessPolicy:
    """Policy that also allows editor links to be issued."""
    access = policy.rules.access.model_copy(update={"share_creation_roles": ["viewer", "editor"]})
    return AccessPolicy(policy.rules.model_copy(update={"access": access}))


@pytest.fixture
def owner() -> User:
    return User(email="owner@example.com", display_name="Owner")


@pytest.fixture
def stranger() -> User:
    return User(email="someone@example.com", display_name="Someone")


@pytest.fixture
def newsletter(owner: User) -> Newsletter:
    return Newsletter(owner_user_id=owner.id, title="Weekly")


@pytest.fixture
def newsletters(newsletter: Newsletter) -> MockNewsletterRepo:
    return MockNewsletterRepo(newsletter)


@pytest.fixture
def repo() -> MockShareTokenRepo:
    return MockShareTokenRepo()


def make_share(
    newsletter_id: UUID,
    role: str = "viewer",
    revoked: bool = False,
    expires_at: datetime | None = None,
    token: str | None = None,
) -> ShareToken:
    return ShareToken(
        token=token or generate_share_token(),
        newsletter_id=newsletter_id,
        role=role,
        created_by=uuid4(),
        revoked=revoked,
        expires_at=expires_at,
        created_at=FIXED_NOW - timedelta(days=1),
    )


# --- Validity ---


class TestValidity:
    """valid iff not revoked and (no expiry or expiry in the future)."""

    @pytest.mark.parametrize(
        ("revoked", "expires_at", "expected"),
        [
            (False, None, None),
            (False, FIXED_NOW + timedelta(seconds=1), None),
            (False, FIXED_NOW, "expired"),
            (False, FIXED_NOW - timedelta(days=1), "expired"),
            (True, None, "revoked"),
            (True, FIXED_NOW + timedelta(days=30), "revoked"),
            (True, FIXED_NOW - timedelta(days=1), "revoked"),
        ],
    )
    def test_validity_table(
        self, revoked: bool, expires_at: datetime | None, expected: str | None
    ) -> None:
        share = make_share(uuid4(), revoked=revoked, expires_at=expires_at)
        assert invalid_reason(share, FIXED_NOW) == expected
        assert is_token_valid(share, FIXED_NOW) is (expected is None)

    def test_naive_expiry_is_treated_as_utc(self) -> None:
        share = make_share(uuid4(), expires_at=datetime(2024, 6, 15, 11, 0, 0))
        assert is_token_valid(share, FIXED_NOW) is False

    def test_generated_tokens_are_unique_and_url_safe(self) -> None:
        tokens = {generate_share_token() for _ in range(100)}
        assert len(tokens) == 100
        assert all(len(t) >= 43 for t in tokens)
        assert all(set(t) <= URL_SAFE for t in tokens)

    def test_fingerprint_does_not_contain_token(self) -> None:
        token = generate_share_token()
        fingerprint = token_fingerprint(token)
        assert fingerprint not in token
        assert fingerprint == token_fingerprint(token)


# --- Resolution ---


class TestResolve:
    """Fresh lookup on every call."""

    def test_unknown_token_is_not_found(self, repo: MockShareTokenRepo) -> None:
        with pytest.raises(NotFoundError):
            resolve("nope", repo, FIXED_NOW)

    def test_empty_token_is_not_found(self, repo: MockShareTokenRepo) -> None:
        with pytest.raises(NotFoundError):
            resolve("", repo, FIXED_NOW)

    def test_valid_viewer(self, repo: MockShareTokenRepo) -> None:
        newsletter_id = uuid4()
        share = repo.create(make_share(newsletter_id))

        resolved = resolve(share.token, repo, FIXED_NOW)

        assert resolved.newsletter_id == newsletter_id
        assert resolved.role == "viewer"
        assert resolved.fingerprint == token_fingerprint(share.token)

    def test_revoked_is_gone_regardless_of_expiry(self, repo: MockShareTokenRepo) -> None:
        share = repo.create(
            make_share(uuid4(), revoked=True, expires_at=FIXED_NOW + timedelta(days=7))
        )
        with pytest.raises(GoneError) as exc_info:
            resolve(share.token, repo, FIXED_NOW)
        assert exc_info.value.reason == "revoked"

    def test_expired_is_gone(self, repo: MockShareTokenRepo) -> None:
        share = repo.create(make_share(uuid4(), expires_at=FIXED_NOW - timedelta(minutes=1)))
        with pytest.raises(GoneError) as exc_info:
            resolve(share.token, repo, FIXED_NOW)
        assert exc_info.value.reason == "expired"

    def test_revocation_applies_to_next_resolution(self, repo: MockShareTokenRepo) -> None:
        share = repo.create(make_share(uuid4(), role="editor"))
        assert resolve(share.token, repo, FIXED_NOW).role == "editor"

        repo.mark_revoked(share.token)

        with pytest.raises(GoneError):
            resolve(share.token, repo, FIXED_NOW)

    def test_run_resolve_loads_newsletter(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        policy: AccessPolicy,
    ) -> None:
        share = repo.create(make_share(newsletter.id))
        result = run_resolve(
            ResolveShareInput(token=share.token),
            repo=repo,
            newsletters=newsletters,
            policy=policy,
            time=MockTimePort(),
        )
        assert result.newsletter.id == newsletter.id
        assert result.resolved.role == "viewer"

    def test_run_resolve_missing_newsletter(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        policy: AccessPolicy,
    ) -> None:
        share = repo.create(make_share(uuid4()))
        with pytest.raises(NotFoundError):
            run_resolve(
                ResolveShareInput(token=share.token),
                repo=repo,
                newsletters=newsletters,
                policy=policy,
                time=MockTimePort(),
            )

    def test_run_resolve_requires_read_permission(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        policy: AccessPolicy,
    ) -> None:
        roles = {**policy.rules.access.roles, "viewer": []}
        access = policy.rules.access.model_copy(update={"roles": roles})
        no_read = AccessPolicy(policy.rules.model_copy(update={"access": access}))
        share = repo.create(make_share(newsletter.id))

        with pytest.raises(ForbiddenError):
            run_resolve(
                ResolveShareInput(token=share.token),
                repo=repo,
                newsletters=newsletters,
                policy=no_read,
                time=MockTimePort(),
            )


# --- Mutation Authorization ---


class TestAuthorizeMutation:
    def test_editor_allowed(self) -> None:
        authorize_mutation(ResolvedShare(newsletter_id=uuid4(), role="editor", fingerprint="x"))

    def test_viewer_denied(self) -> None:
        with pytest.raises(ForbiddenError):
            authorize_mutation(
                ResolvedShare(newsletter_id=uuid4(), role="viewer", fingerprint="x")
            )

    def test_viewer_link_submitting_changes_is_forbidden_not_gone(
        self, repo: MockShareTokenRepo
    ) -> None:
        share = repo.create(make_share(uuid4(), role="viewer"))
        resolved = resolve(share.token, repo, FIXED_NOW)
        with pytest.raises(ForbiddenError) as exc_info:
            authorize_mutation(resolved)
        assert exc_info.value.code == "forbidden"


# --- Creation ---


class TestCreate:
    def test_owner_creates_viewer_link(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        result = run_create(
            CreateShareInput(newsletter_id=newsletter.id, user=owner),
            repo=repo,
            newsletters=newsletters,
            policy=policy,
            time=MockTimePort(),
        )

        assert isinstance(result, CreateShareOutput)
        assert result.share.role == "viewer"
        assert result.share.revoked is False
        assert result.share.expires_at is None
        assert result.share.created_by == owner.id
        assert repo.get(result.share.token) == result.share

    def test_editor_role_is_not_creatable_by_default(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        with pytest.raises(ForbiddenError):
            run_create(
                CreateShareInput(newsletter_id=newsletter.id, user=owner, role="editor"),
                repo=repo,
                newsletters=newsletters,
                policy=policy,
                time=MockTimePort(),
            )
        assert repo.list_for_newsletter(newsletter.id) == []

    def test_editor_role_when_policy_allows(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        editor_policy: AccessPolicy,
    ) -> None:
        result = run_create(
            CreateShareInput(newsletter_id=newsletter.id, user=owner, role="editor"),
            repo=repo,
            newsletters=newsletters,
            policy=editor_policy,
            time=MockTimePort(),
        )
        assert result.share.role == "editor"

    def test_non_owner_forbidden(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        stranger: User,
        policy: AccessPolicy,
    ) -> None:
        with pytest.raises(ForbiddenError):
            run_create(
                CreateShareInput(newsletter_id=newsletter.id, user=stranger),
                repo=repo,
                newsletters=newsletters,
                policy=policy,
                time=MockTimePort(),
            )

    def test_disabled_owner_forbidden(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        disabled = owner.model_copy(update={"status": "disabled"})
        with pytest.raises(ForbiddenError):
            run_create(
                CreateShareInput(newsletter_id=newsletter.id, user=disabled),
                repo=repo,
                newsletters=newsletters,
                policy=policy,
                time=MockTimePort(),
            )

    def test_unknown_newsletter(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        with pytest.raises(NotFoundError):
            run_create(
                CreateShareInput(newsletter_id=uuid4(), user=owner),
                repo=repo,
                newsletters=newsletters,
                policy=policy,
                time=MockTimePort(),
            )

    def test_explicit_expiry(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        expires = FIXED_NOW + timedelta(days=3)
        result = run_create(
            CreateShareInput(newsletter_id=newsletter.id, user=owner, expires_at=expires),
            repo=repo,
            newsletters=newsletters,
            policy=policy,
            time=MockTimePort(),
        )
        assert result.share.expires_at == expires

    def test_past_expiry_rejected(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        with pytest.raises(ValueError):
            run_create(
                CreateShareInput(
                    newsletter_id=newsletter.id,
                    user=owner,
                    expires_at=FIXED_NOW - timedelta(hours=1),
                ),
                repo=repo,
                newsletters=newsletters,
                policy=policy,
                time=MockTimePort(),
            )

    def test_default_expiry_from_config(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        result = run_create(
            CreateShareInput(newsletter_id=newsletter.id, user=owner),
            repo=repo,
            newsletters=newsletters,
            policy=policy,
            time=MockTimePort(),
            config=ShareConfig(default_expiry_days=7),
        )
        assert result.share.expires_at == FIXED_NOW + timedelta(days=7)


# --- Revocation ---


class TestRevoke:
    def test_owner_revokes(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        share = repo.create(make_share(newsletter.id))

        result = run_revoke(
            RevokeShareInput(token=share.token, user=owner),
            repo=repo,
            newsletters=newsletters,
            policy=policy,
        )

        assert result.revoked is True
        assert result.already_revoked is False
        stored = repo.get(share.token)
        assert stored is not None and stored.revoked is True

    def test_revoke_twice_is_idempotent(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        share = repo.create(make_share(newsletter.id))
        inp = RevokeShareInput(token=share.token, user=owner)

        first = run_revoke(inp, repo=repo, newsletters=newsletters, policy=policy)
        second = run_revoke(inp, repo=repo, newsletters=newsletters, policy=policy)

        assert first.revoked is True
        assert second.revoked is True
        assert second.already_revoked is True
        assert repo.revoke_calls == 1
        stored = repo.get(share.token)
        assert stored is not None and stored.revoked is True

    def test_revoking_expired_link_succeeds(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        share = repo.create(make_share(newsletter.id, expires_at=FIXED_NOW - timedelta(days=2)))
        result = run_revoke(
            RevokeShareInput(token=share.token, user=owner),
            repo=repo,
            newsletters=newsletters,
            policy=policy,
        )
        assert result.revoked is True

    def test_non_owner_forbidden(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        stranger: User,
        policy: AccessPolicy,
    ) -> None:
        share = repo.create(make_share(newsletter.id, role="editor"))
        with pytest.raises(ForbiddenError):
            run_revoke(
                RevokeShareInput(token=share.token, user=stranger),
                repo=repo,
                newsletters=newsletters,
                policy=policy,
            )
        stored = repo.get(share.token)
        assert stored is not None and stored.revoked is False

    def test_unknown_token(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        with pytest.raises(NotFoundError):
            run_revoke(
                RevokeShareInput(token="missing", user=owner),
                repo=repo,
                newsletters=newsletters,
                policy=policy,
            )


# --- Listing ---


class TestListActive:
    def test_only_valid_links_listed(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        active = repo.create(make_share(newsletter.id))
        repo.create(make_share(newsletter.id, revoked=True))
        repo.create(make_share(newsletter.id, expires_at=FIXED_NOW - timedelta(seconds=1)))
        repo.create(make_share(uuid4()))

        result = run_list_active(
            ListActiveSharesInput(newsletter_id=newsletter.id, user=owner),
            repo=repo,
            newsletters=newsletters,
            policy=policy,
            time=MockTimePort(),
        )

        assert [s.token for s in result.shares] == [active.token]

    def test_non_owner_forbidden(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        stranger: User,
        policy: AccessPolicy,
    ) -> None:
        with pytest.raises(ForbiddenError):
            run_list_active(
                ListActiveSharesInput(newsletter_id=newsletter.id, user=stranger),
                repo=repo,
                newsletters=newsletters,
                policy=policy,
                time=MockTimePort(),
            )


# --- Dispatcher ---


class TestRun:
    def test_dispatches_revoke(
        self,
        repo: MockShareTokenRepo,
        newsletters: MockNewsletterRepo,
        newsletter: Newsletter,
        owner: User,
        policy: AccessPolicy,
    ) -> None:
        share = repo.create(make_share(newsletter.id))
        result = run(
            RevokeShareInput(token=share.token, user=owner),
            repo=repo,
            newsletters=newsletters,
            policy=policy,
            time=MockTimePort(),
        )
        assert isinstance(result, RevokeShareOutput)

    def test_unknown_input(
        self, repo: MockShareTokenRepo, newsletters: MockNewsletterRepo, policy: AccessPolicy
    ) -> None:
        with pytest.raises(ValueError, match="Unknown input type"):
            run(
                "bogus",  # type: ignore[arg-type]
                repo=repo,
                newsletters=newsletters,
                policy=policy,
                time=MockTimePort(),
            )
