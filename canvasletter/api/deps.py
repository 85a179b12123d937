import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from canvasletter.adapters.clock import SystemClock
from canvasletter.adapters.sqlite.repos import (
    SQLiteNewsletterRepo,
    SQLiteShareTokenRepo,
    SQLiteUserRepo,
)
from canvasletter.api.auth_utils import decode_access_token
from canvasletter.components.mutation import MutationConfig
from canvasletter.components.sections import SectionsConfig
from canvasletter.components.serialization import SerializationConfig
from canvasletter.components.share_tokens import ShareConfig
from canvasletter.domain.entities import User
from canvasletter.domain.policy import AccessPolicy
from canvasletter.rules.loader import load_rules
from canvasletter.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("CANVAS_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "canvasletter.db")
        self.migrations_dir = str(self.base_dir / "migrations")
        self.rules_path = Path(os.environ.get("CANVAS_RULES_PATH", self.base_dir / "rules.yaml"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Repos ---
def get_user_repo(settings: Settings = Depends(get_settings)) -> SQLiteUserRepo:
    return SQLiteUserRepo(settings.db_path)


def get_newsletter_repo(settings: Settings = Depends(get_settings)) -> SQLiteNewsletterRepo:
    return SQLiteNewsletterRepo(settings.db_path)


def get_share_repo(settings: Settings = Depends(get_settings)) -> SQLiteShareTokenRepo:
    return SQLiteShareTokenRepo(settings.db_path)


# --- Services ---
def get_clock() -> SystemClock:
    return SystemClock()


def get_policy(rules: Rules = Depends(get_rules)) -> AccessPolicy:
    return AccessPolicy(rules)


def get_share_config(rules: Rules = Depends(get_rules)) -> ShareConfig:
    return ShareConfig.from_rules(rules.sharing)


def get_serialization_config(rules: Rules = Depends(get_rules)) -> SerializationConfig:
    return SerializationConfig.from_rules(rules.blocks, rules.styles)


def get_mutation_config(rules: Rules = Depends(get_rules)) -> MutationConfig:
    return MutationConfig.from_rules(rules.blocks, rules.styles)


def get_sections_config(rules: Rules = Depends(get_rules)) -> SectionsConfig:
    return SectionsConfig.from_rules(rules.sections)


# --- Auth ---
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
) -> User:
    """Owner session: a signed token from the access_token cookie or the Authorization header."""
    token = credentials.credentials if credentials else None

    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ")[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None or not isinstance(user_id, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user = user_repo.get_by_id(UUID(user_id))
    except ValueError:
        user = None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if user.status != "active":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )

    return user
