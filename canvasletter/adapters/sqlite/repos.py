import json
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from canvasletter.domain.entities import Newsletter, NewsletterVersion, ShareToken, User


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


def _dt_to_db(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def parse_dt(s: str | None) -> datetime | None:
    """ISO string from the database; naive values are read as UTC."""
    if not s:
        return None
    value = datetime.fromisoformat(s)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


class SQLiteUserRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def save(self, user: User) -> User:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO users (id, email, display_name, status, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    email=excluded.email,
                    display_name=excluded.display_name,
                    status=excluded.status
            """,
                (
                    str(user.id),
                    user.email,
                    user.display_name,
                    user.status,
                    user.created_at.isoformat(),
                ),
            )
            conn.commit()
            return user
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_by_id(self, user_id: UUID) -> User | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (str(user_id),)).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def get_by_email(self, email: str) -> User | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> User:
        return User(
            id=UUID(row["id"]),
            email=row["email"],
            display_name=row["display_name"],
            status=row["status"],
            created_at=parse_dt(row["created_at"]) or datetime.min.replace(tzinfo=UTC),
        )


class SQLiteNewsletterRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def save(self, newsletter: Newsletter) -> Newsletter:
        """Insert or fully overwrite a newsletter (owner-side CRUD)."""
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO newsletters (
                    id, owner_user_id, title, description, status,
                    blocks_json, structure_json, versions_json, brand_voice_id,
                    published_url, published_at, last_autosave,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    owner_user_id=excluded.owner_user_id,
                    title=excluded.title,
                    description=excluded.description,
                    status=excluded.status,
                    blocks_json=excluded.blocks_json,
                    structure_json=excluded.structure_json,
                    versions_json=excluded.versions_json,
                    brand_voice_id=excluded.brand_voice_id,
                    published_url=excluded.published_url,
                    published_at=excluded.published_at,
                    last_autosave=excluded.last_autosave,
                    updated_at=excluded.updated_at
            """,
                (
                    str(newsletter.id),
                    str(newsletter.owner_user_id),
                    newsletter.title,
                    newsletter.description,
                    newsletter.status,
                    json.dumps(newsletter.blocks),
                    json.dumps(newsletter.structure_json),
                    json.dumps(
                        [v.model_dump(mode="json", by_alias=True) for v in newsletter.versions]
                    ),
                    newsletter.brand_voice_id,
                    newsletter.published_url,
                    _dt_to_db(newsletter.published_at),
                    _dt_to_db(newsletter.last_autosave),
                    newsletter.created_at.isoformat(),
                    newsletter.updated_at.isoformat(),
                ),
            )
            conn.commit()
            return newsletter
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_by_id(self, newsletter_id: UUID) -> Newsletter | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM newsletters WHERE id = ?", (str(newsletter_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def list_by_owner(self, owner_user_id: UUID) -> list[Newsletter]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM newsletters WHERE owner_user_id = ? ORDER BY updated_at DESC",
                (str(owner_user_id),),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            conn.close()

    def replace_content(
        self,
        newsletter_id: UUID,
        *,
        blocks: list[dict[str, Any]],
        structure_json: dict[str, Any],
        updated_at: datetime,
        last_autosave: datetime,
    ) -> Newsletter | None:
        """Blocks, structure and timestamps in a single UPDATE."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """
                UPDATE newsletters SET
                    blocks_json = ?,
                    structure_json = ?,
                    updated_at = ?,
                    last_autosave = ?
                WHERE id = ?
            """,
                (
                    json.dumps(blocks),
                    json.dumps(structure_json),
                    updated_at.isoformat(),
                    last_autosave.isoformat(),
                    str(newsletter_id),
                ),
            )
            if cursor.rowcount == 0:
                conn.rollback()
                return None
            row = conn.execute(
                "SELECT * FROM newsletters WHERE id = ?", (str(newsletter_id),)
            ).fetchone()
            conn.commit()
            return self._map_row(row)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> Newsletter:
        return Newsletter(
            id=UUID(row["id"]),
            owner_user_id=UUID(row["owner_user_id"]),
            title=row["title"],
            description=row["description"],
            status=row["status"],
            blocks=json.loads(row["blocks_json"]),
            structure_json=json.loads(row["structure_json"]),
            versions=[NewsletterVersion.model_validate(v) for v in json.loads(row["versions_json"])],
            brand_voice_id=row["brand_voice_id"],
            published_url=row["published_url"],
            published_at=parse_dt(row["published_at"]),
            last_autosave=parse_dt(row["last_autosave"]),
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )


class SQLiteShareTokenRepo:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def get(self, token: str) -> ShareToken | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM share_tokens WHERE token = ?", (token,)).fetchone()
            return self._map_row(row) if row else None
        finally:
            conn.close()

    def create(self, share: ShareToken) -> ShareToken:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO share_tokens (
                    token, newsletter_id, role, created_by, revoked, expires_at, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    share.token,
                    str(share.newsletter_id),
                    share.role,
                    str(share.created_by),
                    1 if share.revoked else 0,
                    _dt_to_db(share.expires_at),
                    share.created_at.isoformat(),
                ),
            )
            conn.commit()
            return share
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def mark_revoked(self, token: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("UPDATE share_tokens SET revoked = 1 WHERE token = ?", (token,))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def list_for_newsletter(self, newsletter_id: UUID) -> list[ShareToken]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM share_tokens WHERE newsletter_id = ? ORDER BY created_at ASC",
                (str(newsletter_id),),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            conn.close()

    def _map_row(self, row: dict[str, Any]) -> ShareToken:
        return ShareToken(
            token=row["token"],
            newsletter_id=UUID(row["newsletter_id"]),
            role=row["role"],
            created_by=UUID(row["created_by"]),
            revoked=bool(row["revoked"]),
            expires_at=parse_dt(row["expires_at"]),
            created_at=parse_dt(row["created_at"]),
        )
