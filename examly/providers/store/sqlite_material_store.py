"""SQLite-backed record store.

Persists users, documents, materials, shares, votes and notifications to
a local SQLite database (``data/examly.db`` by default).  Uses
``aiosqlite`` for async I/O and WAL journaling so readers never block the
single writer.

Material enrichment (overall bundle and chapters) is stored as JSON text
columns; the share set and votes live in their own tables so that
"share twice" and "vote twice" are enforced by UNIQUE constraints rather
than by read-modify-write of a JSON blob.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from examly.interfaces.material_store import IMaterialStore
from examly.models.document import Document
from examly.models.material import Material, Vote, VoteValue
from examly.models.notification import Notification
from examly.models.user import User
from examly.utils.errors import InvalidInput

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/examly.db")

# Overall-bundle fields of a Material, stored together in ``content_json``.
_BUNDLE_FIELDS = {
    "summary", "key_points", "formulas", "exam_questions", "mcqs", "flashcards", "study_plan",
}

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS users (
    id              TEXT PRIMARY KEY,
    email           TEXT NOT NULL UNIQUE COLLATE NOCASE,
    name            TEXT,
    password_hash   TEXT NOT NULL DEFAULT '',
    email_verified  INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS documents (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    file_name       TEXT NOT NULL,
    original_name   TEXT NOT NULL,
    file_type       TEXT NOT NULL,
    file_size       INTEGER NOT NULL,
    file_path       TEXT NOT NULL,
    chapter_order   INTEGER,
    chapter_title   TEXT,
    extracted_text  TEXT NOT NULL DEFAULT '',
    processed       INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS materials (
    id               TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    title            TEXT NOT NULL,
    document_ids     TEXT NOT NULL DEFAULT '[]',
    content_json     TEXT NOT NULL DEFAULT '{}',
    chapters_json    TEXT NOT NULL DEFAULT '[]',
    output_language  TEXT NOT NULL DEFAULT 'english',
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS material_shares (
    material_id  TEXT NOT NULL,
    user_id      TEXT NOT NULL,
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE(material_id, user_id)
);
""",
    """\
CREATE TABLE IF NOT EXISTS votes (
    material_id  TEXT NOT NULL,
    user_id      TEXT NOT NULL,
    vote         TEXT NOT NULL CHECK (vote IN ('up', 'down')),
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    UNIQUE(material_id, user_id)
);
""",
    """\
CREATE TABLE IF NOT EXISTS notifications (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    type         TEXT NOT NULL,
    material_id  TEXT NOT NULL,
    shared_by    TEXT NOT NULL,
    message      TEXT NOT NULL,
    read         INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_user ON documents(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_materials_user ON materials(user_id, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_shares_user ON material_shares(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_votes_material ON votes(material_id);",
    "CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, created_at);",
]

_UPSERT_USER_SQL = """\
INSERT INTO users (id, email, name, password_hash, email_verified, created_at)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET email = excluded.email,
              name  = COALESCE(excluded.name, users.name);
"""

_INSERT_DOCUMENT_SQL = """\
INSERT INTO documents (
    id, user_id, file_name, original_name, file_type, file_size, file_path,
    chapter_order, chapter_title, extracted_text, processed, created_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_MATERIAL_SQL = """\
INSERT INTO materials (
    id, user_id, title, document_ids, content_json, chapters_json,
    output_language, created_at, updated_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_MATERIALS_FOR_USER_SQL = """\
SELECT * FROM materials
WHERE user_id = ?
   OR id IN (SELECT material_id FROM material_shares WHERE user_id = ?)
ORDER BY created_at DESC
LIMIT ?;
"""

_UPSERT_VOTE_SQL = """\
INSERT INTO votes (material_id, user_id, vote)
VALUES (?, ?, ?)
ON CONFLICT(material_id, user_id)
DO UPDATE SET vote       = excluded.vote,
              updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_INSERT_NOTIFICATION_SQL = """\
INSERT INTO notifications (id, user_id, type, material_id, shared_by, message, read, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()  # noqa: UP017


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _escape_like(query: str) -> str:
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteMaterialStore(IMaterialStore):
    """SQLite-backed persistence for every Examly record kind."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            yield db

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("material_store_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_material_store"

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_user(row: aiosqlite.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            password_hash=row["password_hash"],
            email_verified=bool(row["email_verified"]),
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        return Document(
            id=row["id"],
            user_id=row["user_id"],
            file_name=row["file_name"],
            original_name=row["original_name"],
            file_type=row["file_type"],
            file_size=row["file_size"],
            file_path=row["file_path"],
            chapter_order=row["chapter_order"],
            chapter_title=row["chapter_title"],
            extracted_text=row["extracted_text"],
            processed=bool(row["processed"]),
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_notification(row: aiosqlite.Row) -> Notification:
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            type=row["type"],
            material_id=row["material_id"],
            shared_by=row["shared_by"],
            message=row["message"],
            read=bool(row["read"]),
            created_at=row["created_at"],
        )

    async def _hydrate_materials(
        self, db: aiosqlite.Connection, rows: list[aiosqlite.Row]
    ) -> list[Material]:
        """Attach share sets and votes to material rows."""
        if not rows:
            return []
        ids = [row["id"] for row in rows]
        marks = _placeholders(len(ids))

        shares: dict[str, list[str]] = {material_id: [] for material_id in ids}
        cursor = await db.execute(
            f"SELECT material_id, user_id FROM material_shares "
            f"WHERE material_id IN ({marks}) ORDER BY created_at, user_id",
            ids,
        )
        for share in await cursor.fetchall():
            shares[share["material_id"]].append(share["user_id"])

        votes: dict[str, list[Vote]] = {material_id: [] for material_id in ids}
        cursor = await db.execute(
            f"SELECT material_id, user_id, vote FROM votes "
            f"WHERE material_id IN ({marks}) ORDER BY created_at, user_id",
            ids,
        )
        for vote in await cursor.fetchall():
            votes[vote["material_id"]].append(
                Vote(user_id=vote["user_id"], vote=vote["vote"])
            )

        materials: list[Material] = []
        for row in rows:
            content: dict[str, Any] = json.loads(row["content_json"])
            materials.append(
                Material(
                    id=row["id"],
                    user_id=row["user_id"],
                    title=row["title"],
                    document_ids=json.loads(row["document_ids"]),
                    output_language=row["output_language"],
                    chapters=json.loads(row["chapters_json"]),
                    shared_with=shares[row["id"]],
                    votes=votes[row["id"]],
                    created_at=row["created_at"],
                    updated_at=row["updated_at"],
                    **content,
                )
            )
        return materials

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def upsert_user(self, user: User) -> User:
        async with self._connect() as db:
            try:
                await db.execute(
                    _UPSERT_USER_SQL,
                    (
                        user.id,
                        user.email,
                        user.name,
                        user.password_hash,
                        int(user.email_verified),
                        user.created_at.isoformat(),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise InvalidInput(message=f"Email already registered: {user.email}") from exc
            await db.commit()
            cursor = await db.execute("SELECT * FROM users WHERE id = ?", (user.id,))
            row = await cursor.fetchone()
        logger.info("user_upserted", user_id=user.id)
        return self._row_to_user(row)

    async def get_user(self, user_id: str) -> User | None:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip(),)
            )
            row = await cursor.fetchone()
        return self._row_to_user(row) if row else None

    async def search_users(
        self, query: str, exclude_user_id: str, limit: int = 10
    ) -> list[User]:
        pattern = f"%{_escape_like(query.strip().lower())}%"
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM users WHERE lower(email) LIKE ? ESCAPE '\\' AND id != ? "
                "ORDER BY email LIMIT ?",
                (pattern, exclude_user_id, limit),
            )
            rows = await cursor.fetchall()
        return [self._row_to_user(row) for row in rows]

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create_document(self, document: Document) -> Document:
        async with self._connect() as db:
            await db.execute(
                _INSERT_DOCUMENT_SQL,
                (
                    document.id,
                    document.user_id,
                    document.file_name,
                    document.original_name,
                    document.file_type,
                    document.file_size,
                    document.file_path,
                    document.chapter_order,
                    document.chapter_title,
                    document.extracted_text,
                    int(document.processed),
                    document.created_at.isoformat(),
                ),
            )
            await db.commit()
        logger.debug("document_created", document_id=document.id, user_id=document.user_id)
        return document

    async def get_document(self, document_id: str) -> Document | None:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM documents WHERE id = ?", (document_id,))
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def get_documents(self, document_ids: list[str]) -> list[Document]:
        if not document_ids:
            return []
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT * FROM documents WHERE id IN ({_placeholders(len(document_ids))})",
                document_ids,
            )
            rows = await cursor.fetchall()
        by_id = {row["id"]: self._row_to_document(row) for row in rows}
        return [by_id[doc_id] for doc_id in dict.fromkeys(document_ids) if doc_id in by_id]

    async def update_document_text(self, document_id: str, text: str) -> None:
        async with self._connect() as db:
            await db.execute(
                "UPDATE documents SET extracted_text = ? WHERE id = ?", (text, document_id)
            )
            await db.commit()

    async def mark_documents_processed(self, document_ids: list[str]) -> None:
        if not document_ids:
            return
        async with self._connect() as db:
            await db.execute(
                f"UPDATE documents SET processed = 1 "
                f"WHERE id IN ({_placeholders(len(document_ids))})",
                document_ids,
            )
            await db.commit()

    # ------------------------------------------------------------------
    # Materials
    # ------------------------------------------------------------------

    async def create_material(self, material: Material) -> Material:
        content = material.model_dump(mode="json", include=_BUNDLE_FIELDS, exclude_none=True)
        chapters = [chapter.model_dump(mode="json", exclude_none=True) for chapter in material.chapters]
        async with self._connect() as db:
            try:
                await db.execute(
                    _INSERT_MATERIAL_SQL,
                    (
                        material.id,
                        material.user_id,
                        material.title,
                        json.dumps(material.document_ids),
                        json.dumps(content),
                        json.dumps(chapters),
                        material.output_language.value,
                        material.created_at.isoformat(),
                        material.updated_at.isoformat(),
                    ),
                )
                await db.executemany(
                    "UPDATE documents SET chapter_order = ?, chapter_title = ? WHERE id = ?",
                    [(c.order, c.title, c.document_id) for c in material.chapters],
                )
                await db.commit()
            except sqlite3.Error:
                await db.rollback()
                raise
        logger.info(
            "material_created",
            material_id=material.id,
            user_id=material.user_id,
            chapters=len(material.chapters),
        )
        return material

    async def get_material(self, material_id: str) -> Material | None:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM materials WHERE id = ?", (material_id,))
            row = await cursor.fetchone()
            materials = await self._hydrate_materials(db, [row] if row else [])
        return materials[0] if materials else None

    async def get_material_for_document(self, document_id: str) -> Material | None:
        # document_ids is a JSON array of quoted ids, so a quoted match is exact.
        pattern = f"%{_escape_like(json.dumps(document_id))}%"
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM materials WHERE document_ids LIKE ? ESCAPE '\\' LIMIT 1",
                (pattern,),
            )
            row = await cursor.fetchone()
            materials = await self._hydrate_materials(db, [row] if row else [])
        return materials[0] if materials else None

    async def list_materials_for_user(self, user_id: str, limit: int = 100) -> list[Material]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_MATERIALS_FOR_USER_SQL, (user_id, user_id, limit))
            rows = await cursor.fetchall()
            return await self._hydrate_materials(db, list(rows))

    async def update_material_title(self, material_id: str, title: str) -> Material | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE materials SET title = ?, updated_at = ? WHERE id = ?",
                (title, _now(), material_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
        return await self.get_material(material_id)

    async def delete_material(self, material_id: str) -> list[Document]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT document_ids FROM materials WHERE id = ?", (material_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return []
            document_ids: list[str] = json.loads(row["document_ids"])
            documents: list[Document] = []
            try:
                if document_ids:
                    marks = _placeholders(len(document_ids))
                    cursor = await db.execute(
                        f"SELECT * FROM documents WHERE id IN ({marks})", document_ids
                    )
                    documents = [self._row_to_document(r) for r in await cursor.fetchall()]
                    await db.execute(f"DELETE FROM documents WHERE id IN ({marks})", document_ids)
                for table in ("material_shares", "votes", "notifications"):
                    await db.execute(f"DELETE FROM {table} WHERE material_id = ?", (material_id,))
                await db.execute("DELETE FROM materials WHERE id = ?", (material_id,))
                await db.commit()
            except sqlite3.Error:
                await db.rollback()
                raise
        logger.info("material_deleted", material_id=material_id, documents=len(documents))
        return documents

    async def add_share(self, material_id: str, user_id: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                "INSERT INTO material_shares (material_id, user_id) VALUES (?, ?) "
                "ON CONFLICT(material_id, user_id) DO NOTHING",
                (material_id, user_id),
            )
            await db.commit()
            return cursor.rowcount > 0

    async def upsert_vote(self, material_id: str, user_id: str, vote: VoteValue) -> None:
        async with self._connect() as db:
            await db.execute(_UPSERT_VOTE_SQL, (material_id, user_id, VoteValue(vote).value))
            await db.commit()
        logger.info("vote_recorded", material_id=material_id, user_id=user_id, vote=str(vote))

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def create_notification(self, notification: Notification) -> Notification:
        async with self._connect() as db:
            await db.execute(
                _INSERT_NOTIFICATION_SQL,
                (
                    notification.id,
                    notification.user_id,
                    notification.type.value,
                    notification.material_id,
                    notification.shared_by,
                    notification.message,
                    int(notification.read),
                    notification.created_at.isoformat(),
                ),
            )
            await db.commit()
        return notification

    async def list_notifications(self, user_id: str, limit: int = 50) -> list[Notification]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM notifications WHERE user_id = ? "
                "ORDER BY created_at DESC LIMIT ?",
                (user_id, limit),
            )
            rows = await cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    async def mark_notification_read(self, notification_id: str, user_id: str) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE notifications SET read = 1 WHERE id = ? AND user_id = ?",
                (notification_id, user_id),
            )
            await db.commit()
            return cursor.rowcount > 0
