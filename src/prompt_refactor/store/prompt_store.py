"""SQLite store for prompts and their saved versions."""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

from prompt_refactor.errors import PersistenceError
from prompt_refactor.models.prompt import Prompt, PromptVersion

DEFAULT_DB_PATH = Path.home() / ".prompt-refactor" / "prompts.db"


class PromptStore:
    """SQLite-backed prompts with an append-only version history."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS prompts (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    tags_json TEXT NOT NULL DEFAULT '[]',
                    current_version_id TEXT,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS prompt_versions (
                    id TEXT PRIMARY KEY,
                    prompt_id TEXT NOT NULL REFERENCES prompts(id) ON DELETE CASCADE,
                    content TEXT NOT NULL,
                    version_name TEXT NOT NULL,
                    image_url TEXT,
                    created_at TEXT NOT NULL
                )
            """)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def create_prompt(
        self,
        title: str,
        content: str,
        tags: list[str] | None = None,
        image_url: str | None = None,
    ) -> Prompt:
        """Create a prompt together with its first version ("v1")."""
        prompt = Prompt(title=title, content=content, tags=tags or [])
        version = PromptVersion(
            prompt_id=prompt.id, content=content, version_name="v1", image_url=image_url
        )
        prompt = prompt.model_copy(update={"current_version_id": version.id})
        try:
            with self._connect() as conn:
                conn.execute(
                    """INSERT INTO prompts
                       (id, title, content, tags_json, current_version_id, created_at)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (
                        prompt.id,
                        prompt.title,
                        prompt.content,
                        json.dumps(prompt.tags, ensure_ascii=False),
                        prompt.current_version_id,
                        prompt.created_at.isoformat(),
                    ),
                )
                self._insert_version(conn, version)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not create prompt {title!r}: {e}") from e
        return prompt

    def get_prompt(self, prompt_id: str) -> Prompt | None:
        with self._connect() as conn:
            row = conn.execute(
                """SELECT id, title, content, tags_json, current_version_id, created_at
                   FROM prompts WHERE id = ?""",
                (prompt_id,),
            ).fetchone()
        return self._row_to_prompt(row) if row else None

    def list_prompts(self, limit: int = 50) -> list[Prompt]:
        """Most recently created prompts first."""
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT id, title, content, tags_json, current_version_id, created_at
                   FROM prompts ORDER BY created_at DESC LIMIT ?""",
                (limit,),
            ).fetchall()
        return [self._row_to_prompt(row) for row in rows]

    def create_version(
        self,
        prompt_id: str,
        content: str,
        version_name: str | None = None,
        image_url: str | None = None,
    ) -> PromptVersion:
        """Append a version and make it the prompt's current one.

        The name defaults to ``v{n+1}`` where n is the number of versions
        already stored for the prompt.

        Raises:
            LookupError: the prompt does not exist.
            PersistenceError: the write failed.
        """
        try:
            with self._connect() as conn:
                exists = conn.execute(
                    "SELECT 1 FROM prompts WHERE id = ?", (prompt_id,)
                ).fetchone()
                if exists is None:
                    raise LookupError(f"Unknown prompt: {prompt_id}")

                if version_name is None:
                    count = conn.execute(
                        "SELECT COUNT(*) FROM prompt_versions WHERE prompt_id = ?",
                        (prompt_id,),
                    ).fetchone()[0]
                    version_name = f"v{count + 1}"

                version = PromptVersion(
                    id=str(uuid.uuid4()),
                    prompt_id=prompt_id,
                    content=content,
                    version_name=version_name,
                    image_url=image_url,
                )
                self._insert_version(conn, version)
                conn.execute(
                    "UPDATE prompts SET content = ?, current_version_id = ? WHERE id = ?",
                    (content, version.id, prompt_id),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not save version of prompt {prompt_id}: {e}") from e
        return version

    def list_versions(self, prompt_id: str) -> list[PromptVersion]:
        """Versions of a prompt, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT id, prompt_id, content, version_name, image_url, created_at
                   FROM prompt_versions WHERE prompt_id = ?
                   ORDER BY created_at DESC, rowid DESC""",
                (prompt_id,),
            ).fetchall()
        return [
            PromptVersion(
                id=row[0],
                prompt_id=row[1],
                content=row[2],
                version_name=row[3],
                image_url=row[4],
                created_at=datetime.fromisoformat(row[5]),
            )
            for row in rows
        ]

    @staticmethod
    def _insert_version(conn: sqlite3.Connection, version: PromptVersion) -> None:
        conn.execute(
            """INSERT INTO prompt_versions
               (id, prompt_id, content, version_name, image_url, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                version.id,
                version.prompt_id,
                version.content,
                version.version_name,
                version.image_url,
                version.created_at.isoformat(),
            ),
        )

    @staticmethod
    def _row_to_prompt(row: tuple) -> Prompt:
        return Prompt(
            id=row[0],
            title=row[1],
            content=row[2],
            tags=json.loads(row[3]),
            current_version_id=row[4],
            created_at=datetime.fromisoformat(row[5]),
        )
