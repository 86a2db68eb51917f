"""Per-project key/value storage.

Each project gets its own SQLite file under ``<base_dir>/projects``. Values
are opaque strings; encrypted projects encrypt the payload before it gets
here, so the database itself is plain SQLite.
"""

import logging
import sqlite3
import time
import uuid
from contextlib import closing
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

PROJECTS_DIRNAME = "projects"

_CREATE_KV = (
    "CREATE TABLE IF NOT EXISTS kv ("
    "key TEXT PRIMARY KEY, "
    "value TEXT NOT NULL, "
    "updated_at INTEGER NOT NULL"
    ")"
)


class ProjectStoreError(RuntimeError):
    pass


def _now_unix_ms() -> int:
    return int(time.time() * 1000)


def validate_project_id(project_id: str) -> str:
    try:
        parsed = uuid.UUID(project_id)
    except (TypeError, ValueError, AttributeError):
        raise ProjectStoreError(f"Invalid project id: {project_id!r}") from None
    if str(parsed) != project_id.lower():
        raise ProjectStoreError(f"Invalid project id: {project_id!r}")
    return project_id


class ProjectStore:
    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir)

    @property
    def projects_dir(self) -> Path:
        return self.base_dir / PROJECTS_DIRNAME

    def project_db_path(self, project_id: str) -> Path:
        validate_project_id(project_id)
        directory = self.projects_dir
        try:
            directory.mkdir(parents=True, exist_ok=True)
            root = directory.resolve(strict=True)
        except OSError as exc:
            raise ProjectStoreError(f"Failed to create project db dir: {exc}") from exc

        path = directory / f"{project_id}.db"
        if path.exists():
            resolved = path.resolve()
        else:
            # Not created yet: canonicalize the parent instead.
            resolved = path.parent.resolve() / path.name

        if resolved.parent != root:
            raise ProjectStoreError(f"Project db path escapes {root}: {resolved}")
        return resolved

    def _connect(self, project_id: str) -> sqlite3.Connection:
        path = self.project_db_path(project_id)
        try:
            conn = sqlite3.connect(str(path))
        except sqlite3.Error as exc:
            raise ProjectStoreError(f"Failed to open project db: {exc}") from exc
        try:
            with conn:
                conn.execute(_CREATE_KV)
        except sqlite3.Error as exc:
            conn.close()
            raise ProjectStoreError(f"Failed to open project db: {exc}") from exc
        return conn

    def save_kv(self, project_id: str, key: str, value: str) -> None:
        with closing(self._connect(project_id)) as conn:
            try:
                with conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)",
                        (key, value, _now_unix_ms()),
                    )
            except sqlite3.Error as exc:
                raise ProjectStoreError(f"Failed to save kv: {exc}") from exc
        logger.debug("Saved key %s for project %s", key, project_id)

    def load_kv(self, project_id: str, key: str) -> Optional[str]:
        with closing(self._connect(project_id)) as conn:
            try:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            except sqlite3.Error as exc:
                raise ProjectStoreError(f"Failed to query kv: {exc}") from exc
        return row[0] if row is not None else None

    def delete_kv(self, project_id: str, key: str) -> bool:
        with closing(self._connect(project_id)) as conn:
            try:
                with conn:
                    cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            except sqlite3.Error as exc:
                raise ProjectStoreError(f"Failed to delete kv: {exc}") from exc
        return cursor.rowcount > 0

    def list_keys(self, project_id: str) -> List[str]:
        with closing(self._connect(project_id)) as conn:
            try:
                rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
            except sqlite3.Error as exc:
                raise ProjectStoreError(f"Failed to list kv keys: {exc}") from exc
        return [row[0] for row in rows]

    def delete_project_db(self, project_id: str) -> bool:
        path = self.project_db_path(project_id)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise ProjectStoreError(f"Failed to delete project db: {exc}") from exc
        logger.info("Deleted project db %s", path)
        return True
