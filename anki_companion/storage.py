"""
SQLite-backed local store for drafts and export groups.

Every public method opens its own connection and runs as one transaction, so a
read-modify-write sequence (lookup-then-insert, insert-group-then-mark-drafts)
is never interleaved with another call.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from anki_companion import config
from anki_companion.models import Draft, ExportGroup, GeneratedCard

logger = logging.getLogger(__name__)


class Storage:
    SCHEMA_VERSION = 3

    def __init__(self, db_path: Optional[str] = None):
        """
        Open (and create or migrate) the database.

        Args:
            db_path: Path to the SQLite file, defaults to the configured path
        """
        self.db_path = Path(db_path or config.get_db_path())
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS drafts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    sense_id TEXT NOT NULL,
                    term TEXT NOT NULL,
                    language TEXT NOT NULL,
                    note_type TEXT NOT NULL,
                    sense TEXT NOT NULL,
                    card TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS export_groups (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    created_at TEXT NOT NULL,
                    draft_ids TEXT NOT NULL,
                    files TEXT NOT NULL
                )
            """)
            self._migrate(conn)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_drafts_sense ON drafts(sense_id, language)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_drafts_term ON drafts(term)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_drafts_language ON drafts(language)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_drafts_exported ON drafts(exported)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_groups_created ON export_groups(created_at)")
            conn.execute(f"PRAGMA user_version = {self.SCHEMA_VERSION}")

    def _migrate(self, conn: sqlite3.Connection) -> None:
        """Add the columns later versions introduced. Old rows keep NULLs."""
        draft_columns = _columns(conn, "drafts")
        if "exported" not in draft_columns:
            logger.info("Migrating drafts table: adding export state")
            conn.execute("ALTER TABLE drafts ADD COLUMN exported INTEGER")
        if "exported_at" not in draft_columns:
            conn.execute("ALTER TABLE drafts ADD COLUMN exported_at TEXT")
        if "words" not in _columns(conn, "export_groups"):
            logger.info("Migrating export_groups table: adding words")
            conn.execute("ALTER TABLE export_groups ADD COLUMN words TEXT")

    # Drafts

    def get_draft(self, draft_id: int) -> Optional[Draft]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM drafts WHERE id = ?", (draft_id,)).fetchone()
        return _row_to_draft(row) if row else None

    def get_drafts(self, draft_ids: list[int]) -> list[Draft]:
        """Drafts for the given ids, in the given order, skipping missing ones."""
        with self._transaction() as conn:
            rows = [
                conn.execute("SELECT * FROM drafts WHERE id = ?", (draft_id,)).fetchone()
                for draft_id in draft_ids
            ]
        return [_row_to_draft(row) for row in rows if row is not None]

    def list_drafts(self, exported: Optional[bool] = None) -> list[Draft]:
        """All drafts, most recent first, optionally filtered by export state."""
        query = "SELECT * FROM drafts"
        if exported is True:
            query += " WHERE exported = 1"
        elif exported is False:
            query += " WHERE exported IS NULL OR exported = 0"
        with self._transaction() as conn:
            rows = conn.execute(query + " ORDER BY id DESC").fetchall()
        return [_row_to_draft(row) for row in rows]

    def find_draft_by_sense(self, sense_id: str, language: str) -> Optional[Draft]:
        with self._transaction() as conn:
            row = _find_by_sense(conn, sense_id, language)
        return _row_to_draft(row) if row else None

    def get_or_insert_draft(self, draft: Draft) -> tuple[Draft, bool]:
        """Return the draft stored for (sense id, language), inserting `draft` if none exists.

        Returns:
            (stored draft, created flag)
        """
        with self._transaction() as conn:
            row = _find_by_sense(conn, draft.sense.id, draft.language.value)
            if row is not None:
                return _row_to_draft(row), False
            cursor = conn.execute(
                """
                INSERT INTO drafts (sense_id, term, language, note_type, sense, card, exported, exported_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    draft.sense.id,
                    draft.term,
                    draft.language.value,
                    draft.note_type.value,
                    _dump(draft.sense),
                    _dump(draft.card),
                    int(draft.exported),
                    draft.exported_at,
                ),
            )
            return draft.model_copy(update={"id": cursor.lastrowid}), True

    def update_draft(self, draft_id: int, **changes: Any) -> bool:
        """
        Update selected draft columns.

        Accepted keys: note_type, card, exported, exported_at.

        Returns:
            False if the draft does not exist
        """
        columns = {
            "note_type": lambda v: getattr(v, "value", v),
            "card": _dump,
            "exported": lambda v: int(bool(v)),
            "exported_at": lambda v: v,
        }
        unknown = set(changes) - set(columns)
        if unknown:
            raise ValueError(f"Unknown draft columns: {sorted(unknown)}")
        if not changes:
            return self.get_draft(draft_id) is not None

        assignments = ", ".join(f"{key} = ?" for key in changes)
        values = [columns[key](value) for key, value in changes.items()]
        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE drafts SET {assignments} WHERE id = ?", (*values, draft_id)
            )
            return cursor.rowcount > 0

    def delete_draft(self, draft_id: int) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM drafts WHERE id = ?", (draft_id,))

    def clear_drafts(self) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM drafts")

    # Export groups

    def insert_export_group(self, group: ExportGroup) -> ExportGroup:
        """Store the group and mark its drafts exported in the same transaction."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO export_groups (created_at, draft_ids, words, files) VALUES (?, ?, ?, ?)",
                (
                    group.created_at,
                    json.dumps(group.draft_ids),
                    json.dumps(group.words, ensure_ascii=False),
                    json.dumps(
                        [f.model_dump(mode="json", by_alias=True) for f in group.files],
                        ensure_ascii=False,
                    ),
                ),
            )
            conn.executemany(
                "UPDATE drafts SET exported = 1, exported_at = ? WHERE id = ?",
                [(group.created_at, draft_id) for draft_id in group.draft_ids],
            )
        return group.model_copy(update={"id": cursor.lastrowid})

    def get_export_group(self, group_id: int) -> Optional[ExportGroup]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM export_groups WHERE id = ?", (group_id,)).fetchone()
        return _row_to_group(row) if row else None

    def list_export_groups(self) -> list[ExportGroup]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM export_groups ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [_row_to_group(row) for row in rows]

    def clear_export_groups(self) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM export_groups")


def _columns(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row["name"] for row in conn.execute(f"PRAGMA table_info({table})")}


def _find_by_sense(conn: sqlite3.Connection, sense_id: str, language: str) -> Optional[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM drafts WHERE sense_id = ? AND language = ? ORDER BY id LIMIT 1",
        (sense_id, language),
    ).fetchone()


def _dump(model) -> Optional[str]:
    if model is None:
        return None
    return json.dumps(model.model_dump(mode="json", by_alias=True), ensure_ascii=False)


def _row_to_draft(row: sqlite3.Row) -> Draft:
    card = json.loads(row["card"]) if row["card"] else None
    return Draft(
        id=row["id"],
        term=row["term"],
        language=row["language"],
        note_type=row["note_type"],
        sense=json.loads(row["sense"]),
        card=GeneratedCard.model_validate(card) if card else None,
        exported=bool(row["exported"]),
        exported_at=row["exported_at"],
    )


def _row_to_group(row: sqlite3.Row) -> ExportGroup:
    return ExportGroup(
        id=row["id"],
        created_at=row["created_at"],
        draft_ids=json.loads(row["draft_ids"]),
        words=json.loads(row["words"]) if row["words"] else [],
        files=json.loads(row["files"]),
    )
