import csv
import io
import logging
import re
from pathlib import Path

from anki_companion.errors import (
    EmptyDraftListError,
    EmptySelectionError,
    MissingCardError,
    NoReadyCardsError,
    NotFoundError,
)
from anki_companion.models import Draft, ExportedFile, ExportGroup, NoteType
from anki_companion.storage import Storage
from anki_companion.utils import now_iso, slugify

logger = logging.getLogger(__name__)


def build_file_name(note_type: NoteType, created_at: str) -> str:
    """Deterministic CSV name, e.g. 'pl-default-2024-05-01T10-00-00-000Z.csv'."""
    slug = slugify(NoteType(note_type).value)
    timestamp = re.sub(r"[:.]", "-", created_at)
    return f"{slug}-{timestamp}.csv"


def build_csv_content(drafts: list[Draft], note_type: NoteType) -> str:
    """Render drafts of one note type as an Anki plain-text import file.

    Column order follows the first draft's card fields; the note type is
    appended as the last column and announced in the header.
    """
    if not drafts:
        raise EmptyDraftListError("No drafts to export")
    if drafts[0].card is None:
        raise MissingCardError(f"Draft {drafts[0].id} is missing generated card")

    field_order = list(drafts[0].card.fields)
    header = [
        "#separator:Comma",
        f"#notetype column:{len(field_order) + 1}",
        f"#columns:{','.join(field_order)},\"notetype\"",
    ]

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for draft in drafts:
        if draft.card is None:
            raise MissingCardError(f"Draft {draft.id} is missing generated card")
        values = [draft.card.fields.get(field, "") for field in field_order]
        writer.writerow([*values, NoteType(note_type).value])

    rows = buffer.getvalue()
    if rows.endswith("\n"):
        rows = rows[:-1]
    return "\n".join([*header, rows])


def create_export_group(storage: Storage, draft_ids: list[int]) -> ExportGroup:
    """Export the ready drafts among `draft_ids` as one batch of CSV files.

    Missing drafts and drafts without a card are skipped. The group is stored
    and its drafts marked exported in one transaction, all sharing the
    group's timestamp.
    """
    if not draft_ids:
        raise EmptySelectionError("Select at least one draft to export")

    drafts = storage.get_drafts(draft_ids)
    ready = [draft for draft in drafts if draft.card is not None]
    if not ready:
        raise NoReadyCardsError("No generated cards to export")

    created_at = now_iso()
    by_note_type: dict[NoteType, list[Draft]] = {}
    for draft in ready:
        by_note_type.setdefault(draft.note_type, []).append(draft)

    files = [
        ExportedFile(
            note_type=note_type,
            file_name=build_file_name(note_type, created_at),
            created_at=created_at,
            content=build_csv_content(entries, note_type),
        )
        for note_type, entries in by_note_type.items()
    ]

    group = storage.insert_export_group(
        ExportGroup(
            created_at=created_at,
            draft_ids=[draft.id for draft in ready],
            words=[draft.term for draft in ready],
            files=files,
        )
    )
    logger.info(
        "Exported %d draft(s) into group %s (%d file(s))", len(ready), group.id, len(files)
    )
    return group


def fetch_export_groups(storage: Storage) -> list[ExportGroup]:
    """Export history, newest first."""
    return storage.list_export_groups()


def fetch_export_group(storage: Storage, group_id: int) -> ExportGroup:
    group = storage.get_export_group(group_id)
    if group is None:
        raise NotFoundError(f"Export group {group_id} not found")
    return group


def clear_export_groups(storage: Storage) -> None:
    storage.clear_export_groups()


def write_export_files(group: ExportGroup, directory: str | Path) -> list[Path]:
    """Write every CSV of the group into `directory` and return the paths."""
    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)
    written = []
    for exported in group.files:
        path = target / exported.file_name
        path.write_text(exported.content, encoding="utf-8")
        written.append(path)
    return written
