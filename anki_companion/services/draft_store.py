import logging
from typing import Callable

from anki_companion.errors import NotFoundError, UnsupportedNoteTypeError
from anki_companion.models import Draft, GeneratedCard, Language, NoteType, Sense
from anki_companion.services.card_generator import generate_card
from anki_companion.services.card_schemas import get_default_note_type, get_note_types_for_language
from anki_companion.storage import Storage
from anki_companion.utils import now_iso

logger = logging.getLogger(__name__)

GenerateFn = Callable[[Draft], GeneratedCard]


def save_draft_from_sense(
    storage: Storage,
    sense: Sense,
    term: str,
    language: Language,
    generate: GenerateFn = generate_card,
) -> int:
    """Store the sense as a draft (once per sense id and language) and fill in its card.

    Card generation runs before returning for new drafts and for existing drafts
    that still have no card. A generation failure propagates, but the draft stays
    stored in pending state (see `find_draft_by_sense`).

    Returns:
        The id of the new or existing draft.
    """
    language = Language(language)
    candidate = Draft(
        term=term,
        language=language,
        note_type=get_default_note_type(language),
        sense=sense,
        card=None,
        exported=False,
        exported_at=None,
    )
    draft, created = storage.get_or_insert_draft(candidate)

    if created:
        logger.info("Saved draft %s for %r (%s)", draft.id, term, sense.id)
    elif draft.card is not None:
        return draft.id

    try:
        generate_card_for_draft(storage, draft.id, generate=generate)
    except Exception:
        logger.warning("Card generation failed for draft %s; left pending", draft.id)
        raise
    return draft.id


def find_draft_by_sense(storage: Storage, sense_id: str, language: Language) -> Draft | None:
    return storage.find_draft_by_sense(sense_id, Language(language).value)


def fetch_drafts(storage: Storage) -> list[Draft]:
    """All drafts, most recent first."""
    return storage.list_drafts()


def fetch_pending_drafts(storage: Storage) -> list[Draft]:
    return storage.list_drafts(exported=False)


def fetch_exported_drafts(storage: Storage) -> list[Draft]:
    return storage.list_drafts(exported=True)


def fetch_draft(storage: Storage, draft_id: int) -> Draft:
    draft = storage.get_draft(draft_id)
    if draft is None:
        raise NotFoundError(f"Draft {draft_id} not found")
    return draft


def update_draft_note_type(storage: Storage, draft_id: int, note_type: NoteType) -> None:
    """Switch the note type; the old card no longer fits, so it and the export state are cleared."""
    draft = fetch_draft(storage, draft_id)
    try:
        note_type = NoteType(note_type)
    except ValueError as err:
        raise UnsupportedNoteTypeError(f"Unsupported note type: {note_type}") from err
    if note_type not in get_note_types_for_language(draft.language):
        raise UnsupportedNoteTypeError(
            f"Note type {note_type.value!r} is not available for {draft.language.value} drafts"
        )
    storage.update_draft(draft_id, note_type=note_type, card=None, exported=False, exported_at=None)


def generate_card_for_draft(
    storage: Storage,
    draft_id: int,
    generate: GenerateFn = generate_card,
) -> GeneratedCard | None:
    """(Re)generate the card of a draft. Missing drafts are ignored."""
    draft = storage.get_draft(draft_id)
    if draft is None:
        return None

    card = generate(draft)
    storage.update_draft(draft_id, card=card, exported=False, exported_at=None)
    return card


def update_draft_card_fields(storage: Storage, draft_id: int, fields: dict[str, str]) -> GeneratedCard:
    """Apply manual edits to a card's field values."""
    draft = fetch_draft(storage, draft_id)
    if draft.card is None:
        raise NotFoundError(f"Draft {draft_id} has no generated card")

    card = draft.card.model_copy(
        update={"fields": {**draft.card.fields, **fields}, "generated_at": now_iso()}
    )
    storage.update_draft(draft_id, card=card, exported=False, exported_at=None)
    return card


def return_draft_to_queue(storage: Storage, draft_id: int) -> None:
    storage.update_draft(draft_id, exported=False, exported_at=None)


def remove_draft(storage: Storage, draft_id: int) -> None:
    storage.delete_draft(draft_id)


def clear_drafts(storage: Storage) -> None:
    storage.clear_drafts()
