import logging
from typing import Callable

from anki_companion.models import Draft, GeneratedCard
from anki_companion.services import completion
from anki_companion.services.card_schemas import require_card_schema
from anki_companion.utils import now_iso, parse_json_text

logger = logging.getLogger(__name__)

TEMPERATURE = 0.2

CompleteFn = Callable[..., str]


def build_card_system_prompt(note_type: str, guidance: str) -> str:
    return f"""You are an assistant that prepares structured Anki notes.
Note type: {note_type}.
Goal: Fill every field from the schema provided to you while staying faithful to the selected sense.
Guidance: {guidance}
Rules:
1. Never invent meanings outside the supplied translation or sense note.
2. Always output valid JSON only (no markdown or extra commentary).
3. Use concise, natural sentences and keep languages consistent."""


def build_card_user_prompt(draft: Draft) -> str:
    # Only these five lines of context reach the model.
    sense = draft.sense
    return (
        f"Source word: {draft.term}\n"
        f"Language: {draft.language.display_name}\n"
        f"Sense translation (Ru): {sense.translation_ru}\n"
        f"Sense note: {sense.notes or 'Not provided'}\n"
        f"Part of speech: {sense.part_of_speech or 'Unknown'}\n"
    )


def generate_card(draft: Draft, complete: CompleteFn | None = None) -> GeneratedCard:
    """Expand the draft's sense into the validated field set of its note type."""
    schema = require_card_schema(draft.note_type)
    complete = complete or completion.complete

    content = complete(
        model=completion.get_model(),
        temperature=TEMPERATURE,
        messages=[
            {
                "role": "system",
                "content": build_card_system_prompt(schema.note_type.value, schema.system_prompt),
            },
            {"role": "user", "content": build_card_user_prompt(draft)},
        ],
        response_schema=schema.json_schema,
    )

    fields = schema.validate(parse_json_text(content))
    logger.info("Generated %s card for %r", schema.name, draft.term)

    return GeneratedCard(
        note_type=schema.note_type,
        fields=fields,
        schema_name=schema.name,
        generated_at=now_iso(),
    )
