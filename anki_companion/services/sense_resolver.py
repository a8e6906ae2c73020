import logging
from typing import Callable

from pydantic import ValidationError as PydanticValidationError

from anki_companion.errors import EmptyInputError, ValidationError
from anki_companion.models import Language, Resolution, Sense, TranslationEntry, TranslationSense
from anki_companion.services import completion
from anki_companion.session import SessionContext
from anki_companion.utils import parse_json_text, strip_bracket_hint

logger = logging.getLogger(__name__)

TEMPERATURE = 0.2
EXAMPLE_SEPARATOR = " — "
FREQUENCY_COMMENT_SEPARATOR = " — "
FREQUENCY_LABELS = {
    "low": "Rarely used",
    "medium": "Common",
    "high": "Very common",
}

CompleteFn = Callable[..., str]


def _language_name(code: str) -> str:
    return "Polish" if code == "pl" else "English"


def build_system_prompt(source_language: str) -> str:
    name = _language_name(source_language)
    return f"""You are a bilingual lexicographer ({name} → Russian).

Input may include an extra hint in square brackets, e.g.:
  - 'zamek [do drzwi]'
  - 'zamek [warownia]'
Treat EVERYTHING inside square brackets as contextual disambiguation ONLY.
Strip it from the lemma: source_word MUST be the clean {name} lemma without any square brackets or their content.
Do NOT echo the square brackets text in translations; use it only to pick the correct sense.

Task:
Given one {name} word or short phrase, produce Russian translations.
If multiple distinct senses exist, return multiple sense entries.
If input is not a valid word or phrase in {name}, return an empty senses array.
Provide 2 example sentences in {name} with Russian translations.
Output MUST be valid JSON ONLY, matching exactly the schema below. No prose, no markdown."""


def build_translation_schema(source_language: str) -> dict:
    name = _language_name(source_language)
    example_properties = {
        source_language: {"type": "string", "description": f"Sentence in {name}."},
        "ru": {"type": "string", "description": "Russian translation of the sentence."},
    }
    sense_schema = {
        "type": "object",
        "properties": {
            "translation": {"type": "string", "description": "Russian translation for this sense."},
            "part_of_speech": {
                "type": ["string", "null"],
                "description": f"Part of speech label (e.g., noun, verb, adj) in {name} language.",
            },
            "sense_note": {
                "type": ["string", "null"],
                "description": "Short Russian gloss clarifying nuance.",
            },
            "usage_frequency": {
                "type": "object",
                "description": "Optional frequency metadata describing sense prevalence.",
                "properties": {
                    "level": {
                        "type": "string",
                        "enum": ["low", "medium", "high"],
                        "description": "Relative frequency bucket.",
                    },
                    "comment": {
                        "type": "string",
                        "description": "Optional Russian remark elaborating on usage frequency.",
                    },
                },
                "required": ["level", "comment"],
                "additionalProperties": False,
            },
            "examples": {
                "type": "array",
                "description": "Example sentences with translations.",
                "items": {
                    "type": "object",
                    "properties": example_properties,
                    "required": [source_language, "ru"],
                    "additionalProperties": False,
                },
            },
        },
        "required": ["translation", "part_of_speech", "sense_note", "usage_frequency", "examples"],
        "additionalProperties": False,
    }
    return {
        "name": f"simple_translation_entry_{source_language}",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "raw_input": {
                    "type": "string",
                    "description": "Original user text exactly as entered, including brackets and context.",
                },
                "source_word": {
                    "type": "string",
                    "description": f"{name} lemma stripped of brackets and bracketed hints.",
                },
                "source_language": {
                    "type": "string",
                    "enum": [source_language],
                    "description": f"Source language code ({name}).",
                },
                "target_language": {
                    "type": "string",
                    "enum": ["ru"],
                    "description": "Target language code (Russian).",
                },
                "senses": {
                    "type": "array",
                    "description": "List of sense entries with Russian translations.",
                    "items": sense_schema,
                },
            },
            "required": ["raw_input", "source_word", "source_language", "target_language", "senses"],
            "additionalProperties": False,
        },
    }


def request_translation_entry(
    raw_input: str,
    source_language: str,
    complete: CompleteFn | None = None,
) -> TranslationEntry:
    """Ask the completion service for the senses of one word and validate the payload.

    Args:
        raw_input: User text, optionally carrying a `[...]` hint
        source_language: "pl" or "en"
        complete: Completion function, defaults to the Groq adapter

    Returns:
        The validated raw TranslationEntry
    """
    if not raw_input or not raw_input.strip():
        raise EmptyInputError("No word provided for lookup.")
    complete = complete or completion.complete

    logger.info("Looking up %r (%s)", raw_input, source_language)
    content = complete(
        model=completion.get_model(),
        temperature=TEMPERATURE,
        messages=[
            {"role": "system", "content": build_system_prompt(source_language)},
            {"role": "user", "content": raw_input},
        ],
        response_schema=build_translation_schema(source_language),
    )

    payload = parse_json_text(content)
    try:
        return TranslationEntry.model_validate(payload)
    except PydanticValidationError as err:
        raise ValidationError(f"Translation response does not match schema: {err}") from err


def describe_frequency(sense: TranslationSense) -> str | None:
    usage = sense.usage_frequency
    if usage is None:
        return None
    label = FREQUENCY_LABELS[usage.level]
    comment = (usage.comment or "").strip()
    return f"{label}{FREQUENCY_COMMENT_SEPARATOR}{comment}" if comment else label


def canonical_term(entry: TranslationEntry) -> str:
    return strip_bracket_hint(entry.source_word) or strip_bracket_hint(entry.raw_input)


def normalize_senses(entry: TranslationEntry) -> list[Sense]:
    term = canonical_term(entry)
    senses: list[Sense] = []
    for index, item in enumerate(entry.senses):
        senses.append(
            Sense(
                id=f"{term}-{index + 1}",
                translation_ru=item.translation,
                notes=item.sense_note or None,
                part_of_speech=item.part_of_speech or None,
                usage_level=item.usage_frequency.level if item.usage_frequency else None,
                frequency_notes=describe_frequency(item),
                examples=[f"{ex.source}{EXAMPLE_SEPARATOR}{ex.ru}" for ex in item.examples],
            )
        )
    return senses


def resolve_senses(
    raw_input: str,
    source_language: Language | str,
    complete: CompleteFn | None = None,
) -> list[Sense]:
    return disambiguate(raw_input, source_language, complete=complete).senses


def disambiguate(
    raw_input: str,
    source_language: Language | str,
    session: SessionContext | None = None,
    complete: CompleteFn | None = None,
) -> Resolution:
    """Resolve a lookup into its canonical term and candidate senses.

    When a session is given, the result becomes its current term, language
    and senses.
    """
    language = (
        source_language
        if isinstance(source_language, Language)
        else Language.from_code(source_language)
    )
    entry = request_translation_entry(raw_input.strip(), language.code, complete=complete)
    resolution = Resolution(
        term=canonical_term(entry),
        language=language,
        senses=normalize_senses(entry),
    )
    logger.info("Resolved %r into %d sense(s)", resolution.term, len(resolution.senses))
    if session is not None:
        session.apply(resolution)
    return resolution
