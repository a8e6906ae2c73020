"""Note type registry: field sets, JSON schemas, validators and prompt guidance."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, StrictStr, create_model
from pydantic import ValidationError as PydanticValidationError

from anki_companion.errors import UnsupportedNoteTypeError, ValidationError
from anki_companion.models import Language, NoteType

NOTE_TYPES_BY_LANGUAGE: dict[Language, list[NoteType]] = {
    Language.EN: [NoteType.EN_DEFAULT],
    Language.PL: [NoteType.PL_DEFAULT, NoteType.PL_VERB],
}

MASK_RULE = "with the lemma replaced by underscores (one underscore per character, split groups for phrases)."


@dataclass(frozen=True)
class CardSchema:
    name: str
    note_type: NoteType
    system_prompt: str
    fields: dict[str, str]
    validator: type[BaseModel]

    @property
    def field_names(self) -> list[str]:
        return list(self.fields)

    @property
    def json_schema(self) -> dict:
        """Strict response-format constraint handed to the completion service."""
        return {
            "name": self.name,
            "strict": True,
            "schema": {
                "type": "object",
                "properties": {
                    key: {"type": "string", "description": description}
                    for key, description in self.fields.items()
                },
                "required": self.field_names,
                "additionalProperties": False,
            },
        }

    def validate(self, payload) -> dict[str, str]:
        """Check that `payload` has exactly this schema's keys, each a string.

        Returns the fields in schema order. Raises ValidationError naming the
        first offending field.
        """
        if not isinstance(payload, dict):
            raise ValidationError(
                f"{self.name}: expected a JSON object, got {type(payload).__name__}"
            )
        try:
            parsed = self.validator.model_validate(payload)
        except PydanticValidationError as err:
            first = err.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or None
            raise ValidationError(f"{self.name}.{field}: {first['msg']}", field=field) from err
        return parsed.model_dump()


def _build_validator(name: str, fields: dict[str, str]) -> type[BaseModel]:
    definitions = {
        key: (StrictStr, Field(description=description)) for key, description in fields.items()
    }
    return create_model(name, __config__=ConfigDict(extra="forbid"), **definitions)


def _create_schema(name: str, note_type: NoteType, system_prompt: str, fields: dict[str, str]) -> CardSchema:
    return CardSchema(
        name=name,
        note_type=note_type,
        system_prompt=system_prompt,
        fields=fields,
        validator=_build_validator(name, fields),
    )


def _default_fields(language: str, with_ipa: bool) -> dict[str, str]:
    fields = {"Word": f"Source {language} word or phrase."}
    if with_ipa:
        fields["IPA"] = (
            "US IPA transcription for the word. It should start and end with slashes (/.../). "
            "For example: /ˈskedʒ.uːl/."
        )
    fields.update(
        {
            "Definition": f"{language} definition that matches the provided sense.",
            "Translation": "Russian translation of the word or phrase.",
            "Example1": f"{language} sentence with the lemma exactly as supplied.",
            "Example1Spaces": f"Example1 {MASK_RULE}",
            "Example1RU": "Russian translation of Example1.",
            "Example2": f"Another {language} sentence with the same constraints as Example1.",
            "Example2Spaces": f"Example2 {MASK_RULE}",
            "Example2RU": "Russian translation of Example2.",
            "Synonym": f"{language} synonym(s) if available separated by commas; otherwise an empty string.",
            "Antonym": f"{language} antonym(s) if available separated by commas; otherwise an empty string.",
        }
    )
    return fields


PL_PRESENT_PERSONS = [
    ("Ja", "singular, first person (ja)"),
    ("Ty", "singular, second person (ty)"),
    ("On", "singular, third person masculine (on)"),
    ("My", "plural, first person (my)"),
    ("Wy", "plural, second person (wy)"),
    ("Oni", "plural, third person masculine (oni)"),
]

PL_PAST_PERSONS = {
    ("M", "masculine"): ["Ja", "Ty", "On", "My", "Wy", "Oni"],
    ("Z", "feminine"): ["Ja", "Ty", "Ona", "My", "Wy", "One"],
}

_PERSON_LABELS = {
    "Ja": "singular, first person (ja)",
    "Ty": "singular, second person (ty)",
    "On": "singular, third person (on)",
    "Ona": "singular, third person (ona)",
    "My": "plural, first person (my)",
    "Wy": "plural, second person (wy)",
    "Oni": "plural, third person (oni)",
    "One": "plural, third person (one)",
}


def _verb_fields() -> dict[str, str]:
    fields = {
        "Verb": "Original Polish verb or chunk.",
        "Definition": "Polish definition matching the sense.",
        "Translation": "Russian translation of the verb.",
    }
    for person, label in PL_PRESENT_PERSONS:
        form = f"Form{person}"
        fields[form] = f"Present tense, {label}."
        fields[f"Example{form}"] = f"Sentence using the verb in {form}."
    for (prefix, gender), persons in PL_PAST_PERSONS.items():
        for person in persons:
            form = f"Form{prefix}{person}Przeszly"
            fields[form] = f"Past tense, {gender}, {_PERSON_LABELS[person]}."
            fields[f"Example{form}"] = f"Sentence using the verb in {form}."
    return fields


def _masking_rules(language: str, phrase_example: str) -> str:
    return f"""2) For EACH example, also provide:
  - A faithful Russian translation of the example sentence.
  - A masked variant where EVERY standalone occurrence of the exact Source word string is replaced with underscores.
    • Use one underscore per character in Source word.
    • If the Source word contains multiple words, mask each word separately and keep single spaces between them (e.g., {phrase_example}).
    • Preserve all punctuation and spacing outside the masked tokens.
3) Additionally provide sense-appropriate {language} synonyms and antonyms (if safely available).
Output MUST be valid JSON ONLY, matching exactly requested schema. No prose, no markdown."""


_CONTEXT_RULE = (
    "Use ONLY the given context (Source word, Language, Sense translation (Ru), Sense note, "
    "Part of speech). Mirror its meaning in every field. If any required value cannot be supported "
    "without guessing, output the safest allowed empty value (e.g., empty string or empty array)."
)

PL_DEFAULT_PROMPT = f"""You are a bilingual lexicographer (Polish → Russian) working on ONE specific sense provided in the user message.
{_CONTEXT_RULE}
TASK
1) Create EXACTLY TWO natural Polish example sentences that unambiguously express THIS sense of the Source word.
{_masking_rules("Polish", '"Masz rację" → "____ _____"')}"""

EN_DEFAULT_PROMPT = f"""You are a bilingual lexicographer (English → Russian) working on ONE specific sense.
{_CONTEXT_RULE}
TASK
1) Create EXACTLY TWO natural English example sentences that unambiguously express THIS sense of the Source word/phrase.
{_masking_rules("English", '"break up" → "_____ __"')}"""

PL_VERB_PROMPT = """You are a bilingual lexicographer (Polish → Russian) generating verb paradigms for ONE specific sense.
Use ONLY the given context (Source word, Language, Sense translation (Ru), Sense note, Part of speech). If Part of speech is not a verb or the lemma is not conjugable in Polish, emit empty strings for the forms and do NOT invent them.
TASK
1) Provide ALL required present-tense and past-tense forms for the Polish verb (fill every conjugation slot defined by the schema).
  - Respect standard Polish conjugation, orthography, and diacritics.
  - Keep forms aligned to THIS sense; do not introduce other meanings.
2) For EACH inflected form, provide EXACTLY ONE natural Polish example sentence that correctly uses that specific form in context of THIS sense.
3) Prefer safety over speculation: where uncertain, output an empty string rather than hallucinate.
Output MUST be valid JSON ONLY, matching exactly requested schema. No prose, no markdown."""

CARD_SCHEMAS: dict[NoteType, CardSchema] = {
    NoteType.PL_DEFAULT: _create_schema(
        "pl_default_note", NoteType.PL_DEFAULT, PL_DEFAULT_PROMPT, _default_fields("Polish", with_ipa=False)
    ),
    NoteType.PL_VERB: _create_schema("pl_verb_note", NoteType.PL_VERB, PL_VERB_PROMPT, _verb_fields()),
    NoteType.EN_DEFAULT: _create_schema(
        "en_default_note", NoteType.EN_DEFAULT, EN_DEFAULT_PROMPT, _default_fields("English", with_ipa=True)
    ),
}

_missing = set(NoteType) - set(CARD_SCHEMAS)
if _missing:
    raise RuntimeError(f"Note types without a card schema: {sorted(t.value for t in _missing)}")


def get_card_schema(note_type: NoteType | str) -> CardSchema | None:
    try:
        return CARD_SCHEMAS.get(NoteType(note_type))
    except ValueError:
        return None


def require_card_schema(note_type: NoteType | str) -> CardSchema:
    schema = get_card_schema(note_type)
    if schema is None:
        raise UnsupportedNoteTypeError(f"Unsupported note type: {note_type}")
    return schema


def get_note_types_for_language(language: Language) -> list[NoteType]:
    return list(NOTE_TYPES_BY_LANGUAGE[Language(language)])


def get_default_note_type(language: Language) -> NoteType:
    return get_note_types_for_language(language)[0]
