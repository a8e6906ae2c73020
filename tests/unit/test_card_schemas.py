"""Unit tests for the note type registry."""

import pytest

from anki_companion.errors import UnsupportedNoteTypeError, ValidationError
from anki_companion.models import Language, NoteType
from anki_companion.services.card_schemas import (
    CARD_SCHEMAS,
    get_card_schema,
    get_default_note_type,
    get_note_types_for_language,
    require_card_schema,
)

EN_FIELDS = [
    "Word", "IPA", "Definition", "Translation",
    "Example1", "Example1Spaces", "Example1RU",
    "Example2", "Example2Spaces", "Example2RU",
    "Synonym", "Antonym",
]


class TestRegistry:
    """Tests for registry lookups."""

    def test_every_note_type_has_schema(self):
        """Test the registry covers every note type."""
        assert set(CARD_SCHEMAS) == set(NoteType)

    def test_get_card_schema_accepts_string(self):
        """Test lookup by the note type's display value."""
        schema = get_card_schema("PL: Verb")
        assert schema is not None
        assert schema.name == "pl_verb_note"

    def test_get_card_schema_unknown(self):
        """Test unknown note types give a not-found signal."""
        assert get_card_schema("DE: Default") is None

    def test_require_card_schema_unknown(self):
        """Test unknown note types raise UnsupportedNoteTypeError."""
        with pytest.raises(UnsupportedNoteTypeError, match="DE: Default"):
            require_card_schema("DE: Default")

    def test_note_types_for_language(self):
        """Test allowed note types and defaults per language."""
        assert get_note_types_for_language(Language.EN) == [NoteType.EN_DEFAULT]
        assert get_note_types_for_language(Language.PL) == [NoteType.PL_DEFAULT, NoteType.PL_VERB]
        assert get_default_note_type(Language.EN) == NoteType.EN_DEFAULT
        assert get_default_note_type(Language.PL) == NoteType.PL_DEFAULT


class TestFieldSets:
    """Tests for the field set of each note type."""

    def test_en_default_fields(self):
        """Test EN: Default field order."""
        assert CARD_SCHEMAS[NoteType.EN_DEFAULT].field_names == EN_FIELDS

    def test_pl_default_has_no_ipa(self):
        """Test PL: Default is EN: Default without IPA."""
        expected = [name for name in EN_FIELDS if name != "IPA"]
        assert CARD_SCHEMAS[NoteType.PL_DEFAULT].field_names == expected

    def test_pl_verb_fields(self):
        """Test PL: Verb enumerates every conjugation slot with an example."""
        names = CARD_SCHEMAS[NoteType.PL_VERB].field_names

        assert names[:3] == ["Verb", "Definition", "Translation"]
        assert names[3:7] == ["FormJa", "ExampleFormJa", "FormTy", "ExampleFormTy"]
        assert "FormMOniPrzeszly" in names
        assert "ExampleFormZOnePrzeszly" in names
        assert len(names) == 39
        forms = [name for name in names if name.startswith("Form")]
        for form in forms:
            assert f"Example{form}" in names

    def test_json_schema_shape(self):
        """Test the strict JSON schema lists every field as a required string."""
        schema = CARD_SCHEMAS[NoteType.PL_DEFAULT]
        json_schema = schema.json_schema

        assert json_schema["name"] == "pl_default_note"
        assert json_schema["strict"] is True
        body = json_schema["schema"]
        assert body["type"] == "object"
        assert body["additionalProperties"] is False
        assert body["required"] == schema.field_names
        assert all(prop["type"] == "string" for prop in body["properties"].values())

    def test_prompts_carry_masking_rule(self):
        """Test default note prompts describe the underscore masking."""
        for note_type in (NoteType.EN_DEFAULT, NoteType.PL_DEFAULT):
            prompt = CARD_SCHEMAS[note_type].system_prompt
            assert "one underscore per character" in prompt
            assert "Preserve all punctuation" in prompt


class TestValidate:
    """Tests for structural validation of model output."""

    def _payload(self, note_type):
        return {name: f"{name}-value" for name in CARD_SCHEMAS[note_type].field_names}

    @pytest.mark.parametrize("note_type", list(NoteType))
    def test_valid_payload(self, note_type):
        """Test a complete payload passes and keeps schema order."""
        schema = CARD_SCHEMAS[note_type]
        payload = dict(reversed(list(self._payload(note_type).items())))

        fields = schema.validate(payload)

        assert list(fields) == schema.field_names

    def test_missing_field(self):
        """Test a missing key is rejected with its field path."""
        payload = self._payload(NoteType.EN_DEFAULT)
        del payload["IPA"]

        with pytest.raises(ValidationError) as exc_info:
            CARD_SCHEMAS[NoteType.EN_DEFAULT].validate(payload)
        assert exc_info.value.field == "IPA"

    def test_extra_field(self):
        """Test an unexpected key is rejected."""
        payload = self._payload(NoteType.PL_DEFAULT)
        payload["IPA"] = "/ˈza.mɛk/"

        with pytest.raises(ValidationError) as exc_info:
            CARD_SCHEMAS[NoteType.PL_DEFAULT].validate(payload)
        assert exc_info.value.field == "IPA"

    def test_non_string_value(self):
        """Test non-string values are rejected."""
        payload = self._payload(NoteType.PL_DEFAULT)
        payload["Synonym"] = ["kłódka"]

        with pytest.raises(ValidationError, match="Synonym"):
            CARD_SCHEMAS[NoteType.PL_DEFAULT].validate(payload)

    def test_non_object_payload(self):
        """Test a JSON array is rejected."""
        with pytest.raises(ValidationError, match="expected a JSON object"):
            CARD_SCHEMAS[NoteType.PL_DEFAULT].validate(["zamek"])
