from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

UsageLevel = Literal["low", "medium", "high"]
SourceLanguage = Literal["pl", "en"]
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Language(str, Enum):
    EN = "EN"
    PL = "PL"

    @property
    def code(self) -> str:
        """Lower-case code used by the translation endpoint ("en" / "pl")."""
        return self.value.lower()

    @property
    def display_name(self) -> str:
        return "Polish" if self is Language.PL else "English"

    @classmethod
    def from_code(cls, code: str) -> "Language":
        return cls(code.upper())


class NoteType(str, Enum):
    EN_DEFAULT = "EN: Default"
    PL_DEFAULT = "PL: Default"
    PL_VERB = "PL: Verb"


class DraftState(str, Enum):
    PENDING = "pending"
    READY = "ready"
    EXPORTED = "exported"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Sense(_CamelModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: NonEmptyStr
    translation_ru: NonEmptyStr = Field(alias="translationRU")
    notes: str | None = None
    part_of_speech: str | None = Field(default=None, alias="partOfSpeech")
    usage_level: UsageLevel | None = Field(default=None, alias="usageLevel")
    frequency_notes: str | None = Field(default=None, alias="frequencyNotes")
    examples: list[str] = Field(default_factory=list)


class GeneratedCard(_CamelModel):
    note_type: NoteType = Field(alias="noteType")
    fields: dict[str, str]
    schema_name: str = Field(alias="schemaName")
    generated_at: str = Field(alias="generatedAt")


class Draft(_CamelModel):
    id: int | None = None
    term: str
    language: Language
    note_type: NoteType = Field(alias="noteType")
    sense: Sense
    card: GeneratedCard | None = None
    exported: bool = False
    exported_at: str | None = Field(default=None, alias="exportedAt")

    @property
    def state(self) -> DraftState:
        if self.card is None:
            return DraftState.PENDING
        if self.exported:
            return DraftState.EXPORTED
        return DraftState.READY


class ExportedFile(_CamelModel):
    note_type: NoteType = Field(alias="noteType")
    file_name: str = Field(alias="fileName")
    created_at: str = Field(alias="createdAt")
    content: str


class ExportGroup(_CamelModel):
    id: int | None = None
    created_at: str = Field(alias="createdAt")
    draft_ids: list[int] = Field(alias="draftIds")
    words: list[str] = Field(default_factory=list)
    files: list[ExportedFile]


# Raw payload produced by the completion service for a lookup.


class UsageFrequency(BaseModel):
    level: UsageLevel
    comment: str | None = None


class PolishExample(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pl: str
    ru: str

    @property
    def source(self) -> str:
        return self.pl


class EnglishExample(BaseModel):
    model_config = ConfigDict(extra="forbid")

    en: str
    ru: str

    @property
    def source(self) -> str:
        return self.en


class TranslationSense(BaseModel):
    translation: NonEmptyStr
    part_of_speech: str | None = None
    sense_note: str | None = None
    usage_frequency: UsageFrequency | None = None
    examples: list[PolishExample | EnglishExample] = Field(default_factory=list)


class TranslationEntry(BaseModel):
    raw_input: str
    source_word: str
    source_language: SourceLanguage
    target_language: Literal["ru"]
    senses: list[TranslationSense] = Field(default_factory=list)


class Resolution(BaseModel):
    term: str
    language: Language
    senses: list[Sense]


# HTTP request bodies.


class TranslationRequest(_CamelModel):
    raw_input: NonEmptyStr = Field(alias="rawInput")
    source_language: SourceLanguage = Field(alias="sourceLanguage")


class CardDraftPayload(_CamelModel):
    term: NonEmptyStr
    language: Language
    note_type: NoteType = Field(alias="noteType")
    sense: Sense


class CardRequest(BaseModel):
    draft: CardDraftPayload
