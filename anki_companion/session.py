from dataclasses import dataclass, field

from anki_companion.models import Language, Resolution, Sense


@dataclass
class SessionContext:
    """Current lookup of one user session: the term, its language and candidate senses."""

    term: str = ""
    language: Language = Language.EN
    senses: list[Sense] = field(default_factory=list)

    def apply(self, resolution: Resolution) -> None:
        self.term = resolution.term
        self.language = resolution.language
        self.senses = list(resolution.senses)

    def find_sense(self, sense_id: str) -> Sense | None:
        return next((sense for sense in self.senses if sense.id == sense_id), None)

    def reset(self) -> None:
        self.term = ""
        self.language = Language.EN
        self.senses = []
