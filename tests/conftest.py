"""Pytest configuration and shared fixtures."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from anki_companion.models import Draft, GeneratedCard, Language, NoteType, Sense
from anki_companion.rate_limit import SlidingWindowLimiter
from anki_companion.services.card_schemas import require_card_schema
from anki_companion.storage import Storage


@pytest.fixture(autouse=True)
def set_test_env(monkeypatch, tmp_path):
    """Set test environment variables for all tests."""
    monkeypatch.setenv("GROQ_API_KEY", "test-groq-key")
    monkeypatch.setenv("GROQ_MODEL", "test-model")
    monkeypatch.setenv("COMPLETION_TIMEOUT", "30")
    monkeypatch.setenv("ANKI_COMPANION_CONFIG", str(tmp_path / "missing-config.json"))
    monkeypatch.setenv("ANKI_COMPANION_DB", str(tmp_path / "env.db"))
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    monkeypatch.delenv("RATE_LIMIT_REQUESTS", raising=False)
    monkeypatch.delenv("RATE_LIMIT_WINDOW", raising=False)


@pytest.fixture
def sample_sense():
    """Polish sense for 'zamek' (door lock)."""
    return Sense(
        id="zamek-1",
        translation_ru="замок",
        notes="дверной механизм",
        part_of_speech="noun",
        usage_level="high",
        frequency_notes="Very common — часто",
        examples=["Zamek jest zamknięty. — Замок закрыт."],
    )


@pytest.fixture
def sample_en_sense():
    """English sense for 'lock'."""
    return Sense(id="lock-1", translation_ru="замок", part_of_speech="noun")


@pytest.fixture
def sample_draft(sample_sense):
    """Pending PL draft without an id."""
    return Draft(
        term="zamek",
        language=Language.PL,
        note_type=NoteType.PL_DEFAULT,
        sense=sample_sense,
    )


def _filled_fields(draft: Draft) -> dict[str, str]:
    schema = require_card_schema(draft.note_type)
    fields = {key: f"{key}-value" for key in schema.field_names}
    first = schema.field_names[0]
    fields[first] = draft.term
    fields["Translation"] = draft.sense.translation_ru
    return fields


@pytest.fixture
def fake_generate():
    """Card generator stand-in that records the drafts it was called with."""
    calls = []

    def generate(draft: Draft) -> GeneratedCard:
        calls.append(draft)
        schema = require_card_schema(draft.note_type)
        return GeneratedCard(
            note_type=draft.note_type,
            fields=_filled_fields(draft),
            schema_name=schema.name,
            generated_at="2024-05-01T10:00:00.000Z",
        )

    generate.calls = calls
    return generate


@pytest.fixture
def failing_generate():
    """Card generator stand-in that always fails."""

    def generate(draft: Draft) -> GeneratedCard:
        raise RuntimeError("Completion provider unreachable")

    return generate


@pytest.fixture
def storage(tmp_path):
    """Fresh SQLite store in a temporary directory."""
    return Storage(str(tmp_path / "drafts.db"))


@pytest.fixture
def mock_groq_client(monkeypatch):
    """Mock Groq API client; set `.chat.completions.create.return_value` per test."""
    mock_client = Mock()
    mock_client.chat.completions.create.return_value = completion_response("{}")

    mock_groq_class = Mock(return_value=mock_client)
    monkeypatch.setattr("anki_companion.services.completion.Groq", mock_groq_class)
    mock_client.groq_class = mock_groq_class

    return mock_client


def completion_response(content):
    response = Mock()
    response.choices = [Mock(message=Mock(content=content))]
    return response


@pytest.fixture
def respond_with(mock_groq_client):
    """Make the mocked Groq client answer with the given text."""

    def _respond(content):
        mock_groq_client.chat.completions.create.return_value = completion_response(content)
        return mock_groq_client

    return _respond


@pytest.fixture
def test_client():
    """FastAPI TestClient for integration tests."""
    from anki_companion.main import create_app

    app = create_app(limiter=SlidingWindowLimiter(limit=20, window=60))
    return TestClient(app)
