import json
import re
from datetime import datetime, timezone

from anki_companion.errors import EmptyResponseError, ResponseParseError

_BRACKET_HINT = re.compile(r"\[[^\]]*\]")


def now_iso() -> str:
    """UTC timestamp in the same shape as JavaScript's Date.toISOString()."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", str(text or "").lower())


def strip_bracket_hint(text: str) -> str:
    """Drop every `[...]` disambiguation hint and collapse the leftover spaces.

    Args:
        text: Raw user input such as 'zamek [do drzwi]'

    Returns:
        The bare lemma, e.g. 'zamek'
    """
    return " ".join(_BRACKET_HINT.sub(" ", str(text or "")).split())


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        cleaned = cleaned.rsplit("```", 1)[0].strip()
    return cleaned


def parse_json_text(text: str):
    """Parse completion text as JSON, tolerating Markdown code fences."""
    if not text or not text.strip():
        raise EmptyResponseError("Completion provider returned an empty response")
    try:
        return json.loads(strip_code_fences(text))
    except json.JSONDecodeError as err:
        raise ResponseParseError(f"Unable to parse completion response: {err}") from err
