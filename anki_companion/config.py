import json
import os

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.json")

DEFAULTS = {
    "groq_api_key": "",
    "groq_model": "openai/gpt-oss-20b",
    "completion_timeout": 45.0,
    "db_path": "anki_companion.db",
    "allowed_origins": [],
    "rate_limit_requests": 20,
    "rate_limit_window": 60,
}


def _config_path() -> str:
    return os.environ.get("ANKI_COMPANION_CONFIG", DEFAULT_CONFIG_PATH)


def _load_file() -> dict:
    path = _config_path()
    if os.path.isfile(path):
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    return {}


def _load() -> dict:
    return {**DEFAULTS, **_load_file()}


def _setting(key: str, env_var: str):
    """Config file value if set, then env var, then default."""
    value = _load_file().get(key)
    if value not in ("", None, []):
        return value
    env_value = os.environ.get(env_var, "").strip()
    return env_value or DEFAULTS[key]


def get_all() -> dict:
    """Return config with the API key masked."""
    cfg = _load()
    key = cfg.get("groq_api_key", "")
    cfg["groq_api_key_set"] = bool(key or os.environ.get("GROQ_API_KEY", ""))
    cfg["groq_api_key"] = ""
    return cfg


def get_groq_api_key() -> str:
    return str(_setting("groq_api_key", "GROQ_API_KEY")).strip()


def get_groq_model() -> str:
    return str(_setting("groq_model", "GROQ_MODEL")).strip()


def get_completion_timeout() -> float:
    return float(_setting("completion_timeout", "COMPLETION_TIMEOUT"))


def get_db_path() -> str:
    return str(_setting("db_path", "ANKI_COMPANION_DB"))


def get_allowed_origins() -> list[str]:
    value = _setting("allowed_origins", "ALLOWED_ORIGINS")
    if isinstance(value, str):
        value = value.split(",")
    return [origin.strip() for origin in value if origin.strip()]


def get_rate_limit() -> tuple[int, int]:
    """Return (max requests, window seconds). Zero requests disables limiting."""
    requests = int(_setting("rate_limit_requests", "RATE_LIMIT_REQUESTS"))
    window = int(_setting("rate_limit_window", "RATE_LIMIT_WINDOW"))
    return requests, window
