"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv

from drivesearch.core.errors import ConfigurationError

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Google Drive (root folder of the library and credentials)
DRIVE_FOLDER_ID: str = os.getenv("DRIVE_FOLDER_ID", "").strip()
DRIVE_ACCESS_TOKEN: str = os.getenv("DRIVE_ACCESS_TOKEN", "").strip()
DRIVE_API_KEY: str = os.getenv("DRIVE_API_KEY", "").strip()
DRIVE_API_BASE: str = (
    os.getenv("DRIVE_API_BASE", "https://www.googleapis.com/drive/v3").strip().rstrip("/")
    or "https://www.googleapis.com/drive/v3"
)

FOLDER_MIME: str = "application/vnd.google-apps.folder"

# Tree traversal and fan-out
MAX_DRIVE_FOLDERS: int = _env_int("MAX_DRIVE_FOLDERS", 5000)
SEARCH_IN_TREE: bool = _env_bool("SEARCH_IN_TREE", True)
DRIVE_MAX_WORKERS: int = _env_int("DRIVE_MAX_WORKERS", 4)
CHILDREN_PAGE_SIZE: int = 200

# Per-folder fetch size for tree search: max(MIN, min(MAX, ceil(pool / min(folders, CAP))))
PER_FOLDER_MIN: int = _env_int("PER_FOLDER_MIN", 10)
PER_FOLDER_MAX: int = _env_int("PER_FOLDER_MAX", 50)
PER_FOLDER_DIVISOR_CAP: int = _env_int("PER_FOLDER_DIVISOR_CAP", 10)
RECENT_PER_FOLDER: int = _env_int("RECENT_PER_FOLDER", 25)
LIST_PAGE_SIZE: int = _env_int("LIST_PAGE_SIZE", 50)

# Planning and ranking knobs
MAX_DRIVE_QUERIES: int = _env_int("MAX_DRIVE_QUERIES", 4)
PAGE_SIZE_PER_QUERY: int = _env_int("PAGE_SIZE_PER_QUERY", 20)
RERANK_TOP_N: int = _env_int("RERANK_TOP_N", 25)
DEFAULT_TOP_K: int = _env_int("DEFAULT_TOP_K", 10)
DEFAULT_CANDIDATES_K: int = _env_int("DEFAULT_CANDIDATES_K", 40)
TOP_K_MIN, TOP_K_MAX = 1, 20
CANDIDATES_K_MIN, CANDIDATES_K_MAX = 10, 100
SUMMARY_MAX_CHARS: int = _env_int("SUMMARY_MAX_CHARS", 12000)

# API timeouts (seconds)
DRIVE_API_TIMEOUT: float = _env_float("DRIVE_API_TIMEOUT", 30.0)
LLM_API_TIMEOUT: float = _env_float("LLM_API_TIMEOUT", 60.0)
REQUEST_TIMEOUT_SECONDS: float = _env_float("REQUEST_TIMEOUT_SECONDS", 60.0)

# OpenAI (primary LLM). When set, planning/ranking/answers use OpenAI instead of Hugging Face.
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)

# Hugging Face chat (fallback LLM)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)
LLM_MAX_TOKENS: int = _env_int("LLM_MAX_TOKENS", 1024)

# Bearer auth for POST /search. Empty secret disables verification.
AUTH_JWT_SECRET: str = os.getenv("AUTH_JWT_SECRET", "").strip()
AUTH_JWT_AUDIENCE: str = os.getenv("AUTH_JWT_AUDIENCE", "").strip()


def require_drive_folder() -> str:
    """Return the configured root folder id or fail with ConfigurationError."""
    if not DRIVE_FOLDER_ID:
        raise ConfigurationError("DRIVE_FOLDER_ID is not configured")
    return DRIVE_FOLDER_ID
