# config.py
# Settings from the environment (and a local .env file).
# Config loading only — nothing here talks to a model or a store.

import os

from dotenv import load_dotenv

from sequential_planner.models import PlannerConfig

load_dotenv()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

DEFAULT_PLANNER_MODEL = "anthropic/claude-3.5-haiku"
DEFAULT_EMBEDDING_MODEL = "openai/text-embedding-3-small"
DEFAULT_HTTP_TIMEOUT = 60.0


def _env_str(name: str, default: str | None = None) -> str | None:
    raw = (os.environ.get(name) or "").strip()
    return raw or default


def _env_int(name: str, default: int | None) -> int | None:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float | None) -> float | None:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_names(name: str) -> list[str]:
    raw = _env_str(name, "") or ""
    return [part.strip() for part in raw.split(",") if part.strip()]


def api_key() -> str | None:
    return _env_str("OPENROUTER_API_KEY")


def planner_model() -> str:
    return _env_str("PLANNER_MODEL", DEFAULT_PLANNER_MODEL)


def embedding_model() -> str:
    return _env_str("PLANNER_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL)


def embeddings_backend() -> str:
    """'openai' (default) or 'hashing' for the offline embedding model."""
    choice = (_env_str("PLANNER_EMBEDDINGS", "openai") or "openai").lower()
    return "hashing" if choice in {"hashing", "hash"} else "openai"


def http_timeout() -> float:
    return _env_float("PLANNER_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT) or DEFAULT_HTTP_TIMEOUT


def planner_config_from_env(**overrides) -> PlannerConfig:
    """
    Build a PlannerConfig from PLANNER_* variables.

    Malformed numbers fall back to the defaults; keyword overrides win over
    the environment. Range validation is left to PlannerConfig.
    """
    values = {
        "relevancy_threshold": _env_float("PLANNER_RELEVANCY_THRESHOLD", None),
        "max_relevant_operations": _env_int("PLANNER_MAX_RELEVANT_OPERATIONS", 100),
        "max_tokens": _env_int("PLANNER_MAX_TOKENS", 1024),
        "max_prompt_tokens": _env_int("PLANNER_MAX_PROMPT_TOKENS", None),
        "allow_missing_operations": _env_bool("PLANNER_ALLOW_MISSING_OPERATIONS", False),
        "strip_group_suffix": _env_bool("PLANNER_STRIP_GROUP_SUFFIX", True),
        "group_filter": _env_str("PLANNER_GROUP_FILTER", "memory"),
        "included_groups": _env_names("PLANNER_INCLUDED_GROUPS"),
        "excluded_groups": _env_names("PLANNER_EXCLUDED_GROUPS"),
        "included_operations": _env_names("PLANNER_INCLUDED_OPERATIONS"),
        "excluded_operations": _env_names("PLANNER_EXCLUDED_OPERATIONS"),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return PlannerConfig(**values)
