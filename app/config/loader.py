from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"

_DEFAULT_IDEA_LIMITS = {
    "idea_character_limit": 500,
    "small_group_quota": 4,
    "medium_group_quota": 3,
    "large_group_quota": 2,
}
_DEFAULT_SESSION_SETTINGS = {
    "min_participants": 2,
    "join_code_length": 6,
}
_DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES = 30


def load_config() -> Dict[str, Any]:
    """Load the application config from YAML, returning an empty mapping on error."""
    try:
        with _CONFIG_PATH.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
            if isinstance(data, dict):
                return data
            logging.warning(
                "Config file %s is not a mapping; using defaults.", _CONFIG_PATH
            )
            return {}
    except FileNotFoundError:
        logging.warning(
            "Configuration file %s not found; using defaults.", _CONFIG_PATH
        )
        return {}
    except Exception as exc:  # noqa: BLE001
        logging.error("Failed to load configuration from %s: %s", _CONFIG_PATH, exc)
        return {}


def _coerce_positive_int(value: Any, fallback: int) -> int:
    try:
        candidate = int(value)
        return candidate if candidate > 0 else fallback
    except Exception:  # noqa: BLE001
        return fallback


def _coerce_bool(value: Any, fallback: bool) -> bool:
    if value is None:
        return fallback
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def get_idea_limits() -> Dict[str, int]:
    """
    Return idea submission limits sourced from config with safe defaults.

    Quotas are per participant and depend on the size of the group:
    ``small`` for two participants, ``medium`` for three or four and
    ``large`` for five or more.
    """
    config = load_config()
    section = config.get("ideas") or {}
    quotas = section.get("quota_by_group_size") or {}
    if not isinstance(quotas, dict):
        quotas = {}
    limits = dict(_DEFAULT_IDEA_LIMITS)

    limits["idea_character_limit"] = _coerce_positive_int(
        section.get("idea_character_limit"), limits["idea_character_limit"]
    )
    for size in ("small", "medium", "large"):
        key = f"{size}_group_quota"
        limits[key] = _coerce_positive_int(quotas.get(size), limits[key])
    return limits


def get_session_settings() -> Dict[str, int]:
    """Return session lifecycle settings sourced from config with safe defaults."""
    config = load_config()
    section = config.get("sessions") or {}
    defaults = dict(_DEFAULT_SESSION_SETTINGS)
    min_participants = _coerce_positive_int(
        section.get("min_participants"), defaults["min_participants"]
    )
    join_code_length = _coerce_positive_int(
        section.get("join_code_length"), defaults["join_code_length"]
    )
    return {
        "min_participants": max(2, min_participants),
        "join_code_length": max(4, min(12, join_code_length)),
    }


def get_access_token_expire_minutes() -> int:
    """
    Source the access token lifetime from config.yaml, falling back to
    TERNA_ACCESS_TOKEN_EXPIRE_MINUTES, then a hard default.
    """
    config = load_config()
    section = config.get("auth") or {}
    config_value = _coerce_positive_int(section.get("access_token_expire_minutes"), 0)
    if config_value:
        return config_value
    env_value = _coerce_positive_int(
        os.getenv("TERNA_ACCESS_TOKEN_EXPIRE_MINUTES"), 0
    )
    if env_value:
        return env_value
    return _DEFAULT_ACCESS_TOKEN_EXPIRE_MINUTES


def get_secure_cookies_enabled() -> bool:
    """
    Return whether auth cookies should be marked Secure.

    Priority:
    1) TERNA_SECURE_COOKIES env var
    2) config.yaml auth.secure_cookies
    3) default False (local HTTP-friendly)
    """
    env_value = os.getenv("TERNA_SECURE_COOKIES")
    if env_value is not None:
        return env_value.strip().lower() in {"1", "true", "yes", "on"}

    config = load_config()
    section = config.get("auth") or {}
    return _coerce_bool(section.get("secure_cookies"), False)
