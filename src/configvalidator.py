# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
"""
Config validation helper for Cross-Seed Assistant.
Validates the user's config.py against expected structure and types.
"""

from typing import Any, cast

from src.constants import ACTIONS

# Required top-level sections
REQUIRED_SECTIONS = ["DEFAULT", "PROWLARR"]

# Optional top-level sections
OPTIONAL_SECTIONS: list[str] = []

# Required keys in DEFAULT section (critical for operation)
REQUIRED_DEFAULT_KEYS: dict[str, type] = {
    "torrent_dir": str,
}

# Required keys in PROWLARR section
REQUIRED_PROWLARR_KEYS: dict[str, type] = {
    "url": str,
    "api_key": str,
}

# Expected types for common DEFAULT keys (for type validation, not required)
DEFAULT_KEY_TYPES: dict[str, tuple[type, ...]] = {
    "torrent_dir": (str,),
    "output_dir": (str,),
    "cache_dir": (str, type(None)),
    "fuzzy_size_threshold": (float, int),
    "delay": (float, int),
    "fetch_timeout": (float, int),
    "action": (str,),
    "verbose": (bool,),
    "suppress_warnings": (bool,),
    "rtorrent_rpc_url": (str, type(None)),
    "qbittorrent_url": (str, type(None)),
}

PROWLARR_KEY_TYPES: dict[str, tuple[type, ...]] = {
    "url": (str,),
    "api_key": (str,),
    "trackers": (list,),
    "timeout": (float, int),
}


class ConfigValidationWarning:
    """Represents a non-critical config warning."""

    def __init__(self, message: str, key: str = "", section: str = ""):
        self.message = message
        self.key = key
        self.section = section

    def __str__(self) -> str:
        location = ""
        if self.section:
            location = f"[{self.section}]"
            if self.key:
                location += f"[{self.key}]"
        elif self.key:
            location = f"[{self.key}]"

        return f"{location} {self.message}" if location else self.message


def _as_dict(value: Any) -> dict[str, Any]:
    return cast(dict[str, Any], value) if isinstance(value, dict) else {}


def _type_name(types: tuple[type, ...]) -> str:
    return " or ".join("None" if t is type(None) else t.__name__ for t in types)


def _check_types(section: dict[str, Any], section_name: str, key_types: dict[str, tuple[type, ...]]) -> list[str]:
    errors: list[str] = []
    for key, expected in key_types.items():
        if key not in section:
            continue
        value = section[key]
        # bool is an int subclass, don't accept it for numeric settings
        if isinstance(value, bool) and bool not in expected:
            errors.append(f"[{section_name}][{key}] must be {_type_name(expected)}, got bool")
        elif not isinstance(value, expected):
            errors.append(f"[{section_name}][{key}] must be {_type_name(expected)}, got {type(value).__name__}")
    return errors


def _validate_default_section(default: dict[str, Any]) -> tuple[list[str], list[ConfigValidationWarning]]:
    errors: list[str] = []
    warnings: list[ConfigValidationWarning] = []

    for key in REQUIRED_DEFAULT_KEYS:
        if not default.get(key):
            errors.append(f"Missing required key '{key}' in DEFAULT section")

    type_errors = _check_types(default, "DEFAULT", DEFAULT_KEY_TYPES)
    errors.extend(type_errors)
    if type_errors:
        return errors, warnings

    threshold = default.get("fuzzy_size_threshold")
    if threshold is not None and not 0 <= threshold < 1:
        errors.append(f"[DEFAULT][fuzzy_size_threshold] must be between 0 and 1, got {threshold}")

    for key in ("delay", "fetch_timeout"):
        value = default.get(key)
        if value is not None and value < 0:
            errors.append(f"[DEFAULT][{key}] must not be negative, got {value}")

    fetch_timeout = default.get("fetch_timeout")
    if fetch_timeout == 0:
        errors.append("[DEFAULT][fetch_timeout] must be greater than 0")

    action = default.get("action", "save")
    if action not in ACTIONS:
        errors.append(f"[DEFAULT][action] must be one of {', '.join(ACTIONS)}, got '{action}'")
    elif action == "inject" and not (default.get("rtorrent_rpc_url") or default.get("qbittorrent_url")):
        errors.append("You need to specify rtorrent_rpc_url or qbittorrent_url when using action 'inject'")

    if action == "save" and not default.get("output_dir"):
        warnings.append(ConfigValidationWarning("Not set, matched torrents will be saved to the current directory", key="output_dir", section="DEFAULT"))

    delay = default.get("delay")
    if isinstance(delay, (int, float)) and 0 <= delay < 2:
        warnings.append(ConfigValidationWarning("A delay under 2 seconds may get you rate limited by your indexers", key="delay", section="DEFAULT"))

    known_keys = set(DEFAULT_KEY_TYPES)
    warnings.extend([ConfigValidationWarning("Unknown key - this may be intentional", key=key, section="DEFAULT") for key in default if key not in known_keys])

    return errors, warnings


def _validate_prowlarr_section(prowlarr: dict[str, Any]) -> tuple[list[str], list[ConfigValidationWarning]]:
    errors: list[str] = []
    warnings: list[ConfigValidationWarning] = []

    for key in REQUIRED_PROWLARR_KEYS:
        if not prowlarr.get(key):
            errors.append(f"Missing required key '{key}' in PROWLARR section")

    errors.extend(_check_types(prowlarr, "PROWLARR", PROWLARR_KEY_TYPES))

    url = prowlarr.get("url")
    if isinstance(url, str) and url:
        if not url.startswith(("http://", "https://")):
            errors.append(f"[PROWLARR][url] must start with http:// or https://, got '{url}'")
        elif url.endswith("/"):
            warnings.append(ConfigValidationWarning("Should not end with '/'", key="url", section="PROWLARR"))

    trackers = prowlarr.get("trackers")
    if isinstance(trackers, list):
        for i, tracker in enumerate(cast(list[Any], trackers)):
            if isinstance(tracker, bool) or not isinstance(tracker, (int, str)):
                errors.append(f"[PROWLARR][trackers] item at index {i} must be an indexer id, got {type(tracker).__name__}")

    return errors, warnings


def validate_config(config: Any) -> tuple[bool, list[str], list[ConfigValidationWarning]]:
    """
    Validate the config dictionary structure and types.

    Returns:
        Tuple of (is_valid, errors, warnings)
        - is_valid: True if config passes critical validation
        - errors: List of critical error messages
        - warnings: List of non-critical warnings
    """
    errors: list[str] = []
    warnings: list[ConfigValidationWarning] = []

    if not isinstance(config, dict):
        errors.append(f"Config must be a dictionary, got {type(config).__name__}")
        return False, errors, warnings

    config_dict = cast(dict[str, Any], config)

    for section in REQUIRED_SECTIONS:
        if section not in config_dict:
            errors.append(f"Missing required config section: '{section}'")
        elif not isinstance(config_dict[section], dict):
            errors.append(f"Config section '{section}' must be a dictionary, got {type(config_dict[section]).__name__}")

    # If we have critical section errors, return early
    if errors:
        return False, errors, warnings

    default_errors, default_warnings = _validate_default_section(_as_dict(config_dict.get("DEFAULT")))
    errors.extend(default_errors)
    warnings.extend(default_warnings)

    prowlarr_errors, prowlarr_warnings = _validate_prowlarr_section(_as_dict(config_dict.get("PROWLARR")))
    errors.extend(prowlarr_errors)
    warnings.extend(prowlarr_warnings)

    known_sections = set(REQUIRED_SECTIONS + OPTIONAL_SECTIONS)
    warnings.extend(
        [ConfigValidationWarning(f"Unknown config section '{section}' - this may be intentional", section=section) for section in config_dict if section not in known_sections]
    )

    return len(errors) == 0, errors, warnings
