"""Shared validation utilities for from_dict / from_env parsing."""

_TRUE_TEXT = frozenset({"1", "true", "yes", "on"})
_FALSE_TEXT = frozenset({"0", "false", "no", "off"})


def optional_string(value: object, *, field_name: str) -> str | None:
    """Validate an optional string field."""
    if value is None:
        return None
    if not isinstance(value, str):
        msg = f"{field_name} must be a string or None."
        raise TypeError(msg)
    return value


def require_string(value: object, *, field_name: str) -> str:
    """Validate a required non-empty string field."""
    if not isinstance(value, str) or not value:
        msg = f"{field_name} must be a non-empty string."
        raise TypeError(msg)
    return value


def require_int(value: object, *, field_name: str) -> int:
    """Validate a required integer field (rejects booleans)."""
    if not isinstance(value, int) or isinstance(value, bool):
        msg = f"{field_name} must be an int."
        raise TypeError(msg)
    return value


def require_bool(value: object, *, field_name: str) -> bool:
    """Validate a required boolean field."""
    if not isinstance(value, bool):
        msg = f"{field_name} must be a bool."
        raise TypeError(msg)
    return value


def bool_from_text(value: str, *, field_name: str) -> bool:
    """Parse an environment-style boolean (1/0, true/false, yes/no, on/off)."""
    normalized = value.strip().lower()
    if normalized in _TRUE_TEXT:
        return True
    if normalized in _FALSE_TEXT:
        return False
    msg = f"{field_name} must be one of {sorted(_TRUE_TEXT | _FALSE_TEXT)}, got {value!r}."
    raise ValueError(msg)


def int_from_text(value: str, *, field_name: str) -> int:
    """Parse an environment-style integer."""
    try:
        return int(value.strip())
    except ValueError:
        msg = f"{field_name} must be an integer, got {value!r}."
        raise ValueError(msg) from None
