"""Runtime configuration state management."""

import os
from typing import Mapping, Optional

from w3ctrace.errors import ConfigError

_DEFAULTS = {
    "default_flags": 0,
    "echo_response_header": False,
    "strict_ingress": False,
}

# Global runtime configuration state
_config = dict(_DEFAULTS)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def set_default_flags(value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 0xFF:
        raise ConfigError("default_flags must be an int in 0..255", {"value": value})
    _config["default_flags"] = value


def get_default_flags() -> int:
    return _config["default_flags"]


def set_echo_response_header(value: bool) -> None:
    _config["echo_response_header"] = bool(value)


def get_echo_response_header() -> bool:
    return _config["echo_response_header"]


def set_strict_ingress(value: bool) -> None:
    _config["strict_ingress"] = bool(value)


def get_strict_ingress() -> bool:
    return _config["strict_ingress"]


def reset() -> None:
    """Restore every setting to its default."""
    _config.clear()
    _config.update(_DEFAULTS)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean", {"value": raw})


def load_from_env(environ: Optional[Mapping[str, str]] = None) -> None:
    """
    Apply overrides from environment variables.

    Recognized variables:
    - W3CTRACE_DEFAULT_FLAGS: flags byte for fresh traces, decimal or 0x-hex
    - W3CTRACE_ECHO_RESPONSE_HEADER: echo traceparent on HTTP responses
    - W3CTRACE_STRICT_INGRESS: reject malformed incoming headers
    """
    env = os.environ if environ is None else environ

    raw_flags = env.get("W3CTRACE_DEFAULT_FLAGS")
    if raw_flags is not None:
        try:
            flags = int(raw_flags.strip(), 0)
        except ValueError as e:
            raise ConfigError("W3CTRACE_DEFAULT_FLAGS must be an integer", {"value": raw_flags}) from e
        set_default_flags(flags)

    raw_echo = env.get("W3CTRACE_ECHO_RESPONSE_HEADER")
    if raw_echo is not None:
        set_echo_response_header(_parse_bool("W3CTRACE_ECHO_RESPONSE_HEADER", raw_echo))

    raw_strict = env.get("W3CTRACE_STRICT_INGRESS")
    if raw_strict is not None:
        set_strict_ingress(_parse_bool("W3CTRACE_STRICT_INGRESS", raw_strict))
