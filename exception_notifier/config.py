from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from .errors import ConfigurationError

# --------------------------------
# Configuration keys

KEY_MAIL_HOST = "mail.host"
KEY_MAIL_PORT = "mail.port"
KEY_MAIL_USERNAME = "mail.username"
KEY_MAIL_PASSWORD = "mail.password"
KEY_SUBJECT_PREFIX = "subject.prefix"
KEY_TO_LIST = "to.list"
KEY_FROM = "from"

REQUIRED_KEYS = (
    KEY_MAIL_HOST,
    KEY_MAIL_PORT,
    KEY_MAIL_USERNAME,
    KEY_MAIL_PASSWORD,
    KEY_SUBJECT_PREFIX,
    KEY_TO_LIST,
    KEY_FROM,
)

# Optional tuning keys
KEY_MAIL_STARTTLS = "mail.starttls"
KEY_MAIL_TIMEOUT = "mail.timeout"
KEY_BODY_MAX_BYTES = "body.max_bytes"

# SMTP timeout in seconds
DEFAULT_MAIL_TIMEOUT = 20.0

# mail.host -> EXCEPTION_NOTIFIER_MAIL_HOST
ENV_PREFIX = "EXCEPTION_NOTIFIER_"
# --------------------------------

ConfigSource = Union["Settings", Mapping[str, str], str, os.PathLike]


def env_name(key: str) -> str:
    return ENV_PREFIX + key.replace(".", "_").upper()


@dataclass
class Settings:
    mail_host: str
    mail_port: int
    mail_username: str
    mail_password: str
    subject_prefix: str
    recipients: List[str]
    from_address: str
    mail_starttls: bool = False
    mail_timeout: float = DEFAULT_MAIL_TIMEOUT
    body_max_bytes: Optional[int] = None

    @staticmethod
    def from_mapping(values: Mapping[str, str]) -> "Settings":
        def require(name: str) -> str:
            value = values.get(name)
            if value is None or not str(value).strip():
                raise ConfigurationError(f"{name}'s value was not found. Please make sure it is set")
            return str(value)

        def optional(name: str) -> str | None:
            value = values.get(name)
            if value is None or not str(value).strip():
                return None
            return str(value).strip()

        port_value = require(KEY_MAIL_PORT)
        try:
            port = int(port_value.strip())
        except ValueError as exc:
            raise ConfigurationError(f"{KEY_MAIL_PORT} must be an integer, got {port_value!r}") from exc

        recipients = [entry.strip() for entry in require(KEY_TO_LIST).split(",") if entry.strip()]
        if not recipients:
            raise ConfigurationError(f"{KEY_TO_LIST} must name at least one address")

        timeout_value = optional(KEY_MAIL_TIMEOUT)
        try:
            timeout = float(timeout_value) if timeout_value is not None else DEFAULT_MAIL_TIMEOUT
        except ValueError as exc:
            raise ConfigurationError(f"{KEY_MAIL_TIMEOUT} must be a number, got {timeout_value!r}") from exc

        max_bytes_value = optional(KEY_BODY_MAX_BYTES)
        try:
            body_max_bytes = int(max_bytes_value) if max_bytes_value is not None else None
        except ValueError as exc:
            raise ConfigurationError(
                f"{KEY_BODY_MAX_BYTES} must be an integer, got {max_bytes_value!r}"
            ) from exc

        return Settings(
            mail_host=require(KEY_MAIL_HOST).strip(),
            mail_port=port,
            mail_username=require(KEY_MAIL_USERNAME),
            mail_password=require(KEY_MAIL_PASSWORD),
            subject_prefix=require(KEY_SUBJECT_PREFIX),
            recipients=recipients,
            from_address=require(KEY_FROM).strip(),
            mail_starttls=(optional(KEY_MAIL_STARTTLS) or "false").lower() in {"1", "true", "yes", "on"},
            mail_timeout=timeout,
            body_max_bytes=body_max_bytes,
        )

    @staticmethod
    def from_properties_file(path: Union[str, os.PathLike]) -> "Settings":
        return Settings.from_mapping(load_properties(path))

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "Settings":
        environ = os.environ if environ is None else environ
        keys = REQUIRED_KEYS + (KEY_MAIL_STARTTLS, KEY_MAIL_TIMEOUT, KEY_BODY_MAX_BYTES)
        values = {key: environ[env_name(key)] for key in keys if env_name(key) in environ}
        return Settings.from_mapping(values)


def load_settings(source: ConfigSource | None) -> Settings:
    if source is None:
        raise ConfigurationError("Configuration source cannot be None!")
    if isinstance(source, Settings):
        return source
    if isinstance(source, Mapping):
        return Settings.from_mapping(source)
    if not isinstance(source, (str, os.PathLike)):
        raise ConfigurationError(f"Unsupported configuration source: {type(source).__name__}")
    return Settings.from_properties_file(source)


def load_properties(path: Union[str, os.PathLike]) -> Dict[str, str]:
    """Parse a Java-style ``.properties`` file.

    Supports ``key=value``, ``key: value`` and ``key value`` lines, ``#`` and
    ``!`` comments, and trailing-backslash line continuation.
    """

    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Could not load configuration file {str(path)!r}: {exc}") from exc
    return parse_properties(text)


def parse_properties(text: str) -> Dict[str, str]:
    properties: Dict[str, str] = {}
    pending = ""
    for raw_line in text.splitlines():
        line = raw_line.lstrip()
        if not pending and (not line or line[0] in "#!"):
            continue
        if _ends_with_continuation(line):
            pending += line[:-1]
            continue
        line = pending + line
        pending = ""
        key, value = _split_property(line)
        properties[key] = value
    if pending:
        key, value = _split_property(pending)
        properties[key] = value
    return properties


def _ends_with_continuation(line: str) -> bool:
    backslashes = len(line) - len(line.rstrip("\\"))
    return backslashes % 2 == 1


def _split_property(line: str) -> tuple[str, str]:
    for idx, char in enumerate(line):
        if char in "=:":
            return line[:idx].strip(), line[idx + 1 :].strip()
        if char.isspace():
            rest = line[idx:].lstrip()
            if rest[:1] in ("=", ":"):
                rest = rest[1:]
            return line[:idx].strip(), rest.strip()
    return line.strip(), ""
