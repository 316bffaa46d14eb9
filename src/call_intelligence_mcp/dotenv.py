"""Provider keys and analysis settings from an optional ``.env`` file.

The file is ``~/.config/call-intelligence-mcp/.env`` unless
``CALL_ANALYSIS_ENV_FILE`` points elsewhere. Only variables this server
reads are injected, and a value already present in the process
environment always wins.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_ENV_PATH = Path.home() / ".config" / "call-intelligence-mcp" / ".env"
ENV_FILE_VAR = "CALL_ANALYSIS_ENV_FILE"

PROVIDER_VARS = frozenset({
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_MODEL",
})
SETTING_PREFIXES = ("CALL_ANALYSIS_", "MLFLOW_")


def is_recognized(key: str) -> bool:
    """True for provider credentials/models and ``CALL_ANALYSIS_*`` / ``MLFLOW_*`` settings."""
    return key in PROVIDER_VARS or key.startswith(SETTING_PREFIXES)


def _is_unset(key: str, value: str | None) -> bool:
    """Blank values and unresolved ``${KEY}`` placeholders count as unset.

    MCP hosts pass placeholders through verbatim when the user never
    defined the variable.
    """
    if value is None:
        return True
    normalized = _unquote(value.strip()).strip()
    if not normalized:
        return True
    if normalized in {f"${key}", f"${{{key}}}"}:
        return True
    return normalized.startswith(f"${{{key}:-") and normalized.endswith("}")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def parse_dotenv(path: Path) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines from *path*; a missing file parses as empty.

    ``export`` prefixes, quoted values and ``#`` comments (whole-line, or
    after whitespace in an unquoted value) are understood. Values are not
    expanded.
    """
    if not path.is_file():
        return {}

    result: dict[str, str] = {}
    for lineno, raw_line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            logger.debug("%s:%d: skipping malformed line", path, lineno)
            continue
        value = value.strip()
        if value[:1] in ('"', "'"):
            value = _unquote(value)
        else:
            value = value.split(" #", 1)[0].rstrip()
        result[key] = value
    return result


def resolve_env_path(path: Path | None = None) -> Path:
    """Explicit *path*, then ``$CALL_ANALYSIS_ENV_FILE``, then the default location."""
    if path is not None:
        return path
    override = os.getenv(ENV_FILE_VAR, "").strip()
    return Path(override).expanduser() if override else DEFAULT_ENV_PATH


def load_dotenv(path: Path | None = None) -> dict[str, str]:
    """Inject recognized, currently-unset variables into ``os.environ``.

    Args:
        path: File to read; see :func:`resolve_env_path` for the default.

    Returns:
        The variables that were injected.
    """
    env_path = resolve_env_path(path)
    injected: dict[str, str] = {}
    for key, value in parse_dotenv(env_path).items():
        if not is_recognized(key):
            logger.debug("Ignoring %s from %s: not a call-intelligence setting", key, env_path)
            continue
        if _is_unset(key, os.environ.get(key)):
            os.environ[key] = value
            injected[key] = value
    return injected
