"""Library for loading environment variables from a shell style env file.

An env file holds one assignment per line, optionally prefixed with `export`,
and may pull in other env files with `source`:

```
# Shared settings
source ../common.env

export ENV_KUBECTL_PREFIX=APP_
export APP_HOST=example.com
APP_URL="https://${APP_HOST}/"
APP_DB_PASSWORD=gcp-secret://projects/my-project/secrets/db-password
```

Values may reference previously defined variables with `$NAME` or `${NAME}`.
Sourced paths are relative to the file that sources them.
"""

from collections.abc import MutableMapping
import logging
from pathlib import Path
import re

from .exceptions import EnvFileException, SecretException
from .secrets import SecretResolver

__all__ = [
    "load_env_file",
    "expand_variables",
]

_LOGGER = logging.getLogger(__name__)

COMMENT = "#"
SOURCE_DIRECTIVE = "source "
EXPORT_PREFIX = "export "
QUOTE_CHARS = "'\""

_VARIABLE_RE = re.compile(r"\$(?:\{([^}]*)\}|([A-Za-z0-9_]+))")


def expand_variables(value: str, environ: MutableMapping[str, str]) -> str:
    """Replace `$NAME` and `${NAME}` with the variable value, or empty if unset."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1) if match.group(1) is not None else match.group(2)
        return environ.get(name, "")

    return _VARIABLE_RE.sub(_replace, value)


def _parse_assignment(line: str) -> tuple[str, str]:
    """Split an `[export ]KEY=VALUE` line into the key and raw value."""
    key_value = line
    if line.startswith(EXPORT_PREFIX):
        key_value = line[len(EXPORT_PREFIX) :].strip()
    if "=" not in key_value:
        raise EnvFileException(f"invalid line: {line}")
    key, value = key_value.split("=", 1)
    return key, value.strip(QUOTE_CHARS)


def _load(
    path: Path,
    environ: MutableMapping[str, str],
    resolver: SecretResolver | None,
    loading: list[Path],
) -> None:
    _LOGGER.info("Sourcing environment variables from %s", path)
    resolved = path.resolve()
    if resolved in loading:
        chain = " -> ".join(str(p) for p in loading + [resolved])
        raise EnvFileException(f"env file sources itself: {chain}")
    try:
        content = path.read_text()
    except (OSError, UnicodeDecodeError) as err:
        raise EnvFileException(f"unable to read env file {path}: {err}") from err

    for raw_line in content.splitlines():
        line = raw_line.split(COMMENT, 1)[0].strip()
        if not line:
            continue

        if line.startswith(SOURCE_DIRECTIVE):
            sourced = line[len(SOURCE_DIRECTIVE) :].strip()
            _load(path.parent / sourced, environ, resolver, loading + [resolved])
            continue

        key, value = _parse_assignment(line)
        value = expand_variables(value, environ)
        if resolver is not None:
            try:
                value = resolver.resolve(value)
            except SecretException as err:
                raise EnvFileException(f"unable to resolve {key}: {err}") from err
        environ[key] = value


def load_env_file(
    path: Path,
    environ: MutableMapping[str, str],
    resolver: SecretResolver | None = None,
) -> None:
    """Load the env file and any files it sources into the environment.

    Assignments are applied in order, so a failure part way through leaves
    the earlier assignments in place.
    """
    _load(path, environ, resolver, [])
