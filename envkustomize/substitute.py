"""Library for substituting environment values into kustomize manifests.

Manifests reference a variable with a triple brace placeholder, which does
not collide with the `${VAR}` syntax used by flux post build substitution or
shell scripts embedded in manifests:

```yaml
spec:
  nfs:
    server: ${{{ NFS_SERVER_IP }}}
```

A container `env` list may also be populated with every variable sharing a
prefix. Both the `name` and `value` entries must use the `env-expand://`
placeholder:

```yaml
env:
  - name: ${{{env-expand://APP_}}}
    value: ${{{env-expand://APP_}}}
```

which expands into one entry per matching variable, sorted by name.
"""

from collections.abc import Mapping
import json
import logging
import re

from .environ import variables_with_prefix
from .exceptions import SubstitutionException

__all__ = [
    "expand_all",
    "expand_container_envs",
    "expand_placeholders",
]

_LOGGER = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\$\{\{\{\s*([A-Za-z0-9_:/-]+)\s*\}\}\}")
ENV_EXPAND = "env-expand://"
_NAME_MARKER = "- name: ${{{" + ENV_EXPAND
_VALUE_MARKER = "value: ${{{" + ENV_EXPAND
_CLOSE = "}}}"


def _quote(value: str) -> str:
    """Render the value as a yaml double quoted scalar."""
    return json.dumps(value, ensure_ascii=False)


def _expand_entry(line: str, environ: Mapping[str, str]) -> list[str] | None:
    """Return the expanded env entries for a `- name:` placeholder line."""
    trimmed = line.strip()
    if not trimmed.startswith(_NAME_MARKER):
        return None
    if (end := trimmed.find(_CLOSE)) == -1:
        return None
    prefix = trimmed[len(_NAME_MARKER) : end].strip()
    padding = " " * line.index("-")
    selected = variables_with_prefix(environ, prefix)
    _LOGGER.debug("Expanding %d variables with prefix '%s'", len(selected), prefix)
    result = []
    for key in sorted(selected):
        result.append(f"{padding}- name: {key}")
        result.append(f"{padding}  value: {_quote(selected[key])}")
    return result


def expand_container_envs(text: str, environ: Mapping[str, str]) -> str:
    """Expand `env-expand://` name/value pairs into one entry per variable."""
    lines = text.split("\n")
    result: list[str] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if (
            i + 1 < len(lines)
            and _VALUE_MARKER in lines[i + 1].strip()
            and (entries := _expand_entry(line, environ)) is not None
        ):
            result.extend(entries)
            i += 2
            continue
        result.append(line)
        i += 1
    return "\n".join(result)


def expand_placeholders(text: str, environ: Mapping[str, str]) -> str:
    """Replace each placeholder with the value of the variable it names."""

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if (value := environ.get(key)) is None:
            raise SubstitutionException(
                f"Environment variable ${{{{{{ {key} }}}}}} is not set"
            )
        return value

    replaced = PLACEHOLDER_RE.sub(_replace, text)
    if PLACEHOLDER_RE.search(replaced):
        raise SubstitutionException("Some placeholders are not replaced")
    return replaced


def expand_all(text: str, environ: Mapping[str, str]) -> str:
    """Apply container env expansion followed by placeholder substitution."""
    return expand_placeholders(expand_container_envs(text, environ), environ)
