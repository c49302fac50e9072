"""Helpers for selecting and displaying environment variables."""

from collections.abc import Generator, Mapping

__all__ = [
    "PREFIX_VARIABLE",
    "variables_with_prefix",
    "is_sensitive",
    "mask_value",
    "describe",
]

PREFIX_VARIABLE = "ENV_KUBECTL_PREFIX"

# Variables with any of these in their name are masked when listed
SENSITIVE_MARKERS = ("SECRET", "PASS", "KEY")
MASK = "****"
_VISIBLE_CHARS = 3


def variables_with_prefix(environ: Mapping[str, str], prefix: str) -> dict[str, str]:
    """Return the variables whose name starts with the prefix."""
    return {key: value for key, value in environ.items() if key.startswith(prefix)}


def is_sensitive(key: str) -> bool:
    """Return True if the variable name suggests it holds a credential."""
    return any(marker in key for marker in SENSITIVE_MARKERS)


def mask_value(value: str) -> str:
    """Hide all but the last few characters of a value."""
    if len(value) <= _VISIBLE_CHARS:
        return MASK
    return MASK + value[-_VISIBLE_CHARS:]


def describe(environ: Mapping[str, str], prefix: str) -> Generator[str, None, None]:
    """Yield a `KEY=value` line for each matching variable, sorted by name."""
    selected = variables_with_prefix(environ, prefix)
    for key in sorted(selected):
        value = selected[key]
        if is_sensitive(key):
            value = mask_value(value)
        yield f"{key}={value}"
