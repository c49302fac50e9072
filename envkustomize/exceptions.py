"""Exceptions related to kubectl-envkustomize."""

__all__ = [
    "EnvKustomizeException",
    "InputException",
    "EnvFileException",
    "SubstitutionException",
    "SecretException",
    "CommandException",
    "KustomizeException",
]


class EnvKustomizeException(Exception):
    """Generic base exception used for this library."""


class InputException(EnvKustomizeException):
    """Raised when the input files or values are not formatted as expected."""


class EnvFileException(InputException):
    """Raised when an environment file can't be read or parsed."""


class SubstitutionException(InputException):
    """Raised when a placeholder in a manifest can't be substituted."""


class SecretException(EnvKustomizeException):
    """Raised when a secret can't be fetched from the secret manager."""


class CommandException(EnvKustomizeException):
    """Raised when there is a failure running a subcommand."""


class KustomizeException(CommandException):
    """Raised when there is a failure running a kustomize command."""
