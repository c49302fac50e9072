"""
kubectl-envkustomize renders kustomize manifests with environment substitution.

Environment values are loaded from an env file (see `envkustomize.envfile`),
substituted into manifests (see `envkustomize.substitute`) and the result is
built with kustomize (see `envkustomize.render`).
"""

__all__ = [
    "command",
    "environ",
    "envfile",
    "exceptions",
    "kustomize",
    "references",
    "render",
    "secrets",
    "staging",
    "substitute",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]

__version__ = "0.0.1"
