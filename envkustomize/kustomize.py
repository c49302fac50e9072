"""Library for generating kustomize commands to build manifests.

This example returns the objects produced by `kustomize build`:
```python
from pathlib import Path

from envkustomize import kustomize

objects = await kustomize.build(Path('/path/to/overlay')).objects()
for object in objects:
    print(f"Found object {object['apiVersion']} {object['kind']}")
```

Helm chart inflation and exec plugins are enabled by default, matching
what `kubectl kustomize` users typically expect from a rendering tool. Both
can be turned off with `Options`.
"""

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, AsyncGenerator

import yaml

from .command import Command, Task, run
from .exceptions import KustomizeException

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "build",
    "Kustomize",
    "Options",
]

KUSTOMIZE_BIN = "kustomize"
HELM_BIN = "helm"


@dataclass
class Options:
    """Options for running kustomize build."""

    kustomize_command: str = KUSTOMIZE_BIN
    """Path to the kustomize binary."""

    enable_helm: bool = True
    """Inflate helm charts referenced by the helmCharts field."""

    helm_command: str = HELM_BIN
    """Path to the helm binary used for chart inflation."""

    enable_exec: bool = True
    """Allow exec KRM function and legacy exec plugins."""

    load_restrictor: str | None = None
    """Override the kustomize file load restrictor e.g. `LoadRestrictionsNone`."""

    @property
    def build_flags(self) -> list[str]:
        """Flags passed to `kustomize build`."""
        flags = []
        if self.enable_helm:
            flags.extend(["--enable-helm", "--helm-command", self.helm_command])
        if self.enable_exec:
            flags.extend(["--enable-alpha-plugins", "--enable-exec"])
        if self.load_restrictor:
            flags.extend(["--load-restrictor", self.load_restrictor])
        return flags


class Kustomize:
    """Library for issuing a kustomize command."""

    def __init__(self, task: Task) -> None:
        """Initialize Kustomize with the task that produces the manifests."""
        self._task = task

    async def run(self) -> str:
        """Run the kustomize command and return the output as a string."""
        return await run(self._task)

    async def _docs(self) -> AsyncGenerator[dict[str, Any], None]:
        """Run the kustomize command and return the result documents."""
        out = await self.run()
        for doc in yaml.safe_load_all(out):
            if doc is None:
                continue
            yield doc

    async def objects(self) -> list[dict[str, Any]]:
        """Run the kustomize command and return the result objects as a list."""
        try:
            return [doc async for doc in self._docs()]
        except yaml.YAMLError as err:
            raise KustomizeException(
                f"Unable to parse output of {self._task}: {err}"
            ) from err


def build(
    path: Path, options: Options | None = None, env: dict[str, str] | None = None
) -> Kustomize:
    """Build manifests from the kustomization in the specified path."""
    options = options or Options()
    args = [options.kustomize_command, "build", str(path)] + options.build_flags
    return Kustomize(Command(args, exc=KustomizeException, env=env))
