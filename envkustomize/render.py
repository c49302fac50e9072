"""Library for rendering kustomizations with environment substitution.

Rendering stages a substituted copy of the directory, builds each
kustomization found in it and writes the combined manifests to a single file:

```python
import os
from pathlib import Path

from envkustomize import render

built = await render.render(Path("."), dict(os.environ), Path("rendered.yaml"))
```

When the root directory is itself a kustomization only that one is built.
Otherwise every directory beneath the root holding a kustomization is built, in
lexical order, and the outputs are separated by `---`.

The staged copy covers the deepest directory holding the root and everything
its kustomizations reference, so an overlay that points at `../../base` builds
the same as it does on disk.
"""

import asyncio
from collections.abc import Callable, Mapping
import logging
import os
from pathlib import Path
import tempfile

import aiofiles
from aiofiles.ospath import isdir

from . import kustomize, references
from .command import format_path
from .exceptions import InputException, SubstitutionException
from .staging import IGNORE_DIRS, read_krmignore, stage_tree
from .substitute import PLACEHOLDER_RE, expand_all

__all__ = [
    "find_kustomizations",
    "render",
]

_LOGGER = logging.getLogger(__name__)

DOCUMENT_SEPARATOR = "\n---\n"


def is_kustomization_dir(path: Path) -> bool:
    """Return True if the directory holds a kustomization file."""
    return references.kustomization_file(path) is not None


def find_kustomizations(root: Path) -> list[Path]:
    """Return kustomization directories relative to the root.

    If the root is a kustomization it is the only result, otherwise all
    descendant directories that are kustomizations in walk order.
    """
    if is_kustomization_dir(root):
        return [Path(".")]
    ignored = read_krmignore(root.resolve())
    found = []
    for dirpath, dirnames, _ in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = sorted(
            name
            for name in dirnames
            if name not in IGNORE_DIRS and (current / name).resolve() not in ignored
        )
        if current != root and is_kustomization_dir(current):
            found.append(current.relative_to(root))
    return found


def _substitution(
    environ: Mapping[str, str], failures: dict[Path, SubstitutionException]
) -> Callable[[str, Path], str]:
    """Return a staging transform that substitutes from the environment.

    Files that can't be substituted are staged unchanged and recorded, since
    kustomize may never read them.
    """

    def transform(text: str, path: Path) -> str:
        try:
            return expand_all(text, environ)
        except SubstitutionException as err:
            _LOGGER.debug("Staging %s without substitution: %s", path, err)
            failures[path] = err
            return text

    return transform


def _failure_error(
    path: Path, failures: dict[Path, SubstitutionException]
) -> SubstitutionException:
    return SubstitutionException(f"{format_path(path)}: {failures[path]}")


async def _build(
    staged: Path,
    kustomization: Path,
    options: kustomize.Options,
    environ: Mapping[str, str],
) -> str:
    _LOGGER.info("Building kustomize manifests in %s", kustomization)
    return await kustomize.build(
        staged / kustomization, options, env=dict(environ)
    ).run()


async def render(
    root: Path,
    environ: Mapping[str, str],
    output_file: Path,
    options: kustomize.Options | None = None,
    stage_root: Path | None = None,
) -> list[Path]:
    """Render all kustomizations under root into the output file.

    The stage root defaults to the deepest directory containing the root and
    every local path its kustomizations reference. The output file is only
    written once every kustomization has been built successfully. Returns the
    kustomization directories that were built.
    """
    options = options or kustomize.Options()
    if not await isdir(root):
        raise InputException(f"Path is not a directory: {root}")
    if not await isdir(output_file.absolute().parent):
        raise InputException(f"Output directory does not exist: {output_file.parent}")
    if not (kustomizations := find_kustomizations(root)):
        raise InputException(f"No kustomization found in {format_path(root)}")

    root = root.resolve()
    refs = references.scan(root / ks for ks in kustomizations)
    if stage_root is None:
        stage_root = refs.common_root(root)
    else:
        stage_root = stage_root.resolve()
        if not root.is_relative_to(stage_root):
            raise InputException(
                f"Path {format_path(root)} is not inside the stage root {format_path(stage_root)}"
            )
    _LOGGER.debug("Staging from %s", format_path(stage_root))
    base = root.relative_to(stage_root)

    failures: dict[Path, SubstitutionException] = {}
    with tempfile.TemporaryDirectory() as tmp_dir:
        staged = Path(tmp_dir)
        await stage_tree(
            stage_root, staged, _substitution(environ, failures), exclude=[output_file]
        )
        for path in sorted(failures):
            if path in refs.files:
                raise _failure_error(path, failures)
        outputs = await asyncio.gather(
            *(_build(staged, base / ks, options, environ) for ks in kustomizations)
        )

    for ks, output in zip(kustomizations, outputs):
        if PLACEHOLDER_RE.search(output):
            if failures:
                raise _failure_error(sorted(failures)[0], failures)
            raise SubstitutionException(f"Some placeholders are not replaced in {ks}")

    content = "".join(output + DOCUMENT_SEPARATOR for output in outputs)
    async with aiofiles.open(output_file, "w") as fd:
        await fd.write(content)
    _LOGGER.info("Rendered manifests written to %s", output_file)
    return kustomizations
