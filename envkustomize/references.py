"""Library for finding the local files a kustomization reads.

kustomize follows references from a kustomization to other directories and
files, most commonly an overlay pointing at its base:

```yaml
resources:
- ../../base
patches:
- path: replicas.yaml
```

Walking these references up front tells the renderer which directory must be
staged so that every referenced path is present in the copy, and which files
kustomize will actually read.
"""

from collections.abc import Generator, Iterable
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
from typing import Any

import yaml

__all__ = [
    "KUSTOMIZATION_FILES",
    "kustomization_file",
    "local_refs",
    "References",
    "scan",
]

_LOGGER = logging.getLogger(__name__)

KUSTOMIZATION_FILES = ("kustomization.yaml", "kustomization.yml", "Kustomization")

# Fields holding a list of paths to files or kustomization directories
PATH_LIST_FIELDS = (
    "resources",
    "components",
    "bases",
    "crds",
    "generators",
    "transformers",
    "validators",
    "configurations",
    "patchesStrategicMerge",
)
# Fields holding a list of objects with a `path` attribute
PATH_OBJECT_FIELDS = ("patches", "patchesJson6902", "replacements")
GENERATOR_FIELDS = ("configMapGenerator", "secretGenerator")
REMOTE_PREFIXES = ("github.com/", "gitlab.com/", "bitbucket.org/", "git@", "git::")


def kustomization_file(path: Path) -> Path | None:
    """Return the kustomization file in the directory, if there is one."""
    for name in KUSTOMIZATION_FILES:
        if (candidate := path / name).is_file():
            return candidate
    return None


def _normalize(path: Path) -> Path:
    """Return an absolute path with `..` removed, leaving symlinks in place."""
    return Path(os.path.normpath(path.absolute()))


def _is_remote(ref: str) -> bool:
    return "://" in ref or ref.startswith(REMOTE_PREFIXES)


def _strings(value: Any) -> Generator[str, None, None]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, list):
        yield from (item for item in value if isinstance(item, str))


def _generator_source(entry: str) -> str:
    """Return the path of a generator `files` entry, which may be `key=path`."""
    return entry.split("=", 1)[-1]


def local_refs(doc: dict[str, Any]) -> Generator[str, None, None]:
    """Yield the relative paths referenced by a kustomization document."""
    for name in PATH_LIST_FIELDS:
        yield from _strings(doc.get(name))
    for name in PATH_OBJECT_FIELDS:
        for item in doc.get(name) or []:
            if isinstance(item, dict) and isinstance(path := item.get("path"), str):
                yield path
    for name in GENERATOR_FIELDS:
        for item in doc.get(name) or []:
            if not isinstance(item, dict):
                continue
            for entry in _strings(item.get("files")):
                yield _generator_source(entry)
            yield from _strings(item.get("envs"))
            yield from _strings(item.get("env"))
    for chart in doc.get("helmCharts") or []:
        if isinstance(chart, dict):
            yield from _strings(chart.get("valuesFile"))
            yield from _strings(chart.get("additionalValuesFiles"))
    if isinstance(helm_globals := doc.get("helmGlobals"), dict):
        yield from _strings(helm_globals.get("chartHome"))


@dataclass
class References:
    """Local paths read while building a set of kustomizations.

    Paths are absolute but symlinks are not resolved, so a base linked in from
    elsewhere is found under the directory holding the link.
    """

    directories: set[Path] = field(default_factory=set)
    """Kustomization directories and other referenced directories."""

    files: set[Path] = field(default_factory=set)
    """Kustomization files and files referenced from them."""

    def common_root(self, *paths: Path) -> Path:
        """Return the deepest directory holding every reference and the paths."""
        dirs = [str(path) for path in paths]
        dirs.extend(str(path) for path in self.directories)
        dirs.extend(str(path.parent) for path in self.files)
        return Path(os.path.commonpath(dirs))


def _scan_dir(directory: Path, refs: References) -> None:
    if directory in refs.directories:
        return
    refs.directories.add(directory)
    if (ks_file := kustomization_file(directory)) is None:
        return
    refs.files.add(ks_file)
    try:
        doc = yaml.safe_load(ks_file.read_text())
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as err:
        # kustomize reports the problem with more context when it builds
        _LOGGER.debug("Unable to scan %s: %s", ks_file, err)
        return
    if not isinstance(doc, dict):
        return
    for ref in local_refs(doc):
        if _is_remote(ref) or "${{{" in ref:
            continue
        target = _normalize(directory / ref)
        if target.is_dir():
            _scan_dir(target, refs)
        elif target.exists():
            refs.files.add(target)
        else:
            _LOGGER.debug("Reference %s in %s does not exist", ref, ks_file)


def scan(directories: Iterable[Path]) -> References:
    """Follow references from the kustomization directories."""
    refs = References()
    for directory in directories:
        _scan_dir(_normalize(directory), refs)
    return refs
