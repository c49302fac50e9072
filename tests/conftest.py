"""Fixtures for kubectl-envkustomize tests."""

from collections.abc import Generator
import pathlib
import stat

import pytest

# Stands in for `kustomize build <path> ...` by printing the staged kustomization
FAKE_KUSTOMIZE = """#!/bin/sh
cat "$2/kustomization.yaml"
"""


@pytest.fixture(name="fake_kustomize")
def fake_kustomize_fixture(tmp_path_factory: pytest.TempPathFactory) -> pathlib.Path:
    """Create an executable that echoes the kustomization it is asked to build."""
    script = tmp_path_factory.mktemp("bin") / "kustomize"
    script.write_text(FAKE_KUSTOMIZE)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture(name="repo")
def repo_fixture(tmp_path: pathlib.Path) -> Generator[pathlib.Path, None, None]:
    """Create an empty directory to hold kustomizations."""
    repo = tmp_path / "repo"
    repo.mkdir()
    yield repo
