"""Tests for kustomize library."""

import pathlib
import shutil

import pytest

from envkustomize import command, exceptions, kustomize

KUSTOMIZATION = """---
apiVersion: kustomize.config.k8s.io/v1beta1
kind: Kustomization
resources:
- example.yaml
"""

CONFIG_MAP = """---
apiVersion: v1
kind: ConfigMap
metadata:
  name: example
data:
  key: value
"""


def test_default_build_flags() -> None:
    """Test helm and exec plugins are enabled by default."""
    assert kustomize.Options().build_flags == [
        "--enable-helm",
        "--helm-command",
        "helm",
        "--enable-alpha-plugins",
        "--enable-exec",
    ]


def test_build_flags() -> None:
    """Test disabling plugins and overriding the load restrictor."""
    options = kustomize.Options(
        enable_helm=False,
        enable_exec=False,
        load_restrictor="LoadRestrictionsNone",
    )
    assert options.build_flags == ["--load-restrictor", "LoadRestrictionsNone"]


async def test_build(repo: pathlib.Path, fake_kustomize: pathlib.Path) -> None:
    """Test running a build with a custom kustomize binary."""
    (repo / "kustomization.yaml").write_text(KUSTOMIZATION)
    result = await kustomize.build(
        repo, kustomize.Options(kustomize_command=str(fake_kustomize))
    ).run()
    assert result == KUSTOMIZATION


async def test_build_failure(repo: pathlib.Path, fake_kustomize: pathlib.Path) -> None:
    """Test a failing build raises a KustomizeException."""
    cmd = kustomize.build(
        repo / "missing", kustomize.Options(kustomize_command=str(fake_kustomize))
    )
    with pytest.raises(exceptions.KustomizeException, match="return code 1"):
        await cmd.run()


INVALID_YAML = """
---
foo: !bar
"""


async def test_objects_failure() -> None:
    """Test output that is not valid yaml."""

    class FakeTask(command.Task):
        async def run(self) -> str:
            """Execute the task and return the result."""
            return INVALID_YAML

    cmd = kustomize.Kustomize(FakeTask())
    with pytest.raises(
        exceptions.KustomizeException,
        match=r"Unable to parse.*could not determine a constructor",
    ):
        await cmd.objects()


async def test_objects() -> None:
    """Test parsing the output documents, skipping empty ones."""

    class FakeTask(command.Task):
        async def run(self) -> str:
            """Execute the task and return the result."""
            return CONFIG_MAP + "---\n"

    result = await kustomize.Kustomize(FakeTask()).objects()
    assert result == [
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "example"},
            "data": {"key": "value"},
        }
    ]


@pytest.mark.skipif(shutil.which("kustomize") is None, reason="requires kustomize")
async def test_kustomize_build(repo: pathlib.Path) -> None:
    """Test a build with the real kustomize binary."""
    (repo / "kustomization.yaml").write_text(KUSTOMIZATION)
    (repo / "example.yaml").write_text(CONFIG_MAP)
    result = await kustomize.build(repo).objects()
    assert result == [
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "example"},
            "data": {"key": "value"},
        }
    ]
