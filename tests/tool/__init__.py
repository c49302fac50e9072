"""Test helpers for kubectl-envkustomize tools."""

import pathlib

from envkustomize.command import Command, run

KUBECTL_ENVKUSTOMIZE_BIN = "kubectl-envkustomize"


async def run_command(
    args: list[str],
    env: dict[str, str] | None = None,
    cwd: pathlib.Path | None = None,
) -> str:
    return await run(Command([KUBECTL_ENVKUSTOMIZE_BIN] + args, env=env, cwd=cwd))
