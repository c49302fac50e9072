"""kubectl-envkustomize render action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
    BooleanOptionalAction,
)
import logging
import os
import pathlib
from typing import cast

from envkustomize import __version__, envfile, environ, kustomize, render
from envkustomize.exceptions import EnvFileException
from envkustomize.secrets import SecretResolver

_LOGGER = logging.getLogger(__name__)

DEFAULT_ENV_FILE = ".env"
DEFAULT_OUTPUT_FILE = "rendered.yaml"


class RenderAction:
    """kubectl-envkustomize render action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "render",
                help="Render kustomize manifests",
                description="""Render kustomize manifests from the environment
                    configuration. Placeholders like ${{{ NAME }}} in the
                    manifests are replaced with values from the env file and
                    the current environment, then kustomize builds the
                    kustomization in the current directory, or every
                    kustomization below it.""",
            ),
        )
        args.add_argument(
            "-e",
            "--env-file",
            type=pathlib.Path,
            default=pathlib.Path(DEFAULT_ENV_FILE),
            help="Path to the environment file",
        )
        args.add_argument(
            "--path",
            type=pathlib.Path,
            default=pathlib.Path("."),
            help="Directory holding the kustomizations to render",
        )
        args.add_argument(
            "--stage-root",
            type=pathlib.Path,
            default=None,
            help="Directory copied for substitution, defaults to the deepest "
            "directory holding every path the kustomizations reference",
        )
        args.add_argument(
            "--output-file",
            type=pathlib.Path,
            default=pathlib.Path(DEFAULT_OUTPUT_FILE),
            help="Output file for the rendered manifests",
        )
        args.add_argument(
            "--prefix",
            type=str,
            default=None,
            help=f"Only list variables with this prefix, defaults to ${environ.PREFIX_VARIABLE}",
        )
        args.add_argument(
            "--secrets",
            action=BooleanOptionalAction,
            default=True,
            help="Resolve gcp-secret:// references in the env file",
        )
        args.add_argument(
            "--kustomize-command",
            type=str,
            default=kustomize.KUSTOMIZE_BIN,
            help="Path to the kustomize binary",
        )
        args.add_argument(
            "--enable-helm",
            action=BooleanOptionalAction,
            default=True,
            help="Enable helm chart inflation",
        )
        args.add_argument(
            "--helm-command",
            type=str,
            default=kustomize.HELM_BIN,
            help="Path to the helm binary",
        )
        args.add_argument(
            "--enable-exec",
            action=BooleanOptionalAction,
            default=True,
            help="Enable exec plugins and KRM functions",
        )
        args.add_argument(
            "--load-restrictor",
            type=str,
            default=None,
            choices=["LoadRestrictionsRootOnly", "LoadRestrictionsNone"],
            help="Override the kustomize file load restrictor",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        env_file: pathlib.Path,
        path: pathlib.Path,
        output_file: pathlib.Path,
        stage_root: pathlib.Path | None,
        prefix: str | None,
        secrets: bool,
        kustomize_command: str,
        enable_helm: bool,
        helm_command: str,
        enable_exec: bool,
        load_restrictor: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        print(f"kubectl envkustomize render version {__version__}")
        print(f"Loading env file {env_file}")

        env = dict(os.environ)
        resolver = SecretResolver() if secrets else None
        try:
            envfile.load_env_file(env_file, env, resolver)
        except EnvFileException as err:
            print(f"WARNING: unable to load env file {env_file}. {err}")

        if prefix is None:
            prefix = env.get(environ.PREFIX_VARIABLE, "")
        if not prefix:
            print(
                f"WARNING: {environ.PREFIX_VARIABLE} is not set, all variables "
                "are listed. Set a prefix to avoid conflicts with variables "
                "already present in your environment."
            )
        print(f"Environment variables with prefix '{prefix}'")
        for line in environ.describe(env, prefix):
            print(f"  - {line}")
        print()

        options = kustomize.Options(
            kustomize_command=kustomize_command,
            enable_helm=enable_helm,
            helm_command=helm_command,
            enable_exec=enable_exec,
            load_restrictor=load_restrictor,
        )
        built = await render.render(
            path, env, output_file, options, stage_root=stage_root
        )
        for kustomization in built:
            print(f"Built kustomize manifests in {kustomization}")
        print(f"Rendered manifests written to {output_file}")
