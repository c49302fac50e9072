"""Command line tool for rendering kustomize manifests with environment values."""

import argparse
import asyncio
import logging
import sys
import traceback

from envkustomize import __version__
from envkustomize.exceptions import EnvKustomizeException
from . import render

_LOGGER = logging.getLogger(__name__)

PROG = "kubectl-envkustomize"


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Kustomize with env support.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    render.RenderAction.register(subparsers)
    return parser


def main() -> None:
    """kubectl-envkustomize command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args()

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except EnvKustomizeException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print(f"{PROG} error: {err}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
