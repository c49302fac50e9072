"""Run kubectl-envkustomize with `python -m envkustomize`."""

from envkustomize.tool.kubectl_envkustomize import main

if __name__ == "__main__":
    main()
