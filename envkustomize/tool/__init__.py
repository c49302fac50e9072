"""Command line tool for kubectl-envkustomize."""
