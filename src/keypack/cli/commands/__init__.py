"""Subcommand handlers, each exposing ``run_<name>(config, args)``."""
