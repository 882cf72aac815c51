"""CLI subcommands for the tab archiver."""
