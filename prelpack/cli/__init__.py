"""prelpack CLI — Typer-based command-line interface.

Provides the ``prelpack`` command with subcommands for packing a
properties file and its images into an archive and for inspecting an
existing archive.

All output uses Rich for formatted terminal display.
"""
