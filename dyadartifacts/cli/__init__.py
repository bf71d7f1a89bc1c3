"""dyadartifacts CLI — Typer-based command-line interface.

Provides the ``dyadartifacts`` command with subcommands for publishing
artifacts (``bundle-cli``, ``snapshot``) and for inspecting or fetching them
(``list``, ``path``, ``attribution``, ``fetch``).

All output uses Rich for formatted terminal display.
"""
