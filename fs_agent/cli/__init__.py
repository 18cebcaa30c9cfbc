"""CLI module for fs-agent.

This module provides the command-line interface of the agent. It supports
a properties file, WSS_* environment variables and CLI options.
"""

from .main import (
    build_overrides,
    cli,
    execute,
    initialize_sentry,
    main,
    read_file_list,
    resolve_base_dirs,
)

__all__ = [
    "cli",
    "main",
    "execute",
    "build_overrides",
    "initialize_sentry",
    "read_file_list",
    "resolve_base_dirs",
]
