"""Rich console utilities for fs-agent.

This module provides a shared Rich Console instance and helper functions
for CLI output, with GitHub Actions grouping when running there.
"""

import os
from typing import Optional

from rich.console import Console
from rich.text import Text
from rich.theme import Theme

IS_GITHUB_ACTIONS = os.getenv("GITHUB_ACTIONS") == "true"

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "step": "bold blue",
        "highlight": "magenta",
    }
)

# Force colors ON in GitHub Actions (it supports ANSI colors but Rich may incorrectly disable them)
console = Console(
    theme=custom_theme,
    force_terminal=IS_GITHUB_ACTIONS or None,
    color_system="auto",
)


def print_banner(version: str = "unknown") -> None:
    """Print the agent banner."""
    banner = Text()
    banner.append("  __                                 _   \n", style="blue")
    banner.append(" / _|___        __ _  __ _  ___ _ __ | |_ \n", style="bright_blue")
    banner.append("| |_/ __|_____ / _` |/ _` |/ _ \\ '_ \\| __|\n", style="magenta")
    banner.append("|  _\\__ \\_____| (_| | (_| |  __/ | | | |_ \n", style="bright_magenta")
    banner.append("|_| |___/      \\__,_|\\__, |\\___|_| |_|\\__|\n", style="bright_red")
    banner.append("                     |___/               \n", style="yellow")
    # Only prefix with 'v' if version looks like semver (starts with digit)
    version_display = f"v{version}" if version and version[0:1].isdigit() else version
    banner.append(f" {version_display}", style="yellow")
    banner.append(" - dependency inventory agent\n", style="bright_blue")

    console.print(banner)


def print_step_header(step_num: int, title: str) -> None:
    """
    Print a styled step header.

    In GitHub Actions, uses ::group:: for collapsible sections.
    """
    step_title = f"STEP {step_num}: {title}"

    if IS_GITHUB_ACTIONS:
        print(f"::group::{step_title}")
        console.print(f"[bold blue]{step_title}[/bold blue]")
    else:
        console.print()
        console.rule(f"[bold blue]{step_title}[/bold blue]", style="blue")


def print_step_end(step_num: int, success: bool = True) -> None:
    """Print step completion status and close the GitHub Actions group."""
    if success:
        console.print(f"[success]✓ Step {step_num} completed successfully[/success]")
    else:
        console.print(f"[error]✗ Step {step_num} failed[/error]")

    if IS_GITHUB_ACTIONS:
        print("::endgroup::")
    else:
        console.print()


def gha_warning(message: str, title: Optional[str] = None) -> None:
    """Emit a warning that appears in the GitHub Actions job summary."""
    if IS_GITHUB_ACTIONS:
        print(f"::warning title={title}::{message}" if title else f"::warning::{message}")
    elif title:
        console.print(f"[warning]Warning ({title}):[/warning] {message}")
    else:
        console.print(f"[warning]Warning:[/warning] {message}")


def gha_error(message: str, title: Optional[str] = None) -> None:
    """Emit an error that appears in the GitHub Actions job summary."""
    if IS_GITHUB_ACTIONS:
        print(f"::error title={title}::{message}" if title else f"::error::{message}")
    elif title:
        console.print(f"[error]Error ({title}):[/error] {message}")
    else:
        console.print(f"[error]Error:[/error] {message}")


def print_final_success(message: str = "All steps completed successfully!") -> None:
    """Print final success message."""
    console.print()
    if IS_GITHUB_ACTIONS:
        console.print(f"[bold green]✓ SUCCESS![/bold green] {message}")
    else:
        console.rule("[bold green]SUCCESS[/bold green]", style="green")
        console.print(f"[bold green]{message}[/bold green]", justify="center")
    console.print()


def print_final_withheld(message: str) -> None:
    """Print the outcome of a run whose update was withheld by policy."""
    console.print()
    gha_warning(message, title="Update Withheld")
    if not IS_GITHUB_ACTIONS:
        console.rule("[bold yellow]WITHHELD[/bold yellow]", style="yellow")
        console.print(f"[bold yellow]{message}[/bold yellow]", justify="center")
    console.print()


def print_final_failure(message: str) -> None:
    """Print final failure message."""
    console.print()
    gha_error(message, title="Agent Run Failed")
    if not IS_GITHUB_ACTIONS:
        console.rule("[bold red]FAILED[/bold red]", style="red")
        console.print(f"[bold red]{message}[/bold red]", justify="center")
    console.print()
