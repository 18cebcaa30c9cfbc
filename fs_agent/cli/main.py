"""Command-line interface for fs-agent.

The run has three steps:

# Step 1: Configuration
The properties file is read, ``WSS_*`` environment variables and
command-line options are layered on top, and the result is validated.

# Step 2: Dependency Scan
The base directories (or the configured SCM repository) are scanned for
files matching the include/exclude patterns.

# Step 3: Inventory Dispatch
The project is checked against policies (optional) and sent to the service,
or written to an offline request file.

Exit status: 0 success, 1 configuration or scan error, 2 update withheld by
policy, 3 service failure.
"""

import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
import sentry_sdk

from .. import __version__
from .._dispatch import DispatchResult, RunOutcome, StatusCode
from ..config import (
    CHECK_POLICIES,
    DEFAULT_CONFIG_FILE,
    LOG_LEVEL,
    OFFLINE,
    ORG_TOKEN,
    PROJECT_NAME,
    PROJECT_TOKEN,
    PROJECT_VERSION,
    REPORT_DIR,
    RunConfiguration,
    load_config,
)
from ..console import (
    print_banner,
    print_final_failure,
    print_final_success,
    print_final_withheld,
    print_step_end,
    print_step_header,
)
from ..dispatch import collect_dependencies, run_dispatch
from ..exceptions import ScanError, ScmError, ValidationError
from ..logging_config import logger, set_log_level

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def initialize_sentry() -> bool:
    """
    Initialize Sentry for error tracking.

    Sentry is only enabled when SENTRY_DSN is set and TELEMETRY is not "false".

    Returns:
        True if Sentry was initialized
    """
    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn or os.getenv("TELEMETRY", "true").lower() == "false":
        return False

    def before_send(event, hint):
        """Don't send configuration errors, these are user errors."""
        if "exc_info" in hint:
            exc_type, exc_value, tb = hint["exc_info"]
            if isinstance(exc_value, ValidationError):
                return None
        return event

    sentry_sdk.init(
        dsn=sentry_dsn,
        send_default_pii=False,
        traces_sample_rate=0.0,
        before_send=before_send,
    )
    return True


def read_file_list(path: Optional[str]) -> List[str]:
    """Read base directories from a list file, one per line."""
    if not path:
        return []
    list_file = Path(path)
    if not list_file.exists():
        logger.warning(f"List file {path} not found")
        return []
    try:
        lines = list_file.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning(f"Error reading list file: {e}")
        return []
    return [line.strip() for line in lines if line.strip()]


def build_overrides(
    api_key: Optional[str],
    project_name: Optional[str],
    project_version: Optional[str],
    project_token: Optional[str],
    offline: Optional[bool],
    check_policies: Optional[bool],
    report_dir: Optional[str],
    log_level: Optional[str],
) -> Dict[str, Optional[str]]:
    """Map command-line options to property keys. Unset options are None."""

    def flag(value: Optional[bool]) -> Optional[str]:
        return None if value is None else str(value).lower()

    return {
        ORG_TOKEN: api_key,
        PROJECT_NAME: project_name,
        PROJECT_VERSION: project_version,
        PROJECT_TOKEN: project_token,
        OFFLINE: flag(offline),
        CHECK_POLICIES: flag(check_policies),
        REPORT_DIR: report_dir,
        LOG_LEVEL: log_level,
    }


def resolve_base_dirs(dependency_dirs: Tuple[str, ...], file_list: Optional[str]) -> List[str]:
    """Combine list-file entries and -d directories, defaulting to the current directory."""
    base_dirs = read_file_list(file_list) + list(dependency_dirs)
    return base_dirs or ["."]


def report_outcome(result: DispatchResult) -> None:
    """Print the final console message for a run."""
    if result.outcome is RunOutcome.NO_OP:
        print_final_success("Nothing to update")
    elif result.outcome is RunOutcome.SUBMITTED:
        print_final_success("Inventory update submitted")
    elif result.outcome is RunOutcome.OFFLINE:
        print_final_success("Offline update request generated")
    elif result.outcome is RunOutcome.WITHHELD:
        print_final_withheld("Some dependencies did not conform with open source policies, update withheld")
    else:
        print_final_failure(result.error_message or "Failed to send request to the service")


def execute(config: RunConfiguration, base_dirs: List[str]) -> int:
    """Run the scan and dispatch steps for a loaded configuration."""
    print_step_header(2, "Dependency Scan")
    try:
        dependencies = collect_dependencies(config, base_dirs)
    except (ValidationError, ScmError, ScanError) as e:
        logger.error(f"Step 2 (scan) failed: {e}")
        print_step_end(2, success=False)
        print_final_failure(str(e))
        return StatusCode.ERROR
    print_step_end(2)

    print_step_header(3, "Inventory Dispatch")
    try:
        result = run_dispatch(config, dependencies)
    except ValidationError as e:
        logger.error(f"Step 3 (dispatch) failed: {e}")
        print_step_end(3, success=False)
        print_final_failure(str(e))
        return StatusCode.ERROR
    except Exception as e:
        logger.exception(f"Unexpected error during dispatch: {e}")
        sentry_sdk.capture_exception(e)
        print_step_end(3, success=False)
        print_final_failure(str(e))
        return StatusCode.ERROR

    print_step_end(3, success=result.outcome is not RunOutcome.FAILED)
    report_outcome(result)
    return result.status_code


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-c",
    "--config",
    "config_file",
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    envvar="WSS_CONFIG_FILE",
    help="Path to the agent properties file.",
)
@click.option(
    "-d",
    "--dependency-dir",
    "dependency_dirs",
    multiple=True,
    help="Directory or file to scan. Can be given several times. Defaults to the current directory.",
)
@click.option(
    "-f",
    "--file-list",
    "file_list",
    default=None,
    help="File listing directories to scan, one per line.",
)
@click.option("--api-key", default=None, help="Organization token (overrides apiKey).")
@click.option("--project-name", default=None, help="Project name (overrides projectName).")
@click.option("--project-version", default=None, help="Project version (overrides projectVersion).")
@click.option("--project-token", default=None, help="Project token (overrides projectToken).")
@click.option("--offline/--no-offline", default=None, help="Write an offline request instead of sending it.")
@click.option(
    "--check-policies/--no-check-policies", default=None, help="Check policies before sending the update."
)
@click.option("--report-dir", default=None, help="Directory for reports and offline requests.")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (overrides log.level).",
)
@click.version_option(__version__, "-v", "--version", prog_name="fs-agent", message="%(prog)s %(version)s")
def cli(
    config_file: str,
    dependency_dirs: Tuple[str, ...],
    file_list: Optional[str],
    api_key: Optional[str],
    project_name: Optional[str],
    project_version: Optional[str],
    project_token: Optional[str],
    offline: Optional[bool],
    check_policies: Optional[bool],
    report_dir: Optional[str],
    log_level: Optional[str],
) -> None:
    """Inventory project dependencies and report them to the governance service."""
    print_banner(__version__)
    initialize_sentry()

    print_step_header(1, "Configuration")
    overrides = build_overrides(
        api_key, project_name, project_version, project_token, offline, check_policies, report_dir, log_level
    )
    try:
        config = load_config(config_file, overrides)
    except ValidationError as e:
        logger.error(f"Configuration error: {e}")
        print_step_end(1, success=False)
        print_final_failure(str(e))
        sys.exit(int(StatusCode.ERROR))

    set_log_level(config.log_level)
    if config.offline:
        logger.info("Offline mode: the update request will be written to disk")
    print_step_end(1)

    sys.exit(int(execute(config, resolve_base_dirs(dependency_dirs, file_list))))


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
