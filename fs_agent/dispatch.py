"""
Public API for running the agent.

Usage:
    from fs_agent.config import load_config
    from fs_agent.dispatch import run

    config = load_config("whitesource-fs-agent.config")

    # Scan directories and report them
    status = run(config, ["./libs", "./build"])

    # Or report dependencies produced elsewhere
    status = run(config, dependencies)

    sys.exit(status)
"""

from typing import Iterable, List, Optional, Sequence, Union

from ._dispatch import (
    Dispatcher,
    DispatchResult,
    GatewayFactory,
    ProjectAssembler,
    ReportSink,
    Scanner,
    StatusCode,
)
from .config import RunConfiguration
from .exceptions import ScanError, ScmError, ValidationError
from .logging_config import logger
from .models import Dependency
from .scanner import FileSystemScanner
from .scm import ScmConnector


def collect_dependencies(
    config: RunConfiguration,
    base_dirs: Sequence[str],
    scanner: Optional[Scanner] = None,
) -> List[Dependency]:
    """
    Scan the configured sources for dependencies.

    When an SCM repository is configured it replaces ``base_dirs``; the
    clone is removed again once scanning is done.

    Raises:
        ValidationError: If the SCM settings are invalid
        ScmError: If the checkout fails
    """
    scanner = scanner or FileSystemScanner()
    connector = ScmConnector.create(
        config.scm_type,
        config.scm_url,
        private_key=config.scm_ppk,
        username=config.scm_user,
        password=config.scm_pass,
        branch=config.scm_branch,
        tag=config.scm_tag,
    )

    scan_dirs = list(base_dirs)
    try:
        if connector is not None:
            logger.info("Connecting to SCM")
            scan_dirs = [str(connector.checkout())]

        return scanner.scan(
            scan_dirs,
            config.includes,
            config.excludes,
            case_sensitive=config.case_sensitive_glob,
            archive_depth=config.archive_extraction_depth,
            archive_includes=config.archive_includes,
            archive_excludes=config.archive_excludes,
            follow_symlinks=config.follow_symlinks,
            excluded_copyrights=config.excluded_copyrights,
            partial_match=config.partial_sha1_match,
        )
    finally:
        if connector is not None:
            connector.cleanup()


def run_dispatch(
    config: RunConfiguration,
    dependencies_or_base_dirs: Iterable[Union[Dependency, str]],
    scanner: Optional[Scanner] = None,
    gateway_factory: Optional[GatewayFactory] = None,
    policy_report_sink: Optional[ReportSink] = None,
    offline_sink: Optional[ReportSink] = None,
) -> DispatchResult:
    """
    Assemble the project and dispatch it, returning the full result.

    ``dependencies_or_base_dirs`` is either a list of Dependency records or
    a list of directories (or files) to scan.

    Raises:
        ValidationError: If the configuration is invalid (before any remote or file activity),
            or the list mixes Dependency records and directories
        ScmError: If the SCM checkout fails
        ScanError: If scanning fails
    """
    config.validate()
    assembler = ProjectAssembler()
    # Checked before any scanning or network interaction
    assembler.validate_identity(config)

    items = list(dependencies_or_base_dirs)
    dependency_count = sum(1 for item in items if isinstance(item, Dependency))
    if dependency_count and dependency_count != len(items):
        raise ValidationError("Pass either Dependency records or directories to scan, not both")
    # An empty list means nothing was found, not "scan nothing"
    if dependency_count == len(items):
        dependencies = items
    else:
        dependencies = collect_dependencies(config, [str(item) for item in items], scanner)

    project = assembler.assemble(config, dependencies)  # type: ignore[arg-type]
    dispatcher = Dispatcher(
        config,
        gateway_factory=gateway_factory,
        policy_report_sink=policy_report_sink,
        offline_sink=offline_sink,
    )
    return dispatcher.dispatch([project])


def run(
    config: RunConfiguration,
    dependencies_or_base_dirs: Iterable[Union[Dependency, str]],
    scanner: Optional[Scanner] = None,
    gateway_factory: Optional[GatewayFactory] = None,
    policy_report_sink: Optional[ReportSink] = None,
    offline_sink: Optional[ReportSink] = None,
) -> StatusCode:
    """
    Run the agent and return the process exit status.

    Validation errors are raised to the caller. SCM and scan failures are
    logged and reported as StatusCode.ERROR.

    Raises:
        ValidationError: If the configuration is invalid
    """
    try:
        result = run_dispatch(
            config,
            dependencies_or_base_dirs,
            scanner=scanner,
            gateway_factory=gateway_factory,
            policy_report_sink=policy_report_sink,
            offline_sink=offline_sink,
        )
    except (ScmError, ScanError) as e:
        logger.error(f"Failed to collect dependencies: {e}")
        return StatusCode.ERROR
    return result.status_code


__all__ = [
    "run",
    "run_dispatch",
    "collect_dependencies",
    "StatusCode",
]
