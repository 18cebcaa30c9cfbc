"""Protocols for the collaborators the dispatch core talks to.

The core only depends on these shapes. Concrete implementations live in
``gateway.py`` (remote service), ``fs_agent._reports`` (report sinks),
``fs_agent.scanner`` and ``fs_agent.scm``.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Protocol, Sequence

if TYPE_CHECKING:
    from fs_agent.models import (
        ComplianceResult,
        Dependency,
        OfflinePayload,
        Project,
        RequestIdentity,
        UpdateResult,
    )


class ServiceGateway(Protocol):
    """
    Typed handle on the remote governance service.

    Every operation blocks until the service answers and may raise
    ServiceError. ``shutdown()`` must be safe to call more than once.
    """

    def check_compliance(
        self,
        identity: "RequestIdentity",
        projects: Sequence["Project"],
        force_check_all: bool = False,
    ) -> "ComplianceResult": ...

    def submit_update(self, identity: "RequestIdentity", projects: Sequence["Project"]) -> "UpdateResult": ...

    def build_offline_payload(
        self, identity: "RequestIdentity", projects: Sequence["Project"]
    ) -> "OfflinePayload": ...

    def shutdown(self) -> None: ...


class ReportSink(Protocol):
    """
    Writes a result object into an output directory.

    Implementations raise ReportGenerationError on I/O failure and return
    the paths they produced.
    """

    def render(self, subject: Any, output_dir: Path, **options: Any) -> List[Path]: ...


class Scanner(Protocol):
    """Produces the dependency list for a set of base directories."""

    def scan(
        self,
        base_dirs: Sequence[str],
        includes: Sequence[str],
        excludes: Sequence[str],
        case_sensitive: bool = False,
        archive_depth: int = 0,
        archive_includes: Sequence[str] = (),
        archive_excludes: Sequence[str] = (),
        follow_symlinks: bool = True,
        excluded_copyrights: Sequence[str] = (),
        partial_match: bool = False,
    ) -> List["Dependency"]: ...


class SourceControlConnector(Protocol):
    """Checks out a repository into a local directory."""

    def checkout(self) -> Path: ...

    def cleanup(self) -> None: ...


__all__ = ["ServiceGateway", "ReportSink", "Scanner", "SourceControlConnector"]
