"""Update dispatch core.

This package holds the orchestration of a run:
- ProjectAssembler builds the reported project from config and scan output
- WhitesourceGateway talks to the agent endpoint of the governance service
- PolicyGate decides whether an update may be sent
- Dispatcher sequences the run as an explicit state machine
- summarize formats the update result

Usage:
    from fs_agent._dispatch import Dispatcher, ProjectAssembler

    project = ProjectAssembler().assemble(config, dependencies)
    result = Dispatcher(config).dispatch([project])
"""

from .assembler import ProjectAssembler, drop_empty_projects, request_identity
from .dispatcher import Dispatcher, GatewayFactory
from .gateway import WhitesourceGateway
from .policy import PolicyGate
from .protocol import ReportSink, Scanner, ServiceGateway, SourceControlConnector
from .reporter import NO_NEW_PROJECTS, NO_UPDATED_PROJECTS, summarize
from .result import DispatchResult, DispatchState, RunOutcome, StatusCode

__all__ = [
    # Core types
    "DispatchResult",
    "DispatchState",
    "RunOutcome",
    "StatusCode",
    # Protocols
    "ServiceGateway",
    "ReportSink",
    "Scanner",
    "SourceControlConnector",
    # Components
    "ProjectAssembler",
    "Dispatcher",
    "GatewayFactory",
    "PolicyGate",
    "WhitesourceGateway",
    "drop_empty_projects",
    "request_identity",
    "summarize",
    "NO_NEW_PROJECTS",
    "NO_UPDATED_PROJECTS",
]
