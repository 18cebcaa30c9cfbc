"""Outcome types for a dispatch run."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional

from fs_agent.models import ComplianceResult, UpdateResult


class StatusCode(IntEnum):
    """Process exit status of an agent run."""

    SUCCESS = 0
    ERROR = 1
    POLICY_VIOLATION = 2
    SERVER_FAILURE = 3


class DispatchState(Enum):
    START = "start"
    VALIDATED = "validated"
    CHECKING_POLICY = "checking_policy"
    DISPATCHING = "dispatching"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


class RunOutcome(Enum):
    """What a run did, reported as the last log line."""

    NO_OP = "no-op"
    SUBMITTED = "submitted"
    OFFLINE = "offline"
    WITHHELD = "withheld-by-policy"
    FAILED = "failed"

    @property
    def status_code(self) -> StatusCode:
        if self is RunOutcome.WITHHELD:
            return StatusCode.POLICY_VIOLATION
        if self is RunOutcome.FAILED:
            return StatusCode.SERVER_FAILURE
        return StatusCode.SUCCESS


@dataclass
class DispatchResult:
    """
    Result of a dispatch run.

    Attributes:
        outcome: Which terminal outcome the run reached
        update_result: Remote answer when the inventory was submitted
        compliance_result: Policy check answer when policies were checked
        artifacts: Files written during the run (reports, offline payload)
        error_message: Failure description for FAILED runs
    """

    outcome: RunOutcome
    update_result: Optional[UpdateResult] = None
    compliance_result: Optional[ComplianceResult] = None
    artifacts: List[str] = field(default_factory=list)
    error_message: Optional[str] = None

    def __post_init__(self) -> None:
        if self.outcome is RunOutcome.FAILED and not self.error_message:
            raise ValueError("Failed result must have error_message")
        if self.outcome is not RunOutcome.FAILED and self.error_message:
            raise ValueError("Only failed results carry an error_message")

    @property
    def status_code(self) -> StatusCode:
        return self.outcome.status_code

    @property
    def success(self) -> bool:
        return self.status_code is StatusCode.SUCCESS
