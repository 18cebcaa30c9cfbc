"""Update dispatch orchestrator.

A run moves through explicit states::

    START -> VALIDATED -> [CHECKING_POLICY] -> DISPATCHING -> REPORTING -> DONE
                     \\              |               |
                      +-------------+---------------+--> FAILED

- An empty project set goes straight from START to DONE without touching
  the gateway or the file system.
- Offline runs go from VALIDATED to DISPATCHING, write the offline request
  and finish. No remote call is made.
- With policy checking, a rejection goes from CHECKING_POLICY to REPORTING
  and DONE; the update is withheld, which is not a failure.
- A ServiceError from any remote call moves the run to FAILED.

The gateway is created when the run enters VALIDATED and shut down exactly
once when it leaves, whichever terminal state is reached.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Generator, Iterable, List, Optional

from fs_agent.config import RunConfiguration
from fs_agent.exceptions import ReportGenerationError, ServiceError
from fs_agent.logging_config import logger
from fs_agent.models import Project, RequestIdentity

from .assembler import drop_empty_projects, request_identity
from .policy import PolicyGate
from .protocol import ReportSink, ServiceGateway
from .reporter import summarize
from .result import DispatchResult, DispatchState, RunOutcome

GatewayFactory = Callable[[RunConfiguration], ServiceGateway]


def _default_gateway_factory(config: RunConfiguration) -> ServiceGateway:
    from .gateway import WhitesourceGateway

    return WhitesourceGateway.from_config(config)


def _default_policy_sink() -> ReportSink:
    from fs_agent._reports import PolicyCheckReport

    return PolicyCheckReport()


def _default_offline_sink() -> ReportSink:
    from fs_agent._reports import OfflineUpdateRequest

    return OfflineUpdateRequest()


class Dispatcher:
    """
    Sequences policy checking, submission or offline generation for one run.

    Example:
        dispatcher = Dispatcher(config)
        result = dispatcher.dispatch([project])
        sys.exit(result.status_code)
    """

    def __init__(
        self,
        config: RunConfiguration,
        gateway_factory: Optional[GatewayFactory] = None,
        policy_report_sink: Optional[ReportSink] = None,
        offline_sink: Optional[ReportSink] = None,
    ) -> None:
        """
        Initialize the Dispatcher.

        Args:
            config: Validated run configuration
            gateway_factory: Creates the gateway for the run (defaults to the HTTP gateway)
            policy_report_sink: Sink for the policy check report
            offline_sink: Sink for the offline update request
        """
        self._config = config
        self._gateway_factory = gateway_factory or _default_gateway_factory
        self._policy_report_sink = policy_report_sink or _default_policy_sink()
        self._offline_sink = offline_sink or _default_offline_sink()
        self.state = DispatchState.START
        self.history: List[DispatchState] = [DispatchState.START]

    def _transition(self, state: DispatchState) -> None:
        logger.debug(f"Dispatch state {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    @contextmanager
    def _open_gateway(self) -> Generator[ServiceGateway, None, None]:
        gateway = self._gateway_factory(self._config)
        try:
            yield gateway
        finally:
            gateway.shutdown()

    def dispatch(self, projects: Iterable[Project]) -> DispatchResult:
        """
        Run the dispatch state machine over the assembled projects.

        Returns:
            DispatchResult describing the terminal outcome

        Raises:
            Exception: Only unexpected, non-service errors propagate (after the gateway is shut down)
        """
        result = self._run(list(projects))
        self._log_outcome(result)
        return result

    def _run(self, projects: List[Project]) -> DispatchResult:
        projects = drop_empty_projects(projects)
        if not projects:
            logger.info("Exiting, nothing to update")
            self._transition(DispatchState.DONE)
            return DispatchResult(outcome=RunOutcome.NO_OP)

        self._transition(DispatchState.VALIDATED)
        identity = request_identity(self._config)

        logger.info("Initializing service client")
        with self._open_gateway() as gateway:
            try:
                if self._config.offline:
                    return self._offline_update(gateway, identity, projects)
                return self._online_update(gateway, identity, projects)
            except ServiceError as e:
                self._transition(DispatchState.FAILED)
                logger.error(f"Failed to send request to the service: {e}", exc_info=True)
                return DispatchResult(outcome=RunOutcome.FAILED, error_message=str(e))

    def _offline_update(
        self, gateway: ServiceGateway, identity: RequestIdentity, projects: List[Project]
    ) -> DispatchResult:
        self._transition(DispatchState.DISPATCHING)
        logger.info("Generating offline update request")
        payload = gateway.build_offline_payload(identity, projects)

        artifacts: List[str] = []
        try:
            files = self._offline_sink.render(
                payload,
                Path(self._config.report_dir),
                zip=self._config.offline_zip,
                pretty_json=self._config.offline_pretty_json,
            )
            artifacts = [str(path) for path in files]
            for path in artifacts:
                logger.info(f"Offline request generated successfully at {path}")
        except (ReportGenerationError, OSError) as e:
            logger.error(f"Error generating offline update request: {e}", exc_info=True)

        self._transition(DispatchState.DONE)
        return DispatchResult(outcome=RunOutcome.OFFLINE, artifacts=artifacts)

    def _online_update(
        self, gateway: ServiceGateway, identity: RequestIdentity, projects: List[Project]
    ) -> DispatchResult:
        compliance_result = None
        artifacts: List[str] = []

        if self._config.check_policies:
            self._transition(DispatchState.CHECKING_POLICY)
            gate = PolicyGate(self._policy_report_sink, Path(self._config.report_dir))
            compliant = gate.evaluate(gateway, identity, projects, self._config.force_check_all_dependencies)
            compliance_result = gate.last_result
            artifacts = [str(path) for path in gate.report_files]
            if not compliant:
                self._transition(DispatchState.REPORTING)
                self._transition(DispatchState.DONE)
                return DispatchResult(
                    outcome=RunOutcome.WITHHELD,
                    compliance_result=compliance_result,
                    artifacts=artifacts,
                )

        self._transition(DispatchState.DISPATCHING)
        logger.info("Sending Update")
        update_result = gateway.submit_update(identity, projects)

        self._transition(DispatchState.REPORTING)
        logger.info(summarize(update_result))
        self._transition(DispatchState.DONE)
        return DispatchResult(
            outcome=RunOutcome.SUBMITTED,
            update_result=update_result,
            compliance_result=compliance_result,
            artifacts=artifacts,
        )

    @staticmethod
    def _log_outcome(result: DispatchResult) -> None:
        if result.outcome is RunOutcome.NO_OP:
            logger.info("Run finished: no-op, nothing to update")
        elif result.outcome is RunOutcome.SUBMITTED:
            logger.info("Run finished: inventory update submitted")
        elif result.outcome is RunOutcome.OFFLINE:
            logger.info("Run finished: offline update request generated")
        elif result.outcome is RunOutcome.WITHHELD:
            logger.warning("Run finished: update withheld by policy check")
        else:
            logger.error(f"Run finished: failed - {result.error_message}")
