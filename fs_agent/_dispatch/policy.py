"""Policy gate run before an inventory update."""

from pathlib import Path
from typing import List, Optional, Sequence

from fs_agent.exceptions import ReportGenerationError
from fs_agent.logging_config import logger
from fs_agent.models import ComplianceResult, Project, RequestIdentity

from .protocol import ReportSink, ServiceGateway


class PolicyGate:
    """
    Decides whether an update may be sent, based on a compliance check.

    The policy report is generated on every evaluation, whatever the
    verdict. Report failures are logged and never change the verdict.
    """

    def __init__(self, report_sink: ReportSink, output_dir: Path) -> None:
        self._report_sink = report_sink
        self._output_dir = Path(output_dir)
        self.last_result: Optional[ComplianceResult] = None
        self.report_files: List[Path] = []

    def evaluate(
        self,
        gateway: ServiceGateway,
        identity: RequestIdentity,
        projects: Sequence[Project],
        force_check_all: bool = False,
    ) -> bool:
        """
        Run the compliance check and report on it.

        Returns:
            True if the inventory conforms to all policies

        Raises:
            ServiceError: If the compliance check itself fails
        """
        logger.info("Checking policies")
        result = gateway.check_compliance(identity, projects, force_check_all)
        self.last_result = result

        compliant = not result.has_rejections()
        if compliant:
            logger.info("All dependencies conform with open source policies")
        else:
            logger.info("Some dependencies did not conform with open source policies, review report for details")
            logger.info("=== UPDATE ABORTED ===")

        self._generate_report(result)
        return compliant

    def _generate_report(self, result: ComplianceResult) -> None:
        try:
            self.report_files = self._report_sink.render(result, self._output_dir)
        except (ReportGenerationError, OSError) as e:
            logger.error(f"Error generating check policies report: {e}", exc_info=True)
            self.report_files = []
            return
        logger.info("Policies report generated successfully")
