"""Policy check report written after a compliance check.

Two files are produced in ``<output_dir>/whitesource``:

- ``index.html``: a human-readable rendering built with a recording Rich console
- ``policyRejectionSummary.json``: rejected libraries grouped by policy
"""

import io
import json
from pathlib import Path
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table

from fs_agent.exceptions import ReportGenerationError
from fs_agent.logging_config import logger
from fs_agent.models import ComplianceResult

REPORT_DIR_NAME = "whitesource"
HTML_REPORT_NAME = "index.html"
JSON_REPORT_NAME = "policyRejectionSummary.json"


def build_rejection_summary(result: ComplianceResult) -> Dict[str, Any]:
    """Group rejected resources by the policy that rejected them."""
    policies: Dict[str, Dict[str, Any]] = {}
    for project_name, node in result.rejections():
        policy_name = str((node.policy or {}).get("displayName") or "unnamed policy")
        entry = policies.setdefault(policy_name, {"policy": node.policy, "rejectedLibraries": {}})
        key = node.resource.get("sha1") or node.display_name
        library = entry["rejectedLibraries"].setdefault(
            key,
            {
                "name": node.display_name,
                "sha1": node.resource.get("sha1"),
                "link": node.resource.get("link"),
                "projects": [],
            },
        )
        if project_name not in library["projects"]:
            library["projects"].append(project_name)

    rejecting = [
        {"policy": entry["policy"], "rejectedLibraries": list(entry["rejectedLibraries"].values())}
        for entry in policies.values()
    ]
    return {
        "organization": result.organization,
        "hasRejections": result.has_rejections(),
        "summary": {
            "totalRejectedLibraries": sum(len(entry["rejectedLibraries"]) for entry in rejecting),
            "totalPolicies": len(rejecting),
        },
        "rejectingPolicies": rejecting,
    }


def render_html(result: ComplianceResult) -> str:
    """Render the compliance result as a standalone HTML page."""
    report_console = Console(record=True, file=io.StringIO(), width=120, color_system="truecolor")
    report_console.rule("[bold]Policy Check Report[/bold]")
    report_console.print(f"Organization: {result.organization or 'unknown'}")
    if result.has_rejections():
        report_console.print("[bold red]Some dependencies did not conform with open source policies[/bold red]")
    else:
        report_console.print("[bold green]All dependencies conform with open source policies[/bold green]")

    for title, projects in (("New projects", result.new_projects), ("Existing projects", result.existing_projects)):
        for project_name, roots in projects.items():
            table = Table(title=f"{title}: {project_name}", show_header=True, header_style="bold")
            table.add_column("Library", style="cyan")
            table.add_column("Policy")
            table.add_column("Action", justify="center")
            for root in roots:
                for node in root.walk():
                    policy = node.policy or {}
                    action = str(policy.get("actionType") or "")
                    style = "bold red" if node.is_rejected else ""
                    table.add_row(node.display_name, str(policy.get("displayName") or "-"), action or "-", style=style)
            report_console.print(table)

    return report_console.export_html(inline_styles=True)


class PolicyCheckReport:
    """Report sink for ComplianceResult objects."""

    def render(self, subject: ComplianceResult, output_dir: Path, **options: Any) -> List[Path]:
        """
        Write the HTML and JSON reports.

        Args:
            subject: Compliance result to report on
            output_dir: Directory the ``whitesource`` report folder is created in

        Returns:
            Paths of the written files

        Raises:
            ReportGenerationError: If the files cannot be written
        """
        report_dir = Path(output_dir) / REPORT_DIR_NAME
        html_path = report_dir / HTML_REPORT_NAME
        json_path = report_dir / JSON_REPORT_NAME
        try:
            report_dir.mkdir(parents=True, exist_ok=True)
            html_path.write_text(render_html(subject), encoding="utf-8")
            json_path.write_text(json.dumps(build_rejection_summary(subject), indent=4), encoding="utf-8")
        except OSError as e:
            raise ReportGenerationError(f"Error generating check policies report: {e}") from e

        logger.debug(f"Policy report written to {report_dir}")
        return [html_path, json_path]
