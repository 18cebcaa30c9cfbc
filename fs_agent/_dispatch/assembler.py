"""Assembly of the projects reported in a run."""

from typing import Iterable, List

from fs_agent.config import RunConfiguration, validate_project_identity
from fs_agent.logging_config import logger
from fs_agent.models import Dependency, Project, RequestIdentity


class ProjectAssembler:
    """Builds the project reported by a file-system run."""

    @staticmethod
    def validate_identity(config: RunConfiguration) -> None:
        """
        Check that exactly one of project token and project name is configured.

        Raises:
            ValidationError: If neither or both are set
        """
        validate_project_identity(config.project_token, config.project_name)

    def assemble(self, config: RunConfiguration, dependencies: Iterable[Dependency]) -> Project:
        """
        Build a project from the configured identity and the scanned dependencies.

        Raises:
            ValidationError: If neither or both of project token and project name are set
        """
        self.validate_identity(config)
        if config.project_token and config.project_token.strip():
            return Project(token=config.project_token.strip(), dependencies=list(dependencies))
        return Project(
            name=(config.project_name or "").strip(),
            version=config.project_version,
            dependencies=list(dependencies),
        )


def request_identity(config: RunConfiguration) -> RequestIdentity:
    """Organization/product identity sent with every request."""
    return RequestIdentity(
        org_token=config.org_token,
        product=config.product,
        product_version=config.effective_product_version,
    )


def drop_empty_projects(projects: Iterable[Project]) -> List[Project]:
    """Return the projects that have at least one dependency, logging each one removed."""
    kept = []
    for project in projects:
        if not project.dependencies:
            logger.info(f"Removing empty project {project.display_name} from update (found 0 matching files)")
            continue
        kept.append(project)
    return kept
