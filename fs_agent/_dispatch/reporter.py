"""Human-readable summary of an inventory update."""

from fs_agent.models import UpdateResult

NO_NEW_PROJECTS = "No new projects found."
NO_UPDATED_PROJECTS = "No projects were updated."


def summarize(update_result: UpdateResult) -> str:
    """
    Format an UpdateResult for the log.

    Project names are listed in the order the service returned them.
    """
    lines = [f"Inventory update results for {update_result.organization}"]

    if update_result.created_projects:
        lines.append("Newly created projects:")
        lines.extend(update_result.created_projects)
    else:
        lines.append(NO_NEW_PROJECTS)

    if update_result.updated_projects:
        lines.append("Updated projects:")
        lines.extend(update_result.updated_projects)
    else:
        lines.append(NO_UPDATED_PROJECTS)

    if update_result.request_token:
        lines.append(f"Support token: {update_result.request_token}")

    return "\n".join(lines) + "\n"
