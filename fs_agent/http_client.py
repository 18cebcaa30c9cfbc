"""HTTP client utilities with consistent user agent."""

from typing import Optional

from . import __version__

AGENT_TYPE = "fs-agent"
AGENT_VERSION = __version__

USER_AGENT = f"{AGENT_TYPE}/{AGENT_VERSION}"


def get_default_headers(content_type: Optional[str] = None) -> dict:
    """
    Get default HTTP headers with user agent.

    The agent endpoint authenticates with the organization token sent as a
    form field, so no Authorization header is added here.

    Args:
        content_type: Optional Content-Type header value

    Returns:
        Dictionary of HTTP headers
    """
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    if content_type:
        headers["Content-Type"] = content_type
    return headers
