"""Report sinks for artifacts written during a run.

- PolicyCheckReport: HTML and JSON policy check report
- OfflineUpdateRequest: offline update request file
"""

from .offline_request import OFFLINE_REQUEST_FILE, OfflineUpdateRequest, decode_payload, encode_payload
from .policy_report import (
    HTML_REPORT_NAME,
    JSON_REPORT_NAME,
    REPORT_DIR_NAME,
    PolicyCheckReport,
    build_rejection_summary,
    render_html,
)

__all__ = [
    "OfflineUpdateRequest",
    "PolicyCheckReport",
    "OFFLINE_REQUEST_FILE",
    "HTML_REPORT_NAME",
    "JSON_REPORT_NAME",
    "REPORT_DIR_NAME",
    "build_rejection_summary",
    "render_html",
    "encode_payload",
    "decode_payload",
]
