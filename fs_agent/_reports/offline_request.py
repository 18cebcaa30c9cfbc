"""Offline update request file."""

import base64
import gzip
from pathlib import Path
from typing import Any, List

from fs_agent.exceptions import ReportGenerationError
from fs_agent.logging_config import logger
from fs_agent.models import OfflinePayload

OFFLINE_REQUEST_FILE = "update-request.txt"


def encode_payload(payload: OfflinePayload, compress: bool = False, pretty_json: bool = False) -> str:
    """
    Serialize a payload as it is written to disk.

    With ``compress`` the JSON is gzip-compressed and base64-encoded so the file
    stays plain text.
    """
    content = payload.to_json(pretty=pretty_json)
    if compress:
        return base64.b64encode(gzip.compress(content.encode("utf-8"))).decode("ascii")
    return content


def decode_payload(text: str, compress: bool = False) -> str:
    """Reverse of :func:`encode_payload`, returning the JSON text."""
    if compress:
        return gzip.decompress(base64.b64decode(text)).decode("utf-8")
    return text


class OfflineUpdateRequest:
    """Report sink writing an OfflinePayload to ``update-request.txt``."""

    def render(self, subject: OfflinePayload, output_dir: Path, **options: Any) -> List[Path]:
        """
        Write the offline request.

        Options:
            zip: Compress the content
            pretty_json: Indent the JSON

        Raises:
            ReportGenerationError: If the file cannot be written
        """
        compress = bool(options.get("zip", False))
        pretty_json = bool(options.get("pretty_json", False))
        path = Path(output_dir) / OFFLINE_REQUEST_FILE
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(encode_payload(subject, compress=compress, pretty_json=pretty_json), encoding="utf-8")
        except OSError as e:
            raise ReportGenerationError(f"Error generating offline update request: {e}") from e

        logger.debug(f"Offline request written to {path} (zip={compress}, pretty={pretty_json})")
        return [path]
