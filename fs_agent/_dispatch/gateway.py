"""HTTP gateway to the agent endpoint of the governance service.

Requests are form-encoded POSTs. The service answers with a JSON envelope::

    {"envelopeVersion": "2.1.0", "status": 1, "message": "ok", "data": "<json>"}

where ``status`` 1 means success and ``data`` is itself a JSON document
describing the result of the request type.
"""

import json
import time
from typing import Any, Callable, Dict, Optional, Sequence, TypeVar
from urllib.parse import quote

import requests

from fs_agent.config import RunConfiguration
from fs_agent.exceptions import ServiceError
from fs_agent.http_client import AGENT_TYPE, AGENT_VERSION, get_default_headers
from fs_agent.logging_config import logger
from fs_agent.models import ComplianceResult, OfflinePayload, Project, RequestIdentity, UpdateResult

REQUEST_TYPE_UPDATE = "UPDATE"
REQUEST_TYPE_CHECK_POLICY_COMPLIANCE = "CHECK_POLICY_COMPLIANCE"

# Envelope status for a successful request
STATUS_SUCCESS = 1

T = TypeVar("T")


def _current_millis() -> int:
    return int(time.time() * 1000)


class WhitesourceGateway:
    """
    Gateway owning one HTTP session for the duration of a run.

    The session is created lazily on the first remote call, so an offline
    run never opens a connection.
    """

    def __init__(
        self,
        service_url: str,
        timeout: int,
        proxy_host: Optional[str] = None,
        proxy_port: Optional[int] = None,
        proxy_user: Optional[str] = None,
        proxy_pass: Optional[str] = None,
        agent: str = AGENT_TYPE,
        agent_version: str = AGENT_VERSION,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            service_url: Agent endpoint URL
            timeout: Connection/read timeout in seconds
            proxy_host: Optional proxy host
            proxy_port: Proxy port, required with proxy_host
            proxy_user: Optional proxy user
            proxy_pass: Optional proxy password
            agent: Agent type reported to the service
            agent_version: Agent version reported to the service
        """
        self._service_url = service_url
        self._timeout = timeout
        self._proxies = self._build_proxies(proxy_host, proxy_port, proxy_user, proxy_pass)
        self._agent = agent
        self._agent_version = agent_version
        self._session: Optional[requests.Session] = None
        self._closed = False

    @classmethod
    def from_config(cls, config: RunConfiguration) -> "WhitesourceGateway":
        """Create a gateway from the run configuration."""
        logger.info(f"Service URL is {config.service_url}")
        return cls(
            service_url=config.service_url,
            timeout=config.connection_timeout_seconds,
            proxy_host=config.proxy_host,
            proxy_port=config.proxy_port,
            proxy_user=config.proxy_user,
            proxy_pass=config.proxy_pass,
        )

    @staticmethod
    def _build_proxies(
        host: Optional[str], port: Optional[int], user: Optional[str], password: Optional[str]
    ) -> Dict[str, str]:
        if not host:
            return {}
        credentials = ""
        if user:
            credentials = f"{quote(user, safe='')}:{quote(password or '', safe='')}@"
        proxy_url = f"http://{credentials}{host}:{port}"
        return {"http": proxy_url, "https": proxy_url}

    @property
    def closed(self) -> bool:
        return self._closed

    def _get_session(self) -> requests.Session:
        if self._closed:
            raise ServiceError("Gateway has been shut down")
        if self._session is None:
            session = requests.Session()
            session.headers.update(get_default_headers())
            if self._proxies:
                session.proxies.update(self._proxies)
            self._session = session
        return self._session

    def _base_fields(self, request_type: str, identity: RequestIdentity) -> Dict[str, Any]:
        return {
            "type": request_type,
            "agent": self._agent,
            "agentVersion": self._agent_version,
            "token": identity.org_token,
            "product": identity.product or "",
            "productVersion": identity.product_version or "",
            "timeStamp": str(_current_millis()),
        }

    def _post(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Send a request and return the decoded ``data`` document."""
        session = self._get_session()
        try:
            response = session.post(self._service_url, data=fields, timeout=self._timeout)
        except requests.exceptions.ConnectionError as e:
            raise ServiceError(f"Failed to connect to {self._service_url}") from e
        except requests.exceptions.Timeout as e:
            raise ServiceError(f"Request to {self._service_url} timed out") from e
        except requests.exceptions.RequestException as e:
            raise ServiceError(f"Request to {self._service_url} failed: {e}") from e

        if not response.ok:
            raise ServiceError(f"Service responded with HTTP {response.status_code}")

        try:
            envelope = response.json()
        except (ValueError, json.JSONDecodeError) as e:
            raise ServiceError("Service response is not valid JSON") from e
        if not isinstance(envelope, dict):
            raise ServiceError("Service response is not a JSON object")

        status = envelope.get("status")
        if status != STATUS_SUCCESS:
            message = envelope.get("message") or "no message"
            raise ServiceError(f"Service rejected the request (status {status}): {message}")

        data = envelope.get("data")
        if isinstance(data, str):
            try:
                data = json.loads(data) if data else {}
            except json.JSONDecodeError as e:
                raise ServiceError("Service response data is not valid JSON") from e
        if not isinstance(data, dict):
            raise ServiceError("Service response data is missing")
        return data

    @staticmethod
    def _parse(factory: Callable[[Dict[str, Any]], T], data: Dict[str, Any]) -> T:
        """Build a result object, treating an unexpected shape as a service failure."""
        try:
            return factory(data)
        except (AttributeError, TypeError, KeyError, ValueError) as e:
            raise ServiceError("Service response data is malformed") from e

    @staticmethod
    def _serialize_projects(projects: Sequence[Project]) -> str:
        return json.dumps([project.to_dict() for project in projects])

    def check_compliance(
        self,
        identity: RequestIdentity,
        projects: Sequence[Project],
        force_check_all: bool = False,
    ) -> ComplianceResult:
        """
        Ask the service whether the inventory conforms to the organization's policies.

        Raises:
            ServiceError: If the request fails
        """
        fields = self._base_fields(REQUEST_TYPE_CHECK_POLICY_COMPLIANCE, identity)
        fields["diff"] = self._serialize_projects(projects)
        fields["forceCheckAllDependencies"] = "true" if force_check_all else "false"
        logger.debug(f"Sending policy compliance check for {len(projects)} project(s)")
        return self._parse(ComplianceResult.from_dict, self._post(fields))

    def submit_update(self, identity: RequestIdentity, projects: Sequence[Project]) -> UpdateResult:
        """
        Send the inventory update.

        Raises:
            ServiceError: If the request fails
        """
        fields = self._base_fields(REQUEST_TYPE_UPDATE, identity)
        fields["diff"] = self._serialize_projects(projects)
        logger.debug(f"Sending inventory update for {len(projects)} project(s)")
        return self._parse(UpdateResult.from_dict, self._post(fields))

    def build_offline_payload(self, identity: RequestIdentity, projects: Sequence[Project]) -> OfflinePayload:
        """Build the update request without sending it."""
        return OfflinePayload(
            agent=self._agent,
            agent_version=self._agent_version,
            org_token=identity.org_token,
            product=identity.product,
            product_version=identity.product_version,
            time_stamp=_current_millis(),
            projects=list(projects),
        )

    def shutdown(self) -> None:
        """Close the HTTP session. Calling it again is a no-op."""
        if self._closed:
            return
        self._closed = True
        if self._session is not None:
            self._session.close()
            self._session = None
            logger.debug("Service session closed")
