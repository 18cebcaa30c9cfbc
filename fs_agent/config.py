"""Run configuration for fs-agent.

Configuration is resolved once per run from three layers (lowest precedence
first): a Java-style properties file, ``WSS_*`` environment variables and
command-line overrides. The resulting :class:`RunConfiguration` is validated
and then passed explicitly to every component; nothing reads settings from a
process-wide map after that.

Recognized properties:
    apiKey                         Organization token (required)
    projectToken                   Project token (or projectName, not both)
    projectName / projectVersion   Project coordinates
    productToken                   Product token (or productName)
    productName / productVersion   Product coordinates
    wss.url                        Agent endpoint URL
    wss.connectionTimeoutMinutes   Connection timeout in minutes
    proxy.host / proxy.port / proxy.user / proxy.pass
    offline, offline.zip, offline.prettyJson
    checkPolicies, forceCheckAllDependencies
    followSymbolicLinks, partialSha1Match, case.sensitive.glob
    archiveExtractionDepth, includes, excludes, archiveIncludes, archiveExcludes
    copyrightExcludes
    scm.type / scm.url / scm.user / scm.pass / scm.branch / scm.tag / scm.ppk
    log.level, report.dir
"""

import configparser
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional
from urllib.parse import urlparse

from .exceptions import ValidationError
from .logging_config import logger

DEFAULT_CONFIG_FILE = "whitesource-fs-agent.config"
DEFAULT_SERVICE_URL = "https://saas.whitesourcesoftware.com/agent"
DEFAULT_CONNECTION_TIMEOUT_MINUTES = 60
DEFAULT_ARCHIVE_DEPTH = 0
ENV_PREFIX = "WSS"

INCLUDES_EXCLUDES_SEPARATOR = re.compile(r"[,;\s]+")
EXCLUDED_COPYRIGHTS_SEPARATOR = ","

TRUE_VALUES = frozenset({"true", "t", "yes", "y", "1", "on"})
FALSE_VALUES = frozenset({"false", "f", "no", "n", "0", "off"})

# Property keys
ORG_TOKEN = "apiKey"
PROJECT_TOKEN = "projectToken"
PROJECT_NAME = "projectName"
PROJECT_VERSION = "projectVersion"
PRODUCT_TOKEN = "productToken"
PRODUCT_NAME = "productName"
PRODUCT_VERSION = "productVersion"
SERVICE_URL = "wss.url"
CONNECTION_TIMEOUT = "wss.connectionTimeoutMinutes"
PROXY_HOST = "proxy.host"
PROXY_PORT = "proxy.port"
PROXY_USER = "proxy.user"
PROXY_PASS = "proxy.pass"
OFFLINE = "offline"
OFFLINE_ZIP = "offline.zip"
OFFLINE_PRETTY_JSON = "offline.prettyJson"
CHECK_POLICIES = "checkPolicies"
FORCE_CHECK_ALL_DEPENDENCIES = "forceCheckAllDependencies"
FOLLOW_SYMLINKS = "followSymbolicLinks"
PARTIAL_SHA1_MATCH = "partialSha1Match"
CASE_SENSITIVE_GLOB = "case.sensitive.glob"
ARCHIVE_EXTRACTION_DEPTH = "archiveExtractionDepth"
INCLUDES = "includes"
EXCLUDES = "excludes"
ARCHIVE_INCLUDES = "archiveIncludes"
ARCHIVE_EXCLUDES = "archiveExcludes"
EXCLUDED_COPYRIGHTS = "copyrightExcludes"
SCM_TYPE = "scm.type"
SCM_URL = "scm.url"
SCM_USER = "scm.user"
SCM_PASS = "scm.pass"
SCM_BRANCH = "scm.branch"
SCM_TAG = "scm.tag"
SCM_PPK = "scm.ppk"
LOG_LEVEL = "log.level"
REPORT_DIR = "report.dir"

KNOWN_KEYS = (
    ORG_TOKEN,
    PROJECT_TOKEN,
    PROJECT_NAME,
    PROJECT_VERSION,
    PRODUCT_TOKEN,
    PRODUCT_NAME,
    PRODUCT_VERSION,
    SERVICE_URL,
    CONNECTION_TIMEOUT,
    PROXY_HOST,
    PROXY_PORT,
    PROXY_USER,
    PROXY_PASS,
    OFFLINE,
    OFFLINE_ZIP,
    OFFLINE_PRETTY_JSON,
    CHECK_POLICIES,
    FORCE_CHECK_ALL_DEPENDENCIES,
    FOLLOW_SYMLINKS,
    PARTIAL_SHA1_MATCH,
    CASE_SENSITIVE_GLOB,
    ARCHIVE_EXTRACTION_DEPTH,
    INCLUDES,
    EXCLUDES,
    ARCHIVE_INCLUDES,
    ARCHIVE_EXCLUDES,
    EXCLUDED_COPYRIGHTS,
    SCM_TYPE,
    SCM_URL,
    SCM_USER,
    SCM_PASS,
    SCM_BRANCH,
    SCM_TAG,
    SCM_PPK,
    LOG_LEVEL,
    REPORT_DIR,
)


def parse_flag(key: str, value: Optional[str], default: bool = False) -> bool:
    """
    Parse a free-form boolean property.

    Accepts true/false, y/n, yes/no, 1/0 and on/off in any case. A blank
    value yields ``default``.

    Raises:
        ValidationError: If the value is not a recognized boolean
    """
    if value is None or not str(value).strip():
        return default
    normalized = str(value).strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValidationError(f"Bad {key}. Received '{value}', required true/false or y/n")


def parse_int(key: str, value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    """Parse an integer property, raising ValidationError on garbage."""
    if value is None or not str(value).strip():
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"Bad {key}. Received '{value}', required an integer")


def validate_project_identity(project_token: Optional[str], project_name: Optional[str]) -> None:
    """
    Check that exactly one of project token and project name is set. Blank values count as unset.

    Raises:
        ValidationError: If neither or both are set
    """
    has_token = bool((project_token or "").strip())
    has_name = bool((project_name or "").strip())
    if not has_token and not has_name:
        raise ValidationError(f"Could not retrieve properties {PROJECT_NAME} and {PROJECT_TOKEN}")
    if has_token and has_name:
        raise ValidationError(f"Please choose {PROJECT_NAME} or {PROJECT_TOKEN}")


def split_patterns(value: Optional[str]) -> List[str]:
    """Split an includes/excludes property into glob patterns."""
    if not value:
        return []
    return [pattern for pattern in INCLUDES_EXCLUDES_SEPARATOR.split(value) if pattern]


def split_copyrights(value: Optional[str]) -> List[str]:
    """Split the excluded copyrights property into terms."""
    if not value:
        return []
    return [term for term in value.split(EXCLUDED_COPYRIGHTS_SEPARATOR) if term]


@dataclass
class RunConfiguration:
    """Resolved settings for a single agent run."""

    org_token: str
    project_token: Optional[str] = None
    project_name: Optional[str] = None
    project_version: Optional[str] = None
    product_token: Optional[str] = None
    product_name: Optional[str] = None
    product_version: Optional[str] = None
    service_url: str = DEFAULT_SERVICE_URL
    connection_timeout_minutes: int = DEFAULT_CONNECTION_TIMEOUT_MINUTES
    proxy_host: Optional[str] = None
    proxy_port: Optional[int] = None
    proxy_user: Optional[str] = None
    proxy_pass: Optional[str] = None
    offline: bool = False
    offline_zip: bool = False
    offline_pretty_json: bool = False
    check_policies: bool = False
    force_check_all_dependencies: bool = False
    follow_symlinks: bool = True
    partial_sha1_match: bool = False
    case_sensitive_glob: bool = False
    archive_extraction_depth: int = DEFAULT_ARCHIVE_DEPTH
    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)
    archive_includes: List[str] = field(default_factory=list)
    archive_excludes: List[str] = field(default_factory=list)
    excluded_copyrights: List[str] = field(default_factory=list)
    scm_type: Optional[str] = None
    scm_url: Optional[str] = None
    scm_user: Optional[str] = None
    scm_pass: Optional[str] = None
    scm_branch: Optional[str] = None
    scm_tag: Optional[str] = None
    scm_ppk: Optional[str] = None
    log_level: str = "INFO"
    report_dir: str = "."

    @property
    def product(self) -> Optional[str]:
        """Product token if set, otherwise the product name."""
        return self.product_token or self.product_name

    @property
    def effective_product_version(self) -> Optional[str]:
        """Product version only applies when the product is given by name."""
        return None if self.product_token else self.product_version

    @property
    def connection_timeout_seconds(self) -> int:
        return self.connection_timeout_minutes * 60

    def validate(self) -> None:
        """
        Validate configuration settings.

        Raises:
            ValidationError: If configuration is invalid
        """
        if not self.org_token:
            raise ValidationError(f"Could not retrieve {ORG_TOKEN} property")

        validate_project_identity(self.project_token, self.project_name)

        if self.connection_timeout_minutes <= 0:
            raise ValidationError(f"{CONNECTION_TIMEOUT} must be a positive number of minutes")
        if self.archive_extraction_depth < 0:
            raise ValidationError(f"{ARCHIVE_EXTRACTION_DEPTH} must not be negative")
        if self.proxy_host and self.proxy_port is None:
            raise ValidationError(f"{PROXY_PORT} is required when {PROXY_HOST} is set")

        self._validate_service_url()

    def _validate_service_url(self) -> None:
        parsed = urlparse(self.service_url)
        if parsed.scheme not in ("http", "https"):
            raise ValidationError("Service URL must start with http:// or https://")
        if not parsed.netloc:
            raise ValidationError("Service URL must include a valid hostname")
        if parsed.scheme == "http":
            logger.warning("Using HTTP (not HTTPS) for service communication - consider using HTTPS")
        self.service_url = self.service_url.rstrip("/")


def read_properties_file(path: str) -> Dict[str, str]:
    """
    Read a Java-style ``key=value`` properties file.

    Raises:
        ValidationError: If the file cannot be opened or parsed
    """
    parser = configparser.ConfigParser(
        interpolation=None, delimiters=("=", ":"), comment_prefixes=("#", "!"), strict=False
    )
    # Preserve key case (apiKey, projectName, ...)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    try:
        content = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ValidationError(f"Failed to open {path} for reading")
    except OSError as e:
        raise ValidationError(f"Error occurred when reading from {path}: {e}")

    try:
        parser.read_string("[agent]\n" + content, source=path)
    except configparser.Error as e:
        raise ValidationError(f"Malformed configuration file {path}: {e}")

    return {key: value.strip() for key, value in parser.items("agent")}


def env_key(key: str) -> str:
    """Environment variable name for a property key (``proxy.host`` -> ``WSS_PROXY_HOST``)."""
    return f"{ENV_PREFIX}_{re.sub(r'[^0-9A-Za-z]', '_', key).upper()}"


def read_env_properties(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect known property keys from ``WSS_*`` environment variables."""
    environ = os.environ if environ is None else environ
    found = {}
    for key in KNOWN_KEYS:
        value = environ.get(env_key(key))
        if value is not None and value != "":
            found[key] = value
    return found


def build_config(properties: Mapping[str, Optional[str]]) -> RunConfiguration:
    """
    Build and validate a RunConfiguration from a flat property mapping.

    Raises:
        ValidationError: If any value is malformed or required settings are missing
    """

    def get(key: str, default: Optional[str] = None) -> Optional[str]:
        value = properties.get(key)
        if value is None or not str(value).strip():
            return default
        return str(value).strip()

    config = RunConfiguration(
        org_token=get(ORG_TOKEN, "") or "",
        project_token=get(PROJECT_TOKEN),
        project_name=get(PROJECT_NAME),
        project_version=get(PROJECT_VERSION),
        product_token=get(PRODUCT_TOKEN),
        product_name=get(PRODUCT_NAME),
        product_version=get(PRODUCT_VERSION),
        service_url=get(SERVICE_URL, DEFAULT_SERVICE_URL) or DEFAULT_SERVICE_URL,
        connection_timeout_minutes=parse_int(
            CONNECTION_TIMEOUT, get(CONNECTION_TIMEOUT), DEFAULT_CONNECTION_TIMEOUT_MINUTES
        )
        or 0,
        proxy_host=get(PROXY_HOST),
        proxy_port=parse_int(PROXY_PORT, get(PROXY_PORT)),
        proxy_user=get(PROXY_USER),
        proxy_pass=get(PROXY_PASS),
        offline=parse_flag(OFFLINE, get(OFFLINE)),
        offline_zip=parse_flag(OFFLINE_ZIP, get(OFFLINE_ZIP)),
        offline_pretty_json=parse_flag(OFFLINE_PRETTY_JSON, get(OFFLINE_PRETTY_JSON)),
        check_policies=parse_flag(CHECK_POLICIES, get(CHECK_POLICIES)),
        force_check_all_dependencies=parse_flag(FORCE_CHECK_ALL_DEPENDENCIES, get(FORCE_CHECK_ALL_DEPENDENCIES)),
        follow_symlinks=parse_flag(FOLLOW_SYMLINKS, get(FOLLOW_SYMLINKS), default=True),
        partial_sha1_match=parse_flag(PARTIAL_SHA1_MATCH, get(PARTIAL_SHA1_MATCH)),
        case_sensitive_glob=parse_flag(CASE_SENSITIVE_GLOB, get(CASE_SENSITIVE_GLOB)),
        archive_extraction_depth=parse_int(ARCHIVE_EXTRACTION_DEPTH, get(ARCHIVE_EXTRACTION_DEPTH), 0) or 0,
        includes=split_patterns(get(INCLUDES)),
        excludes=split_patterns(get(EXCLUDES)),
        archive_includes=split_patterns(get(ARCHIVE_INCLUDES)),
        archive_excludes=split_patterns(get(ARCHIVE_EXCLUDES)),
        excluded_copyrights=split_copyrights(properties.get(EXCLUDED_COPYRIGHTS)),
        scm_type=get(SCM_TYPE),
        scm_url=get(SCM_URL),
        scm_user=get(SCM_USER),
        scm_pass=get(SCM_PASS),
        scm_branch=get(SCM_BRANCH),
        scm_tag=get(SCM_TAG),
        scm_ppk=get(SCM_PPK),
        log_level=get(LOG_LEVEL, "INFO") or "INFO",
        report_dir=get(REPORT_DIR, ".") or ".",
    )
    config.validate()
    return config


def load_config(
    config_file: str = DEFAULT_CONFIG_FILE,
    overrides: Optional[Mapping[str, Optional[str]]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RunConfiguration:
    """
    Load and validate configuration from file, environment and overrides.

    Args:
        config_file: Path to the properties file
        overrides: Property values from the command line (None values are ignored)
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Validated configuration object

    Raises:
        ValidationError: If configuration is invalid
    """
    properties: Dict[str, Optional[str]] = dict(read_properties_file(config_file))
    properties.update(read_env_properties(environ))
    for key, value in (overrides or {}).items():
        if value is not None:
            properties[key] = value

    unknown = sorted(key for key in properties if key not in KNOWN_KEYS)
    if unknown:
        logger.debug(f"Ignoring unrecognized properties: {unknown}")

    return build_config(properties)
