"""Source-control checkout for scanning a remote repository.

Only git is supported. The repository is cloned into a temporary directory
that :meth:`GitConnector.cleanup` removes again.
"""

import os
import shlex
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import quote, urlparse, urlunparse

from .exceptions import ScmError, ValidationError
from .logging_config import logger

SUPPORTED_SCM_TYPES = frozenset({"git"})

# Clone timeout in seconds
CLONE_TIMEOUT = 1800


class GitConnector:
    """Clones a git repository for the length of a run."""

    def __init__(
        self,
        url: str,
        private_key: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        branch: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> None:
        if not url:
            raise ValidationError("scm.url is required when scm.type is set")
        self._url = url
        self._private_key = private_key
        self._username = username
        self._password = password
        # A tag takes precedence over a branch
        self._ref = tag or branch
        self._workdir: Optional[Path] = None

    @property
    def ref(self) -> Optional[str]:
        return self._ref

    def _authenticated_url(self) -> str:
        """Embed username/password in http(s) URLs."""
        parsed = urlparse(self._url)
        if not self._username or parsed.scheme not in ("http", "https"):
            return self._url
        credentials = quote(self._username, safe="")
        if self._password:
            credentials += ":" + quote(self._password, safe="")
        netloc = f"{credentials}@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
        return urlunparse(parsed._replace(netloc=netloc))

    def _git_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        if self._private_key:
            env["GIT_SSH_COMMAND"] = f"ssh -i {shlex.quote(self._private_key)} -o StrictHostKeyChecking=no"
        return env

    def _build_clone_command(self, target: Path) -> List[str]:
        cmd = ["git", "clone", "--depth", "1"]
        if self._ref:
            cmd += ["--branch", self._ref]
        cmd += ["--", self._authenticated_url(), str(target)]
        return cmd

    def checkout(self) -> Path:
        """
        Clone the repository and return the checkout directory.

        Raises:
            ScmError: If git fails or is not installed
        """
        self._workdir = Path(tempfile.mkdtemp(prefix="fs-agent-scm-"))
        target = self._workdir / "repo"
        cmd = self._build_clone_command(target)
        logger.info(f"Cloning {self._url}" + (f" at {self._ref}" if self._ref else ""))

        try:
            subprocess.run(
                cmd,
                capture_output=True,
                check=True,
                text=True,
                shell=False,
                timeout=CLONE_TIMEOUT,
                env=self._git_env(),
            )
        except FileNotFoundError:
            self.cleanup()
            raise ScmError("git command not found. Make sure it's installed.")
        except subprocess.CalledProcessError as e:
            self.cleanup()
            stderr = (e.stderr or "").strip()
            raise ScmError(f"git clone failed with return code {e.returncode}: {stderr}")
        except subprocess.TimeoutExpired:
            self.cleanup()
            raise ScmError("git clone timed out")

        return target

    def cleanup(self) -> None:
        """Remove the clone directory, if any."""
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            logger.debug(f"Removed clone directory {self._workdir}")
            self._workdir = None


class ScmConnector:
    """Factory for source-control connectors."""

    @staticmethod
    def create(
        scm_type: Optional[str],
        url: Optional[str],
        private_key: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        branch: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> Optional[GitConnector]:
        """
        Create a connector for the configured SCM type.

        Returns:
            A connector, or None when no SCM type is configured

        Raises:
            ValidationError: If the SCM type is unsupported or the URL is missing
        """
        if not scm_type:
            return None
        normalized = scm_type.strip().lower()
        if normalized not in SUPPORTED_SCM_TYPES:
            raise ValidationError(
                f"Unsupported scm.type '{scm_type}'. Supported types: {sorted(SUPPORTED_SCM_TYPES)}"
            )
        return GitConnector(
            url=url or "",
            private_key=private_key,
            username=username,
            password=password,
            branch=branch,
            tag=tag,
        )
