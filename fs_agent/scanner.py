"""File-system dependency scanner.

Walks the base directories, selects files with include/exclude globs and
records each one as a Dependency identified by its SHA-1. Archives can be
opened and scanned recursively up to a configured depth.

Glob patterns are matched against the path relative to the base directory
(with ``/`` separators) and against the file name. A leading ``**/`` also
matches files at the top level, so ``**/*.jar`` selects ``lib.jar`` and
``libs/lib.jar``. An empty include list selects every file.
"""

import hashlib
import os
import re
import shutil
import tarfile
import tempfile
import zipfile
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Set, Tuple

import zstandard

from .exceptions import ScanError
from .logging_config import logger
from .models import Dependency

CHUNK_SIZE = 64 * 1024

ZIP_SUFFIXES = (".zip", ".jar", ".war", ".ear", ".aar", ".whl", ".egg", ".nupkg")
TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tar.xz")
ZSTD_TAR_SUFFIXES = (".tar.zst",)

# Source files inspected for copyright lines
COPYRIGHT_SUFFIXES = frozenset(
    {".c", ".cc", ".cpp", ".cxx", ".h", ".hpp", ".java", ".js", ".ts", ".py", ".go", ".rs", ".cs", ".php", ".rb"}
)
COPYRIGHT_SCAN_LINES = 64
COPYRIGHT_PATTERN = re.compile(r"copyright\s*(?:\(c\)|©)?\s*\S.*", re.IGNORECASE)

# Checksum keys sent with partial sha1 matching
FULL_HASH = "fullHash"
MOST_SIG_BITS_HASH = "mostSigBitsHash"
LEAST_SIG_BITS_HASH = "leastSigBitsHash"


def matches_any(rel_path: str, patterns: Sequence[str], case_sensitive: bool = False) -> bool:
    """Check a relative path, or its file name, against glob patterns."""
    path = rel_path if case_sensitive else rel_path.lower()
    names = {path, path.rsplit("/", 1)[-1]}
    for pattern in patterns:
        candidates = [pattern]
        if pattern.startswith("**/"):
            candidates.append(pattern[3:])
        for candidate in candidates:
            if not case_sensitive:
                candidate = candidate.lower()
            if any(fnmatchcase(name, candidate) for name in names):
                return True
    return False


def archive_kind(path: Path) -> Optional[str]:
    """Return "zip", "tar" or "zst" for supported archives, None otherwise."""
    name = path.name.lower()
    if name.endswith(ZSTD_TAR_SUFFIXES):
        return "zst"
    if name.endswith(TAR_SUFFIXES):
        return "tar"
    if name.endswith(ZIP_SUFFIXES):
        return "zip"
    return None


def sha1_of(path: Path) -> str:
    digest = hashlib.sha1()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def partial_hashes(path: Path, full_sha1: str) -> Tuple[Tuple[str, str], ...]:
    """Hashes of the two halves of a file, used for partial matching."""
    size = path.stat().st_size
    if size < 2:
        return ((FULL_HASH, full_sha1),)
    half = size // 2
    most = hashlib.sha1()
    least = hashlib.sha1()
    with path.open("rb") as f:
        remaining = half
        while remaining:
            chunk = f.read(min(CHUNK_SIZE, remaining))
            if not chunk:
                break
            most.update(chunk)
            remaining -= len(chunk)
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            least.update(chunk)
    return (
        (FULL_HASH, full_sha1),
        (MOST_SIG_BITS_HASH, most.hexdigest()),
        (LEAST_SIG_BITS_HASH, least.hexdigest()),
    )


def extract_copyrights(path: Path, excluded_terms: Sequence[str]) -> Tuple[str, ...]:
    """Collect copyright lines from the head of a source file, minus excluded terms."""
    if path.suffix.lower() not in COPYRIGHT_SUFFIXES:
        return ()
    excluded = [term.lower() for term in excluded_terms]
    found: List[str] = []
    try:
        with path.open("r", encoding="utf-8", errors="replace") as f:
            for line_no, line in enumerate(f):
                if line_no >= COPYRIGHT_SCAN_LINES:
                    break
                match = COPYRIGHT_PATTERN.search(line)
                if not match:
                    continue
                text = match.group(0).strip().rstrip("*/").strip()
                if any(term in text.lower() for term in excluded):
                    continue
                if text not in found:
                    found.append(text)
    except OSError as e:
        logger.debug(f"Could not read {path} for copyrights: {e}")
    return tuple(found)


def _safe_extractall(tar: tarfile.TarFile, dest: Path) -> None:
    """Extract tarfile with safe filter, falling back for Python < 3.12."""
    try:
        tar.extractall(path=dest, filter="data")
    except TypeError:
        tar.extractall(path=dest)


def extract_archive(archive: Path, dest: Path) -> None:
    """
    Extract a supported archive into ``dest``.

    Raises:
        ScanError: If the archive cannot be read
    """
    kind = archive_kind(archive)
    try:
        if kind == "zip":
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(dest)
        elif kind == "tar":
            with tarfile.open(archive, "r:*") as tar:
                _safe_extractall(tar, dest)
        elif kind == "zst":
            dctx = zstandard.ZstdDecompressor()
            with open(archive, "rb") as fh:
                with dctx.stream_reader(fh) as reader:
                    with tarfile.open(fileobj=reader, mode="r|") as tar:
                        _safe_extractall(tar, dest)
        else:
            raise ScanError(f"Unsupported archive type: {archive.name}")
    except ScanError:
        raise
    except Exception as e:
        raise ScanError(f"Failed to extract archive {archive.name}: {e}") from e


class FileSystemScanner:
    """Scanner producing Dependency records from files on disk."""

    def scan(
        self,
        base_dirs: Sequence[str],
        includes: Sequence[str],
        excludes: Sequence[str],
        case_sensitive: bool = False,
        archive_depth: int = 0,
        archive_includes: Sequence[str] = (),
        archive_excludes: Sequence[str] = (),
        follow_symlinks: bool = True,
        excluded_copyrights: Sequence[str] = (),
        partial_match: bool = False,
    ) -> List[Dependency]:
        """
        Scan base directories (or single files) for dependencies.

        Returns:
            Dependencies in discovery order, without duplicate sha1/path pairs
        """
        self._includes = list(includes)
        self._excludes = list(excludes)
        self._case_sensitive = case_sensitive
        self._archive_includes = list(archive_includes)
        self._archive_excludes = list(archive_excludes)
        self._follow_symlinks = follow_symlinks
        self._excluded_copyrights = list(excluded_copyrights)
        self._partial_match = partial_match

        dependencies: List[Dependency] = []
        seen: Set[Tuple[str, str]] = set()
        for base_dir in base_dirs:
            base = Path(base_dir).expanduser()
            if not base.exists():
                logger.warning(f"Skipping {base_dir}: path does not exist")
                continue
            logger.info(f"Scanning {base}")
            for dependency in self._scan_path(base.resolve(), archive_depth, display_root=None):
                key = (dependency.sha1, dependency.system_path)
                if key not in seen:
                    seen.add(key)
                    dependencies.append(dependency)

        logger.info(f"Found {len(dependencies)} matching file(s)")
        return dependencies

    def _iter_files(self, base: Path) -> Iterator[Tuple[Path, str]]:
        if base.is_file():
            yield base, base.name
            return

        visited: Set[str] = set()
        for root, dirs, files in os.walk(base, followlinks=self._follow_symlinks):
            real_root = os.path.realpath(root)
            if real_root in visited:
                dirs[:] = []
                continue
            visited.add(real_root)
            dirs.sort()
            for file_name in sorted(files):
                path = Path(root) / file_name
                if path.is_symlink() and not self._follow_symlinks:
                    continue
                yield path, path.relative_to(base).as_posix()

    def _scan_path(self, base: Path, archive_depth: int, display_root: Optional[str]) -> Iterator[Dependency]:
        for path, rel_path in self._iter_files(base):
            selected = (not self._includes or matches_any(rel_path, self._includes, self._case_sensitive)) and not (
                matches_any(rel_path, self._excludes, self._case_sensitive)
            )
            system_path = f"{display_root}!/{rel_path}" if display_root else str(path)

            if selected:
                dependency = self._create_dependency(path, system_path)
                if dependency is not None:
                    yield dependency

            if archive_depth > 0 and self._is_scannable_archive(path, rel_path):
                yield from self._scan_archive(path, system_path, archive_depth)

    def _is_scannable_archive(self, path: Path, rel_path: str) -> bool:
        if archive_kind(path) is None:
            return False
        if self._archive_includes and not matches_any(rel_path, self._archive_includes, self._case_sensitive):
            return False
        return not matches_any(rel_path, self._archive_excludes, self._case_sensitive)

    def _scan_archive(self, archive: Path, display_path: str, archive_depth: int) -> Iterator[Dependency]:
        dest = Path(tempfile.mkdtemp(prefix="fs-agent-archive-"))
        try:
            try:
                extract_archive(archive, dest)
            except ScanError as e:
                logger.warning(f"{e}, skipping its content")
                return
            logger.debug(f"Extracted {archive.name} (remaining depth {archive_depth - 1})")
            yield from self._scan_path(dest, archive_depth - 1, display_root=display_path)
        finally:
            shutil.rmtree(dest, ignore_errors=True)

    def _create_dependency(self, path: Path, system_path: str) -> Optional[Dependency]:
        try:
            sha1 = sha1_of(path)
            checksums = partial_hashes(path, sha1) if self._partial_match else ()
        except OSError as e:
            logger.warning(f"Skipping unreadable file {path}: {e}")
            return None
        return Dependency(
            artifact_id=path.name,
            sha1=sha1,
            system_path=system_path,
            checksums=checksums,
            copyrights=extract_copyrights(path, self._excluded_copyrights),
        )
