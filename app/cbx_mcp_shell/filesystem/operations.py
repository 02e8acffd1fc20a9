"""
Filesystem operations with validated inputs and typed failures.

Every operation checks existence and accessibility first and returns an
OperationResult instead of letting OSError escape unclassified. The
methods are synchronous; the operation registry runs them in worker
threads.
"""

import fnmatch
import os
import re
import stat
from datetime import datetime, timezone
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, Optional

from cbx_mcp_shell.config.models import FilesystemSettings
from cbx_mcp_shell.errors import ErrorKind, OperationResult
from cbx_mcp_shell.filesystem.types import DirectoryEntry, SearchResult
from cbx_mcp_shell.utils.logging import get_logger

logger = get_logger(__name__)

# Files with a NUL byte in this prefix are treated as binary and skipped by grep
BINARY_SNIFF_BYTES = 8192


def expand_braces(pattern: str) -> list[str]:
    """
    Expand shell-style brace alternation in a filename glob.

    Examples:
        >>> expand_braces("*.{ts,tsx}")
        ['*.ts', '*.tsx']
    """
    match = re.search(r"\{([^{}]*)\}", pattern)
    if not match:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def _bounded(items: Iterable[str], limit: int) -> SearchResult:
    """Take at most `limit` items, recording whether more were available."""
    taken = list(islice(items, limit + 1))
    truncated = len(taken) > limit
    return SearchResult(items=taken[:limit], truncated=truncated, limit=limit)


def _describe_os_error(e: OSError) -> str:
    return e.strerror or str(e)


class FileSystemOperations:
    """
    Read, write, list and search files.

    Holds only configuration; every call is independent.
    """

    def __init__(self, settings: Optional[FilesystemSettings] = None):
        """
        Initialize filesystem operations.

        Args:
            settings: Filesystem settings (search result bound)
        """
        self.settings = settings or FilesystemSettings()

    # ------------------------------------------------------------------ read

    def read(
        self,
        path: str,
        offset_line: Optional[int] = None,
        limit_lines: Optional[int] = None,
    ) -> OperationResult[str]:
        """
        Read a text file, optionally a slice of its lines.

        Args:
            path: File path
            offset_line: 1-based first line to return
            limit_lines: Maximum number of lines to return

        Returns:
            OperationResult with the text, or NotFound / NotReadable /
            OffsetOutOfRange
        """
        if offset_line is not None and offset_line < 1:
            return OperationResult.failure(
                ErrorKind.INVALID_INPUT, "offset_line must be at least 1", detail=path
            )
        if limit_lines is not None and limit_lines < 1:
            return OperationResult.failure(
                ErrorKind.INVALID_INPUT, "limit_lines must be at least 1", detail=path
            )

        target = Path(path).expanduser()
        if not target.exists():
            return OperationResult.failure(
                ErrorKind.NOT_FOUND, f"File not found: {path}", detail=path
            )
        if target.is_dir():
            return OperationResult.failure(
                ErrorKind.NOT_READABLE, f"Path is a directory: {path}", detail=path
            )
        if not os.access(target, os.R_OK):
            return OperationResult.failure(
                ErrorKind.NOT_READABLE, f"File is not readable: {path}", detail=path
            )

        try:
            # newline="" keeps line endings exactly as stored
            with open(target, encoding="utf-8", newline="") as f:
                content = f.read()
        except UnicodeDecodeError:
            return OperationResult.failure(
                ErrorKind.NOT_READABLE,
                f"File is not valid UTF-8 text: {path}",
                detail=path,
            )
        except FileNotFoundError:
            return OperationResult.failure(
                ErrorKind.NOT_FOUND, f"File not found: {path}", detail=path
            )
        except OSError as e:
            return OperationResult.failure(
                ErrorKind.NOT_READABLE,
                f"Cannot read {path}: {_describe_os_error(e)}",
                detail=path,
            )

        if offset_line is None and limit_lines is None:
            return OperationResult.success(content)

        lines = content.split("\n")
        total = len(lines)
        if offset_line is not None and offset_line > total:
            return OperationResult.failure(
                ErrorKind.OFFSET_OUT_OF_RANGE,
                f"offset_line {offset_line} is beyond the end of {path} "
                f"({total} lines)",
                detail=path,
            )

        start = offset_line - 1 if offset_line is not None else 0
        end = min(total, start + limit_lines) if limit_lines is not None else total
        return OperationResult.success("\n".join(lines[start:end]))

    # ------------------------------------------------------------------ list

    def list_directory(self, path: str) -> OperationResult[list[DirectoryEntry]]:
        """
        List a directory.

        A child whose stat fails is reported with an `error` field; the
        listing as a whole still succeeds.
        """
        target = Path(path).expanduser()
        if not target.exists():
            return OperationResult.failure(
                ErrorKind.NOT_FOUND, f"Directory not found: {path}", detail=path
            )
        if not target.is_dir():
            return OperationResult.failure(
                ErrorKind.NOT_A_DIRECTORY, f"Path is not a directory: {path}", detail=path
            )

        try:
            names = sorted(os.listdir(target))
        except OSError as e:
            return OperationResult.failure(
                ErrorKind.NOT_READABLE,
                f"Cannot list {path}: {_describe_os_error(e)}",
                detail=path,
            )

        return OperationResult.success(
            [self._describe_entry(os.path.join(target, name), name) for name in names]
        )

    @staticmethod
    def _describe_entry(entry_path: str, name: str) -> DirectoryEntry:
        try:
            st = os.stat(entry_path)
        except OSError as e:
            logger.debug("stat failed for %s: %s", entry_path, e)
            return DirectoryEntry(
                name=name,
                path=entry_path,
                error=f"{type(e).__name__}: {_describe_os_error(e)}",
            )
        return DirectoryEntry(
            name=name,
            path=entry_path,
            is_directory=stat.S_ISDIR(st.st_mode),
            size=st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc).isoformat(),
        )

    # ----------------------------------------------------------------- write

    def write(self, path: str, content: str) -> OperationResult[str]:
        """
        Write content to a file, creating parent directories.

        Existing files are fully overwritten. The write is not atomic: a
        crash mid-write can leave a truncated file.
        """
        target = Path(path).expanduser()
        if target.is_dir():
            return OperationResult.failure(
                ErrorKind.NOT_WRITABLE, f"Path is a directory: {path}", detail=path
            )

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except (FileExistsError, NotADirectoryError):
            return OperationResult.failure(
                ErrorKind.NOT_A_DIRECTORY,
                f"A parent of {path} exists and is not a directory",
                detail=path,
            )
        except OSError as e:
            return OperationResult.failure(
                ErrorKind.NOT_WRITABLE,
                f"Cannot create parent directories for {path}: {_describe_os_error(e)}",
                detail=path,
            )

        try:
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except NotADirectoryError:
            return OperationResult.failure(
                ErrorKind.NOT_A_DIRECTORY,
                f"A parent of {path} is not a directory",
                detail=path,
            )
        except OSError as e:
            return OperationResult.failure(
                ErrorKind.NOT_WRITABLE,
                f"Cannot write {path}: {_describe_os_error(e)}",
                detail=path,
            )

        logger.info("Wrote %d characters to %s", len(content), path)
        return OperationResult.success(f"File {path} has been updated.")

    # ---------------------------------------------------------------- search

    def _search_root(self, path: Optional[str]) -> OperationResult[Path]:
        root = Path(path).expanduser() if path else Path.cwd()
        if not root.exists():
            return OperationResult.failure(
                ErrorKind.NOT_FOUND, f"Search path not found: {root}", detail=str(root)
            )
        return OperationResult.success(root.resolve())

    def search_glob(
        self, pattern: str, path: Optional[str] = None
    ) -> OperationResult[SearchResult]:
        """
        Find files whose name matches a glob, recursively under a directory.

        Args:
            pattern: Glob pattern, e.g. "*.py" or "src/**/*.ts"
            path: Search root (defaults to the current working directory)

        Returns:
            OperationResult with sorted absolute paths; an empty result is
            success and renders as the "No matches found" sentinel
        """
        root_result = self._search_root(path)
        if not root_result.ok:
            return OperationResult(error=root_result.error)
        root = root_result.value
        if not root.is_dir():
            return OperationResult.failure(
                ErrorKind.NOT_A_DIRECTORY,
                f"Search path is not a directory: {root}",
                detail=str(root),
            )

        try:
            matches = sorted(str(p) for p in root.rglob(pattern) if p.is_file())
        except (ValueError, NotImplementedError) as e:
            return OperationResult.failure(
                ErrorKind.INVALID_PATTERN, f"Invalid glob pattern '{pattern}': {e}"
            )

        return OperationResult.success(
            _bounded(matches, self.settings.max_search_results)
        )

    def grep_search(
        self,
        pattern: str,
        path: Optional[str] = None,
        include: Optional[str] = None,
    ) -> OperationResult[SearchResult]:
        """
        Search file contents for a regular expression.

        The pattern is compiled before the filesystem is touched, so a
        malformed pattern (InvalidPattern) is distinct from a pattern that
        matched nothing (success with the "No matches found" sentinel).

        Args:
            pattern: Python regular expression
            path: File or directory to search (defaults to the current
                  working directory)
            include: Filename glob filter, brace alternation allowed
                     (e.g. "*.{ts,tsx}")

        Returns:
            OperationResult with "path:line_number:line" matches
        """
        try:
            regex = re.compile(pattern)
        except re.error as e:
            return OperationResult.failure(
                ErrorKind.INVALID_PATTERN,
                f"Invalid regular expression '{pattern}': {e}",
                detail=pattern,
            )

        root_result = self._search_root(path)
        if not root_result.ok:
            return OperationResult(error=root_result.error)
        root = root_result.value

        include_globs = expand_braces(include) if include else None
        matches = self._grep_files(regex, self._candidate_files(root, include_globs))
        return OperationResult.success(
            _bounded(matches, self.settings.max_search_results)
        )

    @staticmethod
    def _candidate_files(
        root: Path, include_globs: Optional[list[str]]
    ) -> Iterator[Path]:
        if root.is_file():
            files: Iterable[Path] = [root]
        else:
            files = sorted(p for p in root.rglob("*") if p.is_file())
        for file_path in files:
            if include_globs and not any(
                fnmatch.fnmatch(file_path.name, glob) for glob in include_globs
            ):
                continue
            yield file_path

    @staticmethod
    def _grep_files(regex: re.Pattern, files: Iterable[Path]) -> Iterator[str]:
        for file_path in files:
            try:
                data = file_path.read_bytes()
            except OSError as e:
                logger.warning("Skipping unreadable file %s: %s", file_path, e)
                continue
            if b"\x00" in data[:BINARY_SNIFF_BYTES]:
                continue
            text = data.decode("utf-8", errors="replace")
            lines = text.split("\n")
            # Same numbering as read(); a trailing newline ends the last line.
            if text.endswith("\n"):
                lines.pop()
            for line_number, line in enumerate(lines, start=1):
                line = line.rstrip("\r")
                if regex.search(line):
                    yield f"{file_path}:{line_number}:{line}"


def create_filesystem(settings: Optional[FilesystemSettings] = None) -> FileSystemOperations:
    """Factory function to create FileSystemOperations."""
    return FileSystemOperations(settings)
