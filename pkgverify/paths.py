"""Path canonicalisation, glob compilation, and directory listing helpers."""

from __future__ import annotations

import os
import posixpath
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from re import Pattern
from typing import List, Optional

from .errors import FilesystemError

_REGEX_PREFIX = "re:"
_SLASH_RUN = re.compile(r"/+")


def to_posix(path: str) -> str:
    """Return ``path`` with forward slashes, no duplicate or leading separators."""
    normalized = _SLASH_RUN.sub("/", path.replace("\\", "/"))
    return normalized.lstrip("/")


def canonical_relative(path: str) -> str:
    """Canonical display form of a relative path, also used for scan output."""
    normalized = to_posix(path)
    if not normalized:
        return ""
    normalized = posixpath.normpath(normalized)
    return "" if normalized == "." else normalized


def resolve_under(root: Path, relative: str) -> Path:
    """Join ``relative`` to ``root`` without touching the filesystem."""
    return Path(os.path.normpath(os.path.join(root, relative)))


def glob_to_regex(pattern: str) -> str:
    """Translate a glob into an anchored regular expression.

    ``*`` spans any run of characters inside one path segment, ``?`` exactly
    one non-separator character and ``**`` any run including separators; a
    ``**/`` may match zero directories. Everything else is literal. The
    expression ends in ``\\Z`` so a trailing newline in a name never matches.
    """
    parts: List[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "*":
            if pattern.startswith("**", index):
                index += 2
                if pattern.startswith("/", index):
                    index += 1
                    parts.append("(?:.*/)?")
                else:
                    parts.append(".*")
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        index += 1
    return "^" + "".join(parts) + r"\Z"


def compile_glob(pattern: str) -> Pattern[str]:
    # "." segments are dropped so "./*.d.ts" lines up with scan output.
    segments = [segment for segment in to_posix(pattern).split("/") if segment not in ("", ".")]
    return re.compile(glob_to_regex("/".join(segments)))


@dataclass(frozen=True)
class PathMatcher:
    """Include/exclude matcher for derive source selection."""

    source: str
    regex: Pattern[str]
    prefix: Optional[str] = None

    def matches(self, rel_path: str) -> bool:
        if self.regex.search(rel_path):
            return True
        if self.prefix:
            return rel_path == self.prefix or rel_path.startswith(f"{self.prefix}/")
        return False


def compile_matcher(entry: str, *, as_prefix: bool = False) -> PathMatcher:
    """Compile a glob, or a raw regular expression when prefixed with ``re:``.

    With ``as_prefix`` a literal entry also matches everything beneath it, so
    ``build`` or ``build/`` excludes the whole ``build`` directory.
    """
    if entry.startswith(_REGEX_PREFIX):
        return PathMatcher(source=entry, regex=re.compile(entry[len(_REGEX_PREFIX):]))
    prefix = None
    if as_prefix:
        stripped = canonical_relative(entry.rstrip("/*"))
        if stripped and not any(char in stripped for char in "*?"):
            prefix = stripped
    return PathMatcher(source=entry, regex=compile_glob(entry), prefix=prefix)


def list_files(base: Path) -> List[str]:
    """Return every non-directory entry under ``base`` as sorted relative POSIX paths.

    Uses an explicit work-list; symlinked directories are reported as entries
    and not descended into.
    """
    files: List[str] = []
    pending: List[Path] = [base]
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    if entry.is_dir(follow_symlinks=False):
                        pending.append(Path(entry.path))
                        continue
                    rel_path = os.path.relpath(entry.path, base)
                    files.append(canonical_relative(rel_path))
        except OSError as exc:
            raise FilesystemError(f"Unable to list directory {current}: {exc}", current) from exc
    files.sort()
    return files


def path_exists(path: Path) -> bool:
    """True when ``path`` is a regular file or a directory."""
    try:
        stat_result = os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return False
    except OSError as exc:
        raise FilesystemError(f"Unable to stat {path}: {exc}", path) from exc
    return stat.S_ISREG(stat_result.st_mode) or stat.S_ISDIR(stat_result.st_mode)


__all__ = [
    "PathMatcher",
    "canonical_relative",
    "compile_glob",
    "compile_matcher",
    "glob_to_regex",
    "list_files",
    "path_exists",
    "resolve_under",
    "to_posix",
]
