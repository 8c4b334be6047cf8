"""SkillTree loader — discover skill documents and parse them concurrently.

Discovery goes through a DocumentSource so tests can feed synthetic
documents from memory instead of a real checkout.

Architecture:
    DocumentSource.list_documents() -> repo-relative paths
    load_documents() fans out one read+parse task per path
    results are gathered (fan-in) before the registry is built
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol

from .errors import SkillTreeError
from .models import SkillRecord
from .parser import parse_skill_document

logger = logging.getLogger("skilltree.loader")


class DocumentSource(Protocol):
    """Directory-listing interface over a repository."""

    def list_documents(self) -> list[str]:
        """Return repo-relative POSIX paths of every skill document."""
        ...

    def read(self, path: str) -> str:
        """Return the text of a document. May raise OSError."""
        ...

    def exists(self, path: str) -> bool:
        """Whether a repo-relative path exists."""
        ...


class FileSystemSource:
    """Reads skill documents from a repository checkout.

    Args:
        repo_root: Repository root directory.
        skills_dir: Skills directory relative to the root.
        document_name: Filename of each skill document.
    """

    def __init__(self, repo_root: Path, skills_dir: str = "skills", document_name: str = "SKILL.md") -> None:
        self.repo_root = repo_root
        self.skills_dir = repo_root / skills_dir
        self.document_name = document_name

    def list_documents(self) -> list[str]:
        if not self.skills_dir.is_dir():
            raise FileNotFoundError(f"Skills directory not found: {self.skills_dir}")
        return [
            doc.relative_to(self.repo_root).as_posix()
            for doc in self.skills_dir.rglob(self.document_name)
            if doc.is_file()
        ]

    def read(self, path: str) -> str:
        return (self.repo_root / path).read_text(encoding="utf-8")

    def exists(self, path: str) -> bool:
        return (self.repo_root / path).exists()


class MemorySource:
    """In-memory stand-in for a repository.

    Args:
        documents: Mapping of repo-relative path to document text.
        extra_paths: Other paths that exist (e.g. the sitemap), for link checks.
    """

    def __init__(self, documents: dict[str, str], extra_paths: Optional[set[str]] = None) -> None:
        self.documents = dict(documents)
        self.extra_paths = set(extra_paths or ())

    def list_documents(self) -> list[str]:
        return list(self.documents)

    def read(self, path: str) -> str:
        try:
            return self.documents[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    def exists(self, path: str) -> bool:
        normalized = normalize_path(path)
        return normalized in self.documents or normalized in self.extra_paths


def normalize_path(path: str) -> str:
    """Collapse '.' and '..' segments in a repo-relative POSIX path."""
    parts: list[str] = []
    for part in PurePosixPath(path).parts:
        if part in ("", "."):
            continue
        if part == "..":
            if parts:
                parts.pop()
            continue
        parts.append(part)
    return "/".join(parts)


@dataclass
class LoadResult:
    """Records that parsed, and the errors of those that did not."""

    records: list[SkillRecord] = field(default_factory=list)
    errors: list[SkillTreeError] = field(default_factory=list)
    scanned: int = 0


async def _load_one(source: DocumentSource, path: str) -> SkillRecord | SkillTreeError:
    text = await asyncio.to_thread(source.read, path)
    try:
        return parse_skill_document(text, path)
    except SkillTreeError as exc:
        logger.debug("Failed to parse %s: %s", path, exc)
        return exc


async def load_documents(source: DocumentSource) -> LoadResult:
    """Discover and parse every skill document.

    Parse and schema errors are collected per document; OSError from any
    read propagates and aborts the whole load.

    Args:
        source: Where the documents come from.

    Returns:
        LoadResult: Parsed records and collected errors, in path order.
    """
    paths = sorted(await asyncio.to_thread(source.list_documents))
    logger.info("Discovered %d skill documents", len(paths))

    outcomes = await asyncio.gather(*(_load_one(source, path) for path in paths))

    result = LoadResult(scanned=len(paths))
    for outcome in outcomes:
        if isinstance(outcome, SkillTreeError):
            result.errors.append(outcome)
        else:
            result.records.append(outcome)
    return result
