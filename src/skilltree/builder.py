"""SkillTree builder — run the pipeline in generate or check mode.

    discover -> parse -> registry -> validate -> render -> write | compare

Generate mode writes SKILL_TREE.md only when validation passed. Check mode
never writes; it fails when validation fails or the committed file differs
from what would be generated. OSError is left to the caller.
"""

from __future__ import annotations

import asyncio
import difflib
import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import CONFIG_FILE, TreeConfig, load_config
from .errors import ConsistencyError, ErrorKind
from .loader import DocumentSource, FileSystemSource, load_documents
from .registry import SkillRegistry
from .renderer import render_tree
from .validator import ValidationReport, validate

logger = logging.getLogger("skilltree.builder")

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_IO_ERROR = 2


class Mode(str, enum.Enum):
    GENERATE = "generate"
    CHECK = "check"


class TreeStatus(str, enum.Enum):
    """What happened to the sitemap file."""

    UP_TO_DATE = "up-to-date"
    CREATED = "created"
    UPDATED = "updated"
    STALE = "stale"
    MISSING = "missing"
    NOT_WRITTEN = "not-written"


@dataclass
class BuildResult:
    """Outcome of one pipeline run."""

    mode: Mode
    tree_path: Path
    rendered: str
    report: ValidationReport
    status: TreeStatus
    scanned: int = 0
    routers: int = 0
    diff: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        if self.report.has_errors:
            return EXIT_INVALID
        if self.status in (TreeStatus.STALE, TreeStatus.MISSING, TreeStatus.NOT_WRITTEN):
            return EXIT_INVALID
        return EXIT_OK


def locate_repository(path: Path, config_file: Optional[Path] = None) -> tuple[Path, TreeConfig]:
    """Find the repository root and its configuration.

    ``path`` may be the repository root or its skills directory.

    Raises:
        FileNotFoundError: If no skills directory can be found.
        ConfigError: If the configuration file is invalid.
    """
    path = path.expanduser().resolve()
    if not path.is_dir():
        raise FileNotFoundError(f"Not a directory: {path}")

    for root in (path, path.parent):
        config = load_config(config_file or root / CONFIG_FILE)
        skills_dir = (root / config.skills_dir).resolve()
        if root == path and skills_dir.is_dir():
            return root, config
        if root != path and skills_dir == path:
            return root, config

    raise FileNotFoundError(f"No skills directory found at or under {path}")


def build_registry(source: DocumentSource, config: TreeConfig) -> tuple[SkillRegistry, ValidationReport, int]:
    """Load, link and validate every skill document.

    Returns:
        (registry, report, number of documents scanned)
    """
    loaded = asyncio.run(load_documents(source))
    registry = SkillRegistry.build(loaded.records, config)
    report = validate(registry, upstream=loaded.errors, paths=source)
    return registry, report, loaded.scanned


def tree_diff(existing: bytes, rendered: str, name: str) -> list[str]:
    """Unified diff from the committed sitemap to the generated one."""
    return list(
        difflib.unified_diff(
            existing.decode("utf-8", errors="replace").splitlines(keepends=True),
            rendered.splitlines(keepends=True),
            fromfile=f"{name} (committed)",
            tofile=f"{name} (generated)",
        )
    )


def run_build(
    repo_root: Path,
    config: Optional[TreeConfig] = None,
    mode: Mode = Mode.GENERATE,
    source: Optional[DocumentSource] = None,
) -> BuildResult:
    """Run the full pipeline.

    Args:
        repo_root: Repository root; the sitemap lives at ``repo_root / config.tree_file``.
        config: Builder configuration (default: stock layout).
        mode: Generate (write) or check (compare only).
        source: Document source; defaults to the skills directory on disk.

    Returns:
        BuildResult: Diagnostics, rendered text and the sitemap status.

    Raises:
        OSError: If a document or the sitemap cannot be read or written.
    """
    config = config or TreeConfig()
    source = source or FileSystemSource(repo_root, config.skills_dir, config.document_name)

    registry, report, scanned = build_registry(source, config)
    rendered = render_tree(registry)
    tree_path = repo_root / config.tree_file
    existing = tree_path.read_bytes() if tree_path.exists() else None
    payload = rendered.encode("utf-8")

    result = BuildResult(
        mode=mode,
        tree_path=tree_path,
        rendered=rendered,
        report=report,
        status=TreeStatus.UP_TO_DATE,
        scanned=scanned,
        routers=len(registry.routers),
    )

    if existing is not None and existing != payload:
        result.diff = tree_diff(existing, rendered, config.tree_file)

    if mode == Mode.CHECK:
        if existing is None:
            result.status = TreeStatus.MISSING
            report.add(
                ConsistencyError(
                    ErrorKind.MISSING_TREE,
                    f"{config.tree_file} does not exist; run without --check to generate it",
                    path=config.tree_file,
                )
            )
        elif existing != payload:
            result.status = TreeStatus.STALE
            report.add(
                ConsistencyError(
                    ErrorKind.STALE_TREE,
                    f"{config.tree_file} is stale; run without --check to regenerate it",
                    path=config.tree_file,
                )
            )
        return result

    if report.has_errors:
        logger.info("Validation failed; leaving %s untouched", tree_path)
        result.status = TreeStatus.NOT_WRITTEN
        return result

    if existing != payload:
        tree_path.write_bytes(payload)
        result.status = TreeStatus.CREATED if existing is None else TreeStatus.UPDATED
        logger.info("Wrote %s (%d bytes)", tree_path, len(payload))
    return result
