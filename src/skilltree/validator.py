"""SkillTree validator — independent consistency checks over a built registry.

Each check reads the registry and appends diagnostics; none of them raise
and none depend on another having passed.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

from .errors import ConsistencyError, ErrorKind, SchemaError, SkillTreeError
from .models import Diagnostic, Severity, SkillRecord
from .registry import SkillRegistry

logger = logging.getLogger("skilltree.validator")

MARKDOWN_LINK = re.compile(r"\[([^\]]*)\]\(([^)]*)\)")


class PathChecker(Protocol):
    def exists(self, path: str) -> bool: ...


@dataclass
class ValidationReport:
    """Ordered diagnostics for one run."""

    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    def add(self, error: SkillTreeError) -> None:
        self.diagnostics.append(error.to_diagnostic())

    def warn(self, kind: ErrorKind, message: str, skill_ids: Iterable[str] = ()) -> None:
        self.diagnostics.append(
            Diagnostic(severity=Severity.WARNING, kind=kind, skill_ids=list(skill_ids), message=message)
        )

    def grouped(self) -> list[Diagnostic]:
        """Diagnostics grouped by skill id, keeping check order inside a group."""
        return sorted(self.diagnostics, key=lambda d: d.subject)


# ── Breadcrumbs ──────────────────────────────────────────────────────


def breadcrumb_segments(line: str) -> list[str]:
    """Reduce a breadcrumb line to its text segments.

    ``> [All Skills](../../SKILL_TREE.md) > SDK Setup > foo`` becomes
    ``["All Skills", "SDK Setup", "foo"]``.
    """
    text = MARKDOWN_LINK.sub(lambda m: m.group(1), line.strip())
    text = text.lstrip(">").strip()
    return [segment.strip().strip("`").strip() for segment in text.split(">")]


def expected_segments(registry: SkillRegistry, skill: SkillRecord) -> list[str]:
    """The breadcrumb chain a skill should carry.

    root label > category title > parent (unless a root router) > own id
    """
    config = registry.config
    segments = [config.root_label]
    if skill.category:
        segments.append(config.category_title(skill.category))
    if skill.parent and not registry.is_root_router(skill.parent):
        segments.append(skill.parent)
    segments.append(skill.id)
    return segments


def format_breadcrumb(segments: list[str]) -> str:
    return "> " + " > ".join(segments)


def breadcrumb_links(line: str) -> list[str]:
    """Relative markdown link targets ending in .md."""
    targets = []
    for _, target in MARKDOWN_LINK.findall(line):
        target = target.split("#", 1)[0].strip()
        if not target or "://" in target or target.startswith("/"):
            continue
        if target.endswith(".md"):
            targets.append(target)
    return targets


# ── Checks ───────────────────────────────────────────────────────────


def check_required_fields(registry: SkillRegistry, report: ValidationReport) -> None:
    known = set(registry.config.known_categories)
    for skill_id in sorted(registry.skills):
        skill = registry.skills[skill_id]
        if not skill.description:
            report.add(
                SchemaError(
                    ErrorKind.MISSING_DESCRIPTION,
                    "description is empty",
                    skill_ids=[skill_id],
                    path=skill.path,
                )
            )
        if skill.is_root:
            continue
        if not skill.category:
            report.add(
                SchemaError(
                    ErrorKind.MISSING_CATEGORY,
                    "non-root skill has no 'category'",
                    skill_ids=[skill_id],
                    path=skill.path,
                )
            )
        elif known and skill.category not in known and not skill.is_router:
            report.warn(
                ErrorKind.UNKNOWN_CATEGORY,
                f"category '{skill.category}' is not configured "
                f"(known: {', '.join(sorted(known))})",
                skill_ids=[skill_id],
            )


def check_router_symmetry(registry: SkillRegistry, report: ValidationReport) -> None:
    for router in registry.routers:
        declared = registry.declared_children.get(router.id, set())
        derived = registry.derived_children.get(router.id, set())
        for stale in sorted(declared - derived):
            report.add(
                ConsistencyError(
                    ErrorKind.STALE_ROUTER_ENTRY,
                    f"router table lists '{stale}' but that skill does not declare "
                    f"parent '{router.id}'",
                    skill_ids=[router.id, stale],
                    path=router.path,
                )
            )
        for missing in sorted(derived - declared):
            report.add(
                ConsistencyError(
                    ErrorKind.MISSING_ROUTER_ENTRY,
                    f"'{missing}' declares parent '{router.id}' but is not listed in "
                    f"its router table",
                    skill_ids=[missing, router.id],
                    path=registry.skills[missing].path,
                )
            )


def check_breadcrumbs(
    registry: SkillRegistry,
    report: ValidationReport,
    paths: Optional[PathChecker] = None,
) -> None:
    for skill_id in sorted(registry.skills):
        skill = registry.skills[skill_id]
        if skill.is_root:
            continue
        if not skill.breadcrumb:
            report.add(
                ConsistencyError(
                    ErrorKind.MISSING_BREADCRUMB,
                    "document body has no breadcrumb line",
                    skill_ids=[skill_id],
                    path=skill.path,
                    expected=format_breadcrumb(expected_segments(registry, skill)),
                )
            )
            continue

        expected = expected_segments(registry, skill)
        if breadcrumb_segments(skill.breadcrumb) != expected:
            report.add(
                ConsistencyError(
                    ErrorKind.BREADCRUMB_MISMATCH,
                    "breadcrumb does not match the category/parent chain",
                    skill_ids=[skill_id],
                    path=skill.path,
                    expected=format_breadcrumb(expected),
                    actual=skill.breadcrumb,
                )
            )

        if paths is None:
            continue
        skill_dir = posixpath.dirname(skill.path)
        for target in breadcrumb_links(skill.breadcrumb):
            resolved = posixpath.normpath(posixpath.join(skill_dir, target))
            # the sitemap may not exist before the first generate run
            if resolved == posixpath.normpath(registry.config.tree_file):
                continue
            if not paths.exists(resolved):
                report.add(
                    ConsistencyError(
                        ErrorKind.BROKEN_BREADCRUMB_LINK,
                        f"breadcrumb link '{target}' does not resolve (looked for {resolved})",
                        skill_ids=[skill_id],
                        path=skill.path,
                    )
                )


def check_roles(registry: SkillRegistry, report: ValidationReport) -> None:
    for skill_id in sorted(registry.skills):
        skill = registry.skills[skill_id]
        if skill.is_router and skill.hidden:
            report.add(
                ConsistencyError(
                    ErrorKind.HIDDEN_ROUTER,
                    "routers must not set 'disable-model-invocation: true'",
                    skill_ids=[skill_id],
                    path=skill.path,
                )
            )
        if skill.parent or skill.is_router or not skill.category:
            continue
        category = registry.categories.get(skill.category)
        if category is not None and category.router_id is None:
            report.add(
                ConsistencyError(
                    ErrorKind.MISSING_ROUTER,
                    f"skill has no parent and category '{skill.category}' has no router",
                    skill_ids=[skill_id],
                    path=skill.path,
                )
            )


def check_category_sizes(registry: SkillRegistry, report: ValidationReport) -> None:
    threshold = registry.config.category_size_threshold
    for category in registry.ordered_categories():
        if category.is_root or len(category.member_ids) <= threshold:
            continue
        report.warn(
            ErrorKind.CATEGORY_TOO_LARGE,
            f"category '{category.id}' has {len(category.member_ids)} skills "
            f"(threshold {threshold}); consider splitting it",
            skill_ids=[category.router_id] if category.router_id else [],
        )


def validate(
    registry: SkillRegistry,
    upstream: Iterable[SkillTreeError] = (),
    paths: Optional[PathChecker] = None,
) -> ValidationReport:
    """Run every check against a registry.

    Args:
        registry: The built registry.
        upstream: Parse/schema errors collected while loading documents.
        paths: Existence checker for breadcrumb links; link checks are
            skipped when omitted.

    Returns:
        ValidationReport: Upstream errors first, then registry errors,
        then each check's findings in order.
    """
    report = ValidationReport()
    for error in upstream:
        report.add(error)
    for error in registry.errors:
        report.add(error)

    check_required_fields(registry, report)
    check_router_symmetry(registry, report)
    check_breadcrumbs(registry, report, paths)
    check_roles(registry, report)
    check_category_sizes(registry, report)

    logger.info(
        "Validation finished: %d errors, %d warnings",
        len(report.errors),
        len(report.warnings),
    )
    return report
