"""SkillTree registry — the in-memory graph of skills, categories and routers.

Skills live in an arena keyed by id. Parent links and router tables are id
references resolved during build(). Structural problems never stop the
build: they are collected in ``errors`` next to whatever graph could be
assembled, so the validator can still run its remaining checks.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Optional

from .config import TreeConfig
from .errors import ErrorKind, GraphError
from .models import ROOT_CATEGORY, Category, SkillRecord

logger = logging.getLogger("skilltree.registry")

_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


class SkillRegistry:
    """The skill graph for one run.

    Args:
        config: Builder configuration (category order, labels).
    """

    def __init__(self, config: Optional[TreeConfig] = None) -> None:
        self.config = config or TreeConfig()
        self.skills: dict[str, SkillRecord] = {}
        self.categories: dict[str, Category] = {}
        self.declared_children: dict[str, set[str]] = {}
        self.derived_children: dict[str, set[str]] = {}
        self.errors: list[GraphError] = []

    @classmethod
    def build(cls, records: Iterable[SkillRecord], config: Optional[TreeConfig] = None) -> "SkillRegistry":
        """Assemble a registry from parsed records.

        Args:
            records: Parsed skill records, in any order.
            config: Builder configuration.

        Returns:
            SkillRegistry: The graph, with structural errors in ``errors``.
        """
        registry = cls(config)
        ordered = sorted(records, key=lambda r: (r.path, r.id))
        registry._add_skills(ordered)
        registry._resolve_parents()
        registry._detect_cycles()
        registry._build_categories()
        registry._link_routers()
        logger.info(
            "Registry built: %d skills, %d categories, %d structural errors",
            len(registry.skills),
            len(registry.categories),
            len(registry.errors),
        )
        return registry

    # ── Lookups ──────────────────────────────────────────────────────

    @property
    def routers(self) -> list[SkillRecord]:
        return [self.skills[sid] for sid in sorted(self.skills) if self.skills[sid].is_router]

    @property
    def root_category(self) -> Category:
        return self.categories[ROOT_CATEGORY]

    def ordered_categories(self) -> list[Category]:
        """Categories in render order, root first."""
        return list(self.categories.values())

    def category_of(self, skill: SkillRecord) -> Optional[Category]:
        if skill.is_root:
            return self.root_category
        if skill.category:
            return self.categories.get(skill.category)
        return None

    def is_root_router(self, skill_id: Optional[str]) -> bool:
        skill = self.skills.get(skill_id) if skill_id else None
        return bool(skill and skill.is_root)

    # ── Build phases ─────────────────────────────────────────────────

    def _add_skills(self, ordered: list[SkillRecord]) -> None:
        by_id: dict[str, list[SkillRecord]] = defaultdict(list)
        for record in ordered:
            by_id[record.id].append(record)

        for skill_id, group in by_id.items():
            self.skills[skill_id] = group[0]
            if len(group) > 1:
                paths = [r.path for r in group]
                self.errors.append(
                    GraphError(
                        ErrorKind.DUPLICATE_NAME,
                        f"name '{skill_id}' is declared by {len(group)} documents: {', '.join(paths)}",
                        skill_ids=[skill_id],
                        path=paths[0],
                    )
                )

    def _resolve_parents(self) -> None:
        for skill_id in sorted(self.skills):
            skill = self.skills[skill_id]
            if not skill.parent:
                continue
            parent = self.skills.get(skill.parent)
            if parent is None:
                self.errors.append(
                    GraphError(
                        ErrorKind.DANGLING_PARENT,
                        f"parent '{skill.parent}' does not exist",
                        skill_ids=[skill_id],
                        path=skill.path,
                    )
                )
            elif not parent.is_router:
                self.errors.append(
                    GraphError(
                        ErrorKind.PARENT_NOT_ROUTER,
                        f"parent '{skill.parent}' is not a router (role={parent.role.value})",
                        skill_ids=[skill_id],
                        path=skill.path,
                    )
                )

    def _detect_cycles(self) -> None:
        """Three-colour walk over parent edges.

        Each skill has at most one parent, so the walk from any node is a
        single chain; a step onto an in-progress node closes a cycle.
        """
        color = {skill_id: _UNVISITED for skill_id in self.skills}

        for start in sorted(self.skills):
            if color[start] != _UNVISITED:
                continue
            chain: list[str] = []
            node: Optional[str] = start
            while node is not None and node in self.skills and color[node] == _UNVISITED:
                color[node] = _IN_PROGRESS
                chain.append(node)
                node = self.skills[node].parent

            if node is not None and color.get(node) == _IN_PROGRESS:
                cycle = chain[chain.index(node):] + [node]
                self.errors.append(
                    GraphError(
                        ErrorKind.CYCLE,
                        "parent chain loops: " + " -> ".join(cycle),
                        skill_ids=sorted(set(cycle)),
                        path=self.skills[cycle[0]].path,
                    )
                )

            for visited in chain:
                color[visited] = _DONE

    def _build_categories(self) -> None:
        self.categories[ROOT_CATEGORY] = Category(id=ROOT_CATEGORY)

        seen: list[str] = []
        for record in sorted(self.skills.values(), key=lambda r: (r.path, r.id)):
            if record.category and record.category not in seen and record.category != ROOT_CATEGORY:
                seen.append(record.category)
        configured = [cid for cid in self.config.known_categories if cid in seen]
        for category_id in configured + [cid for cid in seen if cid not in configured]:
            self.categories[category_id] = Category(id=category_id)

        for skill_id in sorted(self.skills):
            skill = self.skills[skill_id]
            category = self.category_of(skill)
            if category is not None:
                category.member_ids.add(skill_id)

        for category in self.categories.values():
            if category.is_root:
                continue
            entry_points = [
                sid
                for sid in category.sorted_members()
                if self.skills[sid].is_router
                and self._parent_category(self.skills[sid]) != category.id
            ]
            if not entry_points:
                # top-level routers that carry no category of their own
                entry_points = sorted({
                    self.skills[sid].parent
                    for sid in category.member_ids
                    if self.skills[sid].parent in self.skills
                    and self.skills[self.skills[sid].parent].is_router
                    and self._parent_category(self.skills[sid]) is None
                })
            if entry_points:
                category.router_id = entry_points[0]
            if len(entry_points) > 1:
                self.errors.append(
                    GraphError(
                        ErrorKind.AMBIGUOUS_ROUTER,
                        f"category '{category.id}' has {len(entry_points)} routers: "
                        + ", ".join(entry_points),
                        skill_ids=entry_points,
                    )
                )

    def _parent_category(self, skill: SkillRecord) -> Optional[str]:
        parent = self.skills.get(skill.parent) if skill.parent else None
        return parent.category if parent else None

    def _link_routers(self) -> None:
        for router in self.routers:
            self.declared_children[router.id] = {entry.target for entry in router.routes}
            self.derived_children[router.id] = set()

        for skill_id in sorted(self.skills):
            parent = self.skills[skill_id].parent
            if parent in self.derived_children:
                self.derived_children[parent].add(skill_id)
