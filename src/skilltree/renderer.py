"""SkillTree renderer — serialize a registry into SKILL_TREE.md.

Output depends only on registry content: categories come out in registry
order (root first) and skills inside a category in ascending id order.
"""

from __future__ import annotations

import re

from .models import Category, SkillRecord
from .registry import SkillRegistry

_WHITESPACE = re.compile(r"\s+")


def first_sentence(text: str, strip_prefix: str = "") -> str:
    """Short column text: the first sentence, without its final period."""
    text = _WHITESPACE.sub(" ", text).strip()
    if strip_prefix and text.startswith(strip_prefix):
        text = text[len(strip_prefix):]
    return text.split(". ", 1)[0].rstrip(".").strip()


def _cell(text: str) -> str:
    return text.replace("|", "\\|")


def _link(skill: SkillRecord) -> str:
    return f"[`{skill.id}`]({skill.path})"


def _skill_table(column: str, skills: list[SkillRecord], strip_prefix: str = "") -> list[str]:
    lines = [f"| Skill | Path | {column} |", "|---|---|---|"]
    for skill in skills:
        summary = first_sentence(skill.description, strip_prefix)
        lines.append(f"| {_link(skill)} | {skill.path} | {_cell(summary)} |")
    return lines


def _quick_navigation(registry: SkillRegistry) -> list[str]:
    lines = ["## Quick Navigation", "", "| If the user wants to... | Start here |", "|---|---|"]
    for category in registry.ordered_categories():
        if category.is_root or category.router_id is None:
            continue
        router = registry.skills[category.router_id]
        entry = registry.config.category(category.id)
        summary = entry.summary if entry and entry.summary else first_sentence(router.description)
        lines.append(f"| {_cell(summary)} | {_link(router)} |")
    return lines


def _category_section(registry: SkillRegistry, category: Category) -> list[str]:
    config = registry.config
    entry = config.category(category.id)
    column = entry.column if entry else "Description"
    strip_prefix = entry.strip_prefix if entry else ""

    if category.is_root:
        heading = f"## {config.root_label}"
        members = category.sorted_members()
    else:
        heading = f"## {config.category_title(category.id)}"
        if category.router_id is not None:
            heading += f" ({_link(registry.skills[category.router_id])})"
        members = [sid for sid in category.sorted_members() if sid != category.router_id]

    skills = [registry.skills[sid] for sid in members]
    return [heading, "", *_skill_table(column, skills, strip_prefix)]


def render_tree(registry: SkillRegistry) -> str:
    """Render the canonical sitemap document.

    Args:
        registry: A built registry; partial registries render what they hold.

    Returns:
        str: Markdown text ending in a single newline.
    """
    config = registry.config
    lines = [f"# {config.title}", ""]
    if config.intro:
        lines += [config.intro.strip(), ""]
    lines += _quick_navigation(registry)

    for category in registry.ordered_categories():
        if category.is_root and not category.member_ids:
            continue
        lines += ["", *_category_section(registry, category)]

    return "\n".join(lines) + "\n"
