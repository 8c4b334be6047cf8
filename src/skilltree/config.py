"""SkillTree configuration — optional skilltree.yaml at the repository root.

Every field has a default, so a repository without the file builds with
the stock layout: skills/*/SKILL.md rendered into SKILL_TREE.md.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

CONFIG_FILE = "skilltree.yaml"


class CategoryConfig(BaseModel):
    """Presentation settings for one category."""

    id: str = Field(description="Category identifier as declared by skills")
    title: str = Field(default="", description="Heading and breadcrumb label")
    column: str = Field(default="Description", description="Third column header")
    summary: str = Field(default="", description="Quick-navigation text for the router")
    strip_prefix: str = Field(default="", description="Prefix removed from descriptions")


class TreeConfig(BaseModel):
    """Builder configuration."""

    skills_dir: str = Field(default="skills", description="Directory scanned for skills")
    document_name: str = Field(default="SKILL.md", description="Skill document filename")
    tree_file: str = Field(default="SKILL_TREE.md", description="Generated sitemap path")
    title: str = Field(default="Skill Tree")
    intro: str = Field(
        default=(
            "This file maps the full skill structure. Read it to find the right "
            "skill for any task, then follow the path to load it."
        )
    )
    root_label: str = Field(default="All Skills", description="First breadcrumb segment")
    category_size_threshold: int = Field(default=10, ge=1)
    categories: list[CategoryConfig] = Field(default_factory=list)

    def category(self, category_id: str) -> Optional[CategoryConfig]:
        for entry in self.categories:
            if entry.id == category_id:
                return entry
        return None

    def category_title(self, category_id: str) -> str:
        """Label used in headings and breadcrumbs.

        Falls back to the id with hyphens as spaces, title-cased.
        """
        entry = self.category(category_id)
        if entry and entry.title:
            return entry.title
        return category_id.replace("-", " ").replace("_", " ").title()

    @property
    def known_categories(self) -> list[str]:
        return [entry.id for entry in self.categories]


def load_config(path: Path) -> TreeConfig:
    """Load a skilltree.yaml file.

    Args:
        path: Path to the config file. A missing file yields defaults.

    Returns:
        TreeConfig: The parsed configuration.

    Raises:
        ConfigError: If the file is not a valid YAML mapping or fails validation.
    """
    if not path.exists():
        return TreeConfig()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"{path}: invalid YAML: {exc}") from exc

    if raw is None:
        return TreeConfig()
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: must be a YAML mapping, got {type(raw).__name__}")

    try:
        return TreeConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
