"""Tests for the SkillTree renderer — canonical sitemap output."""

from __future__ import annotations

import random

from conftest import EXPECTED_TREE
from skilltree.config import TreeConfig
from skilltree.models import Role, SkillRecord
from skilltree.parser import parse_skill_document
from skilltree.registry import SkillRegistry
from skilltree.renderer import first_sentence, render_tree


def build(documents, config) -> SkillRegistry:
    records = [parse_skill_document(text, path) for path, text in documents.items()]
    return SkillRegistry.build(records, config)


class TestRenderTree:
    """Test the rendered document."""

    def test_matches_expected(self, documents, tree_config):
        assert render_tree(build(documents, tree_config)) == EXPECTED_TREE

    def test_idempotent(self, documents, tree_config):
        """Rendering the same input twice is byte-identical."""
        first = render_tree(build(documents, tree_config))
        second = render_tree(build(documents, tree_config))
        assert first.encode() == second.encode()

    def test_enumeration_order_does_not_matter(self, documents, tree_config):
        expected = render_tree(build(documents, tree_config))
        items = list(documents.items())
        rng = random.Random(1234)
        for _ in range(10):
            rng.shuffle(items)
            assert render_tree(build(dict(items), tree_config)) == expected

    def test_intro_included(self, documents, tree_config):
        config = tree_config.model_copy(update={"intro": "Read me first."})
        text = render_tree(build(documents, config))
        assert text.startswith("# Skill Tree\n\nRead me first.\n\n## Quick Navigation\n")

    def test_category_without_router(self):
        records = [
            SkillRecord(id="helper", path="skills/helper/SKILL.md", category="internal",
                        description="Internal helper. Not for users."),
        ]
        text = render_tree(SkillRegistry.build(records, TreeConfig(intro="")))
        assert "## Internal\n\n| Skill | Path | Description |\n" in text
        assert "| [`helper`](skills/helper/SKILL.md) | skills/helper/SKILL.md | Internal helper |" in text
        assert "## All Skills" not in text

    def test_top_level_router_layout(self, tree_config):
        """A category-less router still heads its category and the navigation."""
        records = [
            SkillRecord(id="sentry-sdk-setup", path="skills/sentry-sdk-setup/SKILL.md",
                        role=Role.ROUTER, description="Pick the SDK for a project."),
            SkillRecord(id="sentry-python-sdk", path="skills/sentry-python-sdk/SKILL.md",
                        category="sdk-setup", parent="sentry-sdk-setup",
                        description="Full Sentry SDK setup for Python."),
        ]
        text = render_tree(SkillRegistry.build(records, tree_config))
        assert "| Set up Sentry in a project | [`sentry-sdk-setup`](skills/sentry-sdk-setup/SKILL.md) |" in text
        assert "## SDK Setup ([`sentry-sdk-setup`](skills/sentry-sdk-setup/SKILL.md))\n" in text
        assert "| [`sentry-python-sdk`](skills/sentry-python-sdk/SKILL.md) | skills/sentry-python-sdk/SKILL.md | Python |" in text
        assert "## All Skills\n" in text

    def test_pipes_escaped(self):
        records = [
            SkillRecord(id="r", path="skills/r/SKILL.md", category="c", role=Role.ROUTER,
                        description="Router."),
            SkillRecord(id="s", path="skills/s/SKILL.md", category="c", parent="r",
                        description="Pick a | b."),
        ]
        text = render_tree(SkillRegistry.build(records, TreeConfig(intro="")))
        assert "| Pick a \\| b |" in text

    def test_single_trailing_newline(self, documents, tree_config):
        text = render_tree(build(documents, tree_config))
        assert text.endswith("|\n")
        assert not text.endswith("\n\n")


class TestFirstSentence:
    def test_first_sentence(self):
        assert first_sentence("Does a thing. Then more.") == "Does a thing"

    def test_strip_prefix(self):
        assert first_sentence("Full Sentry SDK setup for Ruby.", "Full Sentry SDK setup for ") == "Ruby"

    def test_multiline_collapsed(self):
        assert first_sentence("Spans\n  two lines") == "Spans two lines"
