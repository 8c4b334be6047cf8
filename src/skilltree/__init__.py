"""SkillTree — skill sitemap builder and validator.

Scans a directory of SKILL.md documents, rebuilds the router/category
hierarchy they declare, checks it for consistency, and regenerates the
canonical SKILL_TREE.md sitemap.
"""

__version__ = "0.1.0"
