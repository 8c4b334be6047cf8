"""Shared fixtures: a small, valid skill repository."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from skilltree.config import CategoryConfig, TreeConfig
from skilltree.loader import MemorySource

ROOT_ROUTER = dedent("""\
    ---
    name: sentry
    description: Entry point for every Sentry skill.
    role: router
    ---

    # Sentry

    | Skill | When |
    |---|---|
    | [`sentry-sdk-setup`](../sentry-sdk-setup/SKILL.md) | Set up Sentry |
    | [`sentry-workflow`](../sentry-workflow/SKILL.md) | Fix issues |
""")

SDK_ROUTER = dedent("""\
    ---
    name: sentry-sdk-setup
    description: Route to the right SDK setup skill.
    category: sdk-setup
    parent: sentry
    role: router
    ---

    > [All Skills](../../SKILL_TREE.md) > SDK Setup > sentry-sdk-setup

    | Platform | Skill |
    |---|---|
    | [`sentry-python-sdk`](../sentry-python-sdk/SKILL.md) | Python |
    | [`sentry-go-sdk`](../sentry-go-sdk/SKILL.md) | Go |

    ```markdown
    | `not-a-route` | example inside a code fence |
    ```
""")

PYTHON_SDK = dedent("""\
    ---
    name: sentry-python-sdk
    description: Full Sentry SDK setup for Python. Covers Django and Flask.
    category: sdk-setup
    parent: sentry-sdk-setup
    disable-model-invocation: true
    allowed-tools: Read, Grep, Bash
    ---

    > [All Skills](../../SKILL_TREE.md) > [SDK Setup](../sentry-sdk-setup/SKILL.md) > sentry-sdk-setup > sentry-python-sdk

    # Python SDK
""")

GO_SDK = dedent("""\
    ---
    name: sentry-go-sdk
    description: Full Sentry SDK setup for Go.
    category: sdk-setup
    parent: sentry-sdk-setup
    disable-model-invocation: true
    ---


    > All Skills > SDK Setup > sentry-sdk-setup > sentry-go-sdk
""")

WORKFLOW_ROUTER = dedent("""\
    ---
    name: sentry-workflow
    description: Debug and fix production problems with Sentry.
    category: workflow
    parent: sentry
    role: router
    ---

    > [All Skills](../../SKILL_TREE.md) > Workflow > sentry-workflow

    | [`sentry-fix-issues`](../sentry-fix-issues/SKILL.md) | Fix issues |
""")

FIX_ISSUES = dedent("""\
    ---
    name: sentry-fix-issues
    description: Find and fix production issues. Uses the Sentry MCP server.
    category: workflow
    parent: sentry-workflow
    disable-model-invocation: true
    ---

    > [All Skills](../../SKILL_TREE.md) > Workflow > sentry-workflow > sentry-fix-issues
""")

VALID_DOCUMENTS = {
    "skills/sentry/SKILL.md": ROOT_ROUTER,
    "skills/sentry-sdk-setup/SKILL.md": SDK_ROUTER,
    "skills/sentry-python-sdk/SKILL.md": PYTHON_SDK,
    "skills/sentry-go-sdk/SKILL.md": GO_SDK,
    "skills/sentry-workflow/SKILL.md": WORKFLOW_ROUTER,
    "skills/sentry-fix-issues/SKILL.md": FIX_ISSUES,
}

EXPECTED_TREE = dedent("""\
    # Skill Tree

    ## Quick Navigation

    | If the user wants to... | Start here |
    |---|---|
    | Set up Sentry in a project | [`sentry-sdk-setup`](skills/sentry-sdk-setup/SKILL.md) |
    | Debug and fix production problems with Sentry | [`sentry-workflow`](skills/sentry-workflow/SKILL.md) |

    ## All Skills

    | Skill | Path | Description |
    |---|---|---|
    | [`sentry`](skills/sentry/SKILL.md) | skills/sentry/SKILL.md | Entry point for every Sentry skill |

    ## SDK Setup ([`sentry-sdk-setup`](skills/sentry-sdk-setup/SKILL.md))

    | Skill | Path | Platform |
    |---|---|---|
    | [`sentry-go-sdk`](skills/sentry-go-sdk/SKILL.md) | skills/sentry-go-sdk/SKILL.md | Go |
    | [`sentry-python-sdk`](skills/sentry-python-sdk/SKILL.md) | skills/sentry-python-sdk/SKILL.md | Python |

    ## Workflow ([`sentry-workflow`](skills/sentry-workflow/SKILL.md))

    | Skill | Path | Use when |
    |---|---|---|
    | [`sentry-fix-issues`](skills/sentry-fix-issues/SKILL.md) | skills/sentry-fix-issues/SKILL.md | Find and fix production issues |
""")

CONFIG_YAML = dedent("""\
    intro: ""
    categories:
      - id: sdk-setup
        title: SDK Setup
        column: Platform
        summary: Set up Sentry in a project
        strip_prefix: "Full Sentry SDK setup for "
      - id: workflow
        title: Workflow
        column: Use when
""")


@pytest.fixture
def tree_config() -> TreeConfig:
    """Configuration matching CONFIG_YAML."""
    return TreeConfig(
        intro="",
        categories=[
            CategoryConfig(
                id="sdk-setup",
                title="SDK Setup",
                column="Platform",
                summary="Set up Sentry in a project",
                strip_prefix="Full Sentry SDK setup for ",
            ),
            CategoryConfig(id="workflow", title="Workflow", column="Use when"),
        ],
    )


@pytest.fixture
def documents() -> dict[str, str]:
    """A mutable copy of the valid document set."""
    return dict(VALID_DOCUMENTS)


@pytest.fixture
def memory_source(documents: dict[str, str]) -> MemorySource:
    return MemorySource(documents)


def write_repo(root: Path, docs: dict[str, str], config: str = CONFIG_YAML) -> Path:
    """Materialize documents (and skilltree.yaml) under root."""
    root.mkdir(parents=True, exist_ok=True)
    for rel, text in docs.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text)
    if config:
        (root / "skilltree.yaml").write_text(config)
    return root


@pytest.fixture
def repo(tmp_path: Path, documents: dict[str, str]) -> Path:
    """A valid repository checkout on disk, without SKILL_TREE.md."""
    return write_repo(tmp_path / "repo", documents)
