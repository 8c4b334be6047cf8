"""SkillTree error taxonomy.

Parser failures are raised; the registry and validator collect the same
exception types instead of raising them, so one run reports every problem.
File-system failures are plain ``OSError`` and abort the run.
"""

from __future__ import annotations

import enum
from typing import Iterable, Optional


class ErrorKind(str, enum.Enum):
    """Every rule the builder can report, grouped by family."""

    # ParseError
    UNTERMINATED_HEADER = "UnterminatedHeader"
    MALFORMED_HEADER = "MalformedHeader"
    DUPLICATE_FIELD = "DuplicateField"

    # SchemaError
    MISSING_NAME = "MissingName"
    INVALID_ROLE = "InvalidRole"
    INVALID_FIELD = "InvalidField"
    MISSING_DESCRIPTION = "MissingDescription"
    MISSING_CATEGORY = "MissingCategory"
    UNKNOWN_CATEGORY = "UnknownCategory"

    # GraphError
    DANGLING_PARENT = "DanglingParent"
    PARENT_NOT_ROUTER = "ParentNotRouter"
    DUPLICATE_NAME = "DuplicateName"
    CYCLE = "Cycle"
    AMBIGUOUS_ROUTER = "AmbiguousRouter"

    # ConsistencyError
    STALE_ROUTER_ENTRY = "StaleRouterEntry"
    MISSING_ROUTER_ENTRY = "MissingRouterEntry"
    MISSING_BREADCRUMB = "MissingBreadcrumb"
    BREADCRUMB_MISMATCH = "BreadcrumbMismatch"
    BROKEN_BREADCRUMB_LINK = "BrokenBreadcrumbLink"
    HIDDEN_ROUTER = "HiddenRouter"
    MISSING_ROUTER = "MissingRouter"
    STALE_TREE = "StaleTree"
    MISSING_TREE = "MissingTree"

    # Advisory
    CATEGORY_TOO_LARGE = "CategoryTooLarge"


class SkillTreeError(Exception):
    """Base class for every content error the builder reports.

    Args:
        kind: The rule that was violated.
        message: Human-readable explanation.
        skill_ids: Ids of the offending skills, if known.
        path: Repo-relative path of the offending document, if any.
        expected: Expected value for mismatch errors.
        actual: Value actually found.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        skill_ids: Iterable[str] = (),
        path: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.skill_ids = list(skill_ids)
        self.path = path
        self.expected = expected
        self.actual = actual

    def to_diagnostic(self):
        """Convert into an error-level Diagnostic."""
        from .models import Diagnostic, Severity

        return Diagnostic(
            severity=Severity.ERROR,
            kind=self.kind,
            skill_ids=self.skill_ids,
            message=self.message,
            path=self.path,
            expected=self.expected,
            actual=self.actual,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}, {self.message!r})"


class ParseError(SkillTreeError):
    """The metadata header could not be read."""


class SchemaError(SkillTreeError):
    """A required field is missing or has an invalid value."""


class GraphError(SkillTreeError):
    """Dangling reference, duplicate id, cycle, or ambiguous router."""


class ConsistencyError(SkillTreeError):
    """Declared and derived structure disagree."""


class ConfigError(Exception):
    """The skilltree configuration file is unreadable or invalid."""
