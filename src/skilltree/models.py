"""SkillTree data models — skill records, categories and diagnostics.

Every skill document becomes one SkillRecord. Records are addressed by id
inside the registry; parent links and router tables are id references that
the registry resolves in a dedicated build phase.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import ErrorKind

ROOT_CATEGORY = "root"


class Role(str, enum.Enum):
    """The part a skill plays in navigation."""

    NONE = "none"
    ROUTER = "router"


class Severity(str, enum.Enum):
    """Diagnostic severity. Only errors affect the exit code."""

    ERROR = "error"
    WARNING = "warning"


class RouteEntry(BaseModel):
    """One row of a router's table, pointing at a child skill."""

    target: str = Field(description="Skill id the row routes to")
    path: str = Field(default="", description="Link target shown in the row")
    description: str = Field(default="", description="Remaining cell text")


class SkillRecord(BaseModel):
    """A single skill document, reduced to its structural metadata."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique, case-sensitive skill name")
    path: str = Field(description="Repo-relative POSIX path of the document")
    category: Optional[str] = Field(default=None, description="Category the skill belongs to")
    parent: Optional[str] = Field(default=None, description="Id of the parent router")
    role: Role = Field(default=Role.NONE)
    hidden: bool = Field(default=False, description="disable-model-invocation flag")
    description: str = Field(default="")
    breadcrumb: Optional[str] = Field(default=None, description="First non-blank body line")
    routes: list[RouteEntry] = Field(default_factory=list, description="Router table rows")
    extra: dict[str, Any] = Field(default_factory=dict, description="Pass-through header fields")

    @property
    def is_router(self) -> bool:
        return self.role == Role.ROUTER

    @property
    def is_root(self) -> bool:
        """Root routers sit above every category and need no breadcrumb."""
        return self.is_router and not self.category and not self.parent


class Category(BaseModel):
    """A named grouping of skills owned by one router."""

    id: str
    router_id: Optional[str] = None
    member_ids: set[str] = Field(default_factory=set)

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_CATEGORY

    def sorted_members(self) -> list[str]:
        return sorted(self.member_ids)


class Diagnostic(BaseModel):
    """One finding reported to the user."""

    severity: Severity
    kind: ErrorKind
    skill_ids: list[str] = Field(default_factory=list)
    message: str
    path: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    @property
    def subject(self) -> str:
        """Primary grouping key: the first skill id, else the path."""
        if self.skill_ids:
            return self.skill_ids[0]
        return self.path or ""

    def format(self) -> str:
        """Render the diagnostic on a single line."""
        who = ", ".join(self.skill_ids) or self.path or "-"
        line = f"{self.severity.value}[{self.kind.value}] {who}: {self.message}"
        if self.expected is not None or self.actual is not None:
            line += f" (expected: {self.expected!r}, found: {self.actual!r})"
        return line
