"""SkillTree parser — turn one SKILL.md document into a SkillRecord.

A skill document looks like::

    ---
    name: sentry-python-sdk
    description: Full Sentry SDK setup for Python.
    category: sdk-setup
    parent: sentry-sdk-setup
    disable-model-invocation: true
    ---

    > [All Skills](../../SKILL_TREE.md) > SDK Setup > sentry-sdk-setup > sentry-python-sdk

    ...

The header is YAML between two ``---`` lines. The first non-blank body line
is the breadcrumb. Router documents also carry a table whose rows start
with a backticked skill id; those rows are the router's declared children.
"""

from __future__ import annotations

import re
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError

from .errors import ErrorKind, ParseError, SchemaError
from .models import Role, RouteEntry, SkillRecord

HEADER_MARKER = "---"
FENCE = re.compile(r"^\s*(```|~~~)")
ROUTE_ROW = re.compile(
    r"^\s*\|\s*"
    r"(?:\[\s*`(?P<linked>[^`]+)`\s*\]\((?P<path>[^)\s]*)\)|`(?P<bare>[^`]+)`)"
    r"\s*\|(?P<rest>.*)$"
)


class _DuplicateKeyError(yaml.YAMLError):
    def __init__(self, key: Any, mark: Optional[yaml.Mark]) -> None:
        super().__init__(f"duplicate key {key!r}")
        self.key = key
        self.mark = mark


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that refuses repeated mapping keys instead of overwriting."""

    def construct_mapping(self, node, deep=False):
        seen: set = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            try:
                duplicate = key in seen
            except TypeError:
                continue
            if duplicate:
                raise _DuplicateKeyError(key, key_node.start_mark)
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


class SkillHeader(BaseModel):
    """Strict schema for the recognized header fields.

    Unrecognized fields (tool permissions, licenses, ...) are kept as extras.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: StrictStr
    description: Optional[StrictStr] = None
    category: Optional[StrictStr] = None
    parent: Optional[StrictStr] = None
    role: Role = Role.NONE
    disable_model_invocation: StrictBool = Field(default=False, alias="disable-model-invocation")


def split_document(text: str, path: str = "") -> tuple[str, list[str]]:
    """Split a document into its raw header and body lines.

    Raises:
        ParseError: If the opening or closing marker is missing.
    """
    lines = text.lstrip("\ufeff").splitlines()
    if not lines or lines[0].strip() != HEADER_MARKER:
        raise ParseError(
            ErrorKind.UNTERMINATED_HEADER,
            f"document must start with a '{HEADER_MARKER}' header line",
            path=path,
        )
    for idx in range(1, len(lines)):
        if lines[idx].strip() == HEADER_MARKER:
            return "\n".join(lines[1:idx]), lines[idx + 1:]
    raise ParseError(
        ErrorKind.UNTERMINATED_HEADER,
        f"header is missing its closing '{HEADER_MARKER}' line",
        path=path,
    )


def load_header(raw: str, path: str = "") -> dict[str, Any]:
    """Parse the YAML header into a mapping.

    Raises:
        ParseError: On duplicate keys, YAML syntax errors, or a non-mapping header.
    """
    try:
        data = yaml.load(raw, Loader=_UniqueKeyLoader)
    except _DuplicateKeyError as exc:
        line = f" (line {exc.mark.line + 2})" if exc.mark is not None else ""
        raise ParseError(
            ErrorKind.DUPLICATE_FIELD,
            f"header field '{exc.key}' is declared more than once{line}",
            path=path,
        ) from exc
    except yaml.YAMLError as exc:
        raise ParseError(ErrorKind.MALFORMED_HEADER, f"invalid YAML header: {exc}", path=path) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(
            ErrorKind.MALFORMED_HEADER,
            f"header must be a mapping of fields, got {type(data).__name__}",
            path=path,
        )
    bad_keys = [key for key in data if not isinstance(key, str)]
    if bad_keys:
        raise ParseError(
            ErrorKind.MALFORMED_HEADER,
            f"header keys must be strings, got {bad_keys[0]!r}",
            path=path,
        )
    return data


def validate_header(data: dict[str, Any], path: str = "") -> SkillHeader:
    """Apply the strict schema to a header mapping.

    Raises:
        SchemaError: MissingName, InvalidRole, or InvalidField.
    """
    name = data.get("name")
    if name is None or (isinstance(name, str) and not name.strip()):
        raise SchemaError(ErrorKind.MISSING_NAME, "header has no 'name' field", path=path)

    try:
        return SkillHeader.model_validate(data)
    except ValidationError as exc:
        problems = exc.errors()
        fields = [str(err["loc"][0]) if err["loc"] else "?" for err in problems]
        kind = ErrorKind.INVALID_ROLE if "role" in fields else ErrorKind.INVALID_FIELD
        if kind == ErrorKind.INVALID_ROLE:
            allowed = ", ".join(r.value for r in Role)
            message = f"role {data.get('role')!r} is not one of: {allowed}"
        else:
            message = "; ".join(
                f"field '{field}': {err['msg']}" for field, err in zip(fields, problems)
            )
        raise SchemaError(
            kind,
            message,
            skill_ids=[name] if isinstance(name, str) else [],
            path=path,
        ) from exc


def extract_breadcrumb(body: list[str]) -> Optional[str]:
    """Return the first non-blank body line, or None."""
    for line in body:
        if line.strip():
            return line.rstrip()
    return None


def extract_routes(body: list[str]) -> list[RouteEntry]:
    """Collect router table rows from a document body.

    Rows inside fenced code blocks are ignored.
    """
    routes: list[RouteEntry] = []
    in_fence = False
    for line in body:
        if FENCE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = ROUTE_ROW.match(line)
        if not match:
            continue
        target = (match.group("linked") or match.group("bare")).strip()
        cells = [c.strip() for c in match.group("rest").rstrip().rstrip("|").split("|")]
        description = next((c for c in cells if c), "")
        routes.append(RouteEntry(target=target, path=match.group("path") or "", description=description))
    return routes


def parse_skill_document(text: str, path: str) -> SkillRecord:
    """Parse a skill document.

    Args:
        text: Raw document text.
        path: Repo-relative path, recorded on the result and on errors.

    Returns:
        SkillRecord: The structural metadata of the skill.

    Raises:
        ParseError: If the header is missing, unterminated, or malformed.
        SchemaError: If a recognized field is missing or has the wrong shape.
    """
    raw_header, body = split_document(text, path)
    header = validate_header(load_header(raw_header, path), path)

    return SkillRecord(
        id=header.name.strip(),
        path=path,
        category=(header.category or "").strip() or None,
        parent=(header.parent or "").strip() or None,
        role=header.role,
        hidden=header.disable_model_invocation,
        description=(header.description or "").strip(),
        breadcrumb=extract_breadcrumb(body),
        routes=extract_routes(body),
        extra=dict(header.model_extra or {}),
    )
