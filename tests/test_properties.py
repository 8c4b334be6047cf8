"""Property-based tests over randomly generated skill graphs."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from skilltree.errors import ErrorKind
from skilltree.models import Role, RouteEntry, SkillRecord
from skilltree.registry import SkillRegistry
from skilltree.renderer import render_tree
from skilltree.validator import validate

IDS = [f"skill-{i}" for i in range(8)]


@st.composite
def skill_graphs(draw) -> list[SkillRecord]:
    """Random graphs: any parent (including missing ones), any role, any table."""
    count = draw(st.integers(min_value=1, max_value=len(IDS)))
    ids = IDS[:count]
    records = []
    for skill_id in ids:
        parent = draw(st.one_of(st.none(), st.sampled_from(ids + ["ghost"])))
        role = draw(st.sampled_from([Role.NONE, Role.ROUTER]))
        targets = draw(st.lists(st.sampled_from(ids), unique=True, max_size=3))
        records.append(
            SkillRecord(
                id=skill_id,
                path=f"skills/{skill_id}/SKILL.md",
                category=draw(st.sampled_from(["alpha", "beta"])),
                parent=parent,
                role=role,
                description=f"{skill_id} does things.",
                routes=[RouteEntry(target=t) for t in targets],
            )
        )
    return records


def flagged(registry: SkillRegistry, *kinds: ErrorKind) -> set[str]:
    return {sid for e in registry.errors if e.kind in kinds for sid in e.skill_ids}


@settings(max_examples=200)
@given(skill_graphs())
def test_parent_always_resolves_to_router(records):
    """Exactly the skills whose parent is missing or not a router are flagged."""
    registry = SkillRegistry.build(records)
    by_id = {r.id: r for r in records}
    bad = {
        r.id
        for r in records
        if r.parent is not None and (r.parent not in by_id or by_id[r.parent].role != Role.ROUTER)
    }
    assert flagged(registry, ErrorKind.DANGLING_PARENT, ErrorKind.PARENT_NOT_ROUTER) == bad


@settings(max_examples=200)
@given(skill_graphs())
def test_cycles_detected_with_real_paths(records):
    registry = SkillRegistry.build(records)
    by_id = {r.id: r for r in records}

    on_cycle = set()
    for record in records:
        seen = []
        node = record.id
        while node in by_id and node not in seen:
            seen.append(node)
            node = by_id[node].parent
        if node in seen:
            on_cycle.update(seen[seen.index(node):])

    assert flagged(registry, ErrorKind.CYCLE) == on_cycle
    for error in registry.errors:
        if error.kind != ErrorKind.CYCLE:
            continue
        path = error.message.split(": ", 1)[1].split(" -> ")
        assert path[0] == path[-1]
        for child, parent in zip(path, path[1:]):
            assert by_id[child].parent == parent


@settings(max_examples=200)
@given(skill_graphs())
def test_symmetry_one_diagnostic_per_extra_id(records):
    registry = SkillRegistry.build(records)
    report = validate(registry)
    expected = 0
    for router in registry.routers:
        declared = {e.target for e in router.routes}
        derived = {r.id for r in records if r.parent == router.id}
        expected += len(declared ^ derived)
    found = [
        d for d in report.diagnostics
        if d.kind in (ErrorKind.STALE_ROUTER_ENTRY, ErrorKind.MISSING_ROUTER_ENTRY)
    ]
    assert len(found) == expected


@settings(max_examples=100)
@given(st.data())
def test_render_ignores_enumeration_order(data):
    records = data.draw(skill_graphs())
    shuffled = data.draw(st.permutations(records))
    assert render_tree(SkillRegistry.build(shuffled)) == render_tree(SkillRegistry.build(records))
