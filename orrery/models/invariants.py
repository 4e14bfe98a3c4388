"""Structural checks over the body and group forests.

Pure predicates used by the reducer before any re-parenting, plus a full
consistency audit used by tests and the snapshot loader.
"""

from __future__ import annotations

from typing import Mapping

from .bodies import BlackHole, Body, Comet, LagrangePoint, Planet, RoguePlanet
from .entities import Group, GroupChildType
from .universe import UniverseState


# ---------------------------------------------------------------------------
# Body forest
# ---------------------------------------------------------------------------

def would_create_cycle(child_id: str, new_parent_id: str, bodies: Mapping[str, Body]) -> bool:
    """True if making ``new_parent_id`` the parent of ``child_id`` closes a loop.

    Walks the ancestor chain upward from the prospective parent.
    """
    if child_id == new_parent_id:
        return True
    seen: set[str] = set()
    current: str | None = new_parent_id
    while current is not None and current not in seen:
        if current == child_id:
            return True
        seen.add(current)
        body = bodies.get(current)
        current = body.parent_id if body is not None else None
    return False


def collect_descendants(body_id: str, bodies: Mapping[str, Body]) -> list[str]:
    """``body_id`` followed by every transitive child, depth first."""
    result: list[str] = []
    seen: set[str] = set()
    stack = [body_id]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        result.append(current)
        body = bodies.get(current)
        if body is not None:
            stack.extend(reversed(body.children))
    return result


def depth_of(body_id: str, bodies: Mapping[str, Body]) -> int:
    """1 for a root body, 2 for its children, and so on."""
    depth = 0
    seen: set[str] = set()
    current: str | None = body_id
    while current is not None and current not in seen:
        seen.add(current)
        depth += 1
        body = bodies.get(current)
        current = body.parent_id if body is not None else None
    return depth


def root_of(body_id: str, bodies: Mapping[str, Body]) -> str:
    current = body_id
    seen: set[str] = set()
    while current not in seen:
        seen.add(current)
        body = bodies.get(current)
        if body is None or body.parent_id is None:
            return current
        current = body.parent_id
    return current


# ---------------------------------------------------------------------------
# Group forest
# ---------------------------------------------------------------------------

def would_create_group_cycle(child_group_id: str, target_group_id: str,
                             groups: Mapping[str, Group]) -> bool:
    """True if nesting ``child_group_id`` inside ``target_group_id`` closes a loop."""
    if child_group_id == target_group_id:
        return True
    seen: set[str] = set()
    current: str | None = target_group_id
    while current is not None and current not in seen:
        if current == child_group_id:
            return True
        seen.add(current)
        group = groups.get(current)
        current = group.parent_group_id if group is not None else None
    return False


def collect_group_descendants(group_id: str, groups: Mapping[str, Group]) -> list[str]:
    """``group_id`` followed by every nested group, depth first."""
    result: list[str] = []
    seen: set[str] = set()
    stack = [group_id]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        result.append(current)
        group = groups.get(current)
        if group is not None:
            stack.extend(reversed(group.group_ids()))
    return result


# ---------------------------------------------------------------------------
# Variant payloads
# ---------------------------------------------------------------------------

def payload_violations(body: Body) -> list[str]:
    """Problems with the variant-specific data carried by ``body``."""
    problems: list[str] = []
    if isinstance(body, (Planet, RoguePlanet)) and body.ring is not None:
        ring = body.ring
        if ring.inner_radius_multiplier >= ring.outer_radius_multiplier:
            problems.append("ring inner radius must be below outer radius")
        if ring.inner_radius_multiplier <= 0:
            problems.append("ring inner radius must be positive")
    if isinstance(body, BlackHole):
        bh = body.black_hole
        if bh.accretion_inner_radius <= bh.shadow_radius:
            problems.append("accretion disk inner radius must exceed shadow radius")
        if bh.accretion_outer_radius <= bh.accretion_inner_radius:
            problems.append("accretion disk outer radius must exceed inner radius")
        if not 0.0 <= bh.spin <= 1.0:
            problems.append("black hole spin must be within [0, 1]")
    if isinstance(body, Comet):
        if body.comet.perihelion_distance > body.comet.aphelion_distance:
            problems.append("comet perihelion must not exceed aphelion")
    if isinstance(body, LagrangePoint):
        meta = body.lagrange
        if meta.primary_id == meta.secondary_id:
            problems.append("lagrange primary and secondary must differ")
        if meta.point_index not in (1, 2, 3, 4, 5):
            problems.append("lagrange point index must be 1-5")
    return problems


def lagrange_reference_violations(body: Body, bodies: Mapping[str, Body]) -> list[str]:
    if not isinstance(body, LagrangePoint):
        return []
    problems = []
    for ref in (body.lagrange.primary_id, body.lagrange.secondary_id):
        if ref not in bodies:
            problems.append(f"lagrange point references missing body {ref}")
    return problems


# ---------------------------------------------------------------------------
# Full audit
# ---------------------------------------------------------------------------

def forest_violations(state: UniverseState) -> list[str]:
    """Every inconsistency between parent pointers, child lists and root lists."""
    problems: list[str] = []
    bodies = state.bodies

    for body_id, body in bodies.items():
        if body.id != body_id:
            problems.append(f"body keyed {body_id} has id {body.id}")
        if body.parent_id is not None:
            parent = bodies.get(body.parent_id)
            if parent is None:
                problems.append(f"{body_id} has dangling parent {body.parent_id}")
            elif body_id not in parent.children:
                problems.append(f"{body_id} missing from children of {body.parent_id}")
            if body_id in _ancestors(body.parent_id, bodies):
                problems.append(f"{body_id} is its own ancestor")
        for child_id in body.children:
            child = bodies.get(child_id)
            if child is None or child.parent_id != body_id:
                problems.append(f"{body_id} lists {child_id} as a child but it is not")
        if len(set(body.children)) != len(body.children):
            problems.append(f"{body_id} has duplicate children")

    roots = [bid for bid, b in bodies.items() if b.parent_id is None]
    if sorted(roots) != sorted(state.root_body_ids):
        problems.append("root body list does not match parentless bodies")
    if len(set(state.root_body_ids)) != len(state.root_body_ids):
        problems.append("root body list has duplicates")

    problems.extend(_payload_problems(state))
    problems.extend(_group_problems(state))
    return problems


def _ancestors(body_id: str, bodies: Mapping[str, Body]) -> set[str]:
    found: set[str] = set()
    current: str | None = body_id
    while current is not None and current not in found:
        found.add(current)
        body = bodies.get(current)
        current = body.parent_id if body is not None else None
    return found


def _payload_problems(state: UniverseState) -> list[str]:
    problems = []
    for body in state.bodies.values():
        problems.extend(f"{body.id}: {p}" for p in payload_violations(body))
        problems.extend(f"{body.id}: {p}" for p in lagrange_reference_violations(body, state.bodies))
    return problems


def _group_problems(state: UniverseState) -> list[str]:
    problems: list[str] = []
    groups = state.groups
    holders: dict[tuple[str, GroupChildType], str] = {}

    for group_id, group in groups.items():
        if group.parent_group_id is not None:
            parent = groups.get(group.parent_group_id)
            if parent is None:
                problems.append(f"group {group_id} has dangling parent {group.parent_group_id}")
            elif not parent.has_child(group_id, GroupChildType.GROUP):
                problems.append(f"group {group_id} missing from children of {group.parent_group_id}")
            if group_id in _group_ancestors(group.parent_group_id, groups):
                problems.append(f"group {group_id} is its own ancestor")
        for child in group.children:
            key = (child.id, child.type)
            if key in holders:
                problems.append(f"{child.type.value} {child.id} held by {holders[key]} and {group_id}")
            holders[key] = group_id
            if child.type == GroupChildType.GROUP:
                sub = groups.get(child.id)
                if sub is None or sub.parent_group_id != group_id:
                    problems.append(f"group {group_id} lists {child.id} but it is not nested there")
            elif child.id not in state.bodies:
                problems.append(f"group {group_id} references missing system {child.id}")

    roots = [gid for gid, g in groups.items() if g.parent_group_id is None]
    if sorted(roots) != sorted(state.root_group_ids):
        problems.append("root group list does not match parentless groups")
    return problems


def _group_ancestors(group_id: str, groups: Mapping[str, Group]) -> set[str]:
    found: set[str] = set()
    current: str | None = group_id
    while current is not None and current not in found:
        found.add(current)
        group = groups.get(current)
        current = group.parent_group_id if group is not None else None
    return found
