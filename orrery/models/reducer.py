"""Command reducer: (state, command) -> (next state, events).

Pure and total. Rejected commands return the input state unchanged together
with an event carrying a ``reason``; nothing here raises for a command that
is well-typed but semantically invalid. Parent pointers and child lists are
only ever changed together, by the helpers in this module.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Iterable, Mapping

from .bodies import RING_BEARERS, Asteroid, Body, LagrangePoint, PlanetaryRing, read_only_fields
from .commands import (
    AddBody,
    AddGroup,
    AddNebula,
    AddProtoplanetaryDisk,
    AddSmallBodyField,
    AddToGroup,
    AttachBody,
    Command,
    DetachBody,
    MoveToGroup,
    RemoveBody,
    RemoveFromGroup,
    RemoveGroup,
    RemoveNebula,
    RemoveProtoplanetaryDisk,
    RemoveRing,
    RemoveSmallBodyField,
    ReplaceSnapshot,
    SetBelts,
    SetNebulae,
    SetProtoplanetaryDisks,
    SetSmallBodyFields,
    Tick,
    UpdateBody,
    UpdateGroup,
    UpdateNebula,
    UpdateProtoplanetaryDisk,
    UpdateRing,
    UpdateSmallBodyField,
)
from .entities import STRUCTURAL_GROUP_FIELDS, Group, GroupChild, GroupChildType
from .events import DomainEvent, EventType, RejectionReason, event, rejection
from .invariants import (
    collect_descendants,
    lagrange_reference_violations,
    payload_violations,
    would_create_cycle,
    would_create_group_cycle,
)
from .universe import UniverseState


@dataclass(frozen=True)
class CommandResult:
    next_state: UniverseState
    events: tuple[DomainEvent, ...]

    @property
    def rejected(self) -> bool:
        return any(e.is_rejection for e in self.events)


def apply_command(state: UniverseState, command: Command) -> CommandResult:
    """Apply one command. The input state is never modified."""
    handler = _HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"Unsupported command: {type(command).__name__}")
    return handler(state, command)


def apply_commands(state: UniverseState, commands: Iterable[Command]) -> CommandResult:
    """Apply commands one after another, each against the previous result."""
    events: list[DomainEvent] = []
    for command in commands:
        result = apply_command(state, command)
        state = result.next_state
        events.extend(result.events)
    return CommandResult(state, tuple(events))


def default_ring_for(body: Body) -> PlanetaryRing:
    """The ring UpdateRing starts from when the body has none."""
    return PlanetaryRing(
        inner_radius_multiplier=1.5,
        outer_radius_multiplier=3.0,
        thickness=body.radius * 0.1,
        opacity=0.6,
        albedo=0.8,
        color=body.color,
        density=0.6,
    )


def _ok(state: UniverseState, *events: DomainEvent) -> CommandResult:
    return CommandResult(state, events)


def _split_patch(patch: Mapping[str, Any], allowed: Iterable[str],
                 locked: frozenset[str] = frozenset()) -> tuple[dict[str, Any], list[str]]:
    """Separate a patch into applicable fields and ignored keys."""
    allowed = set(allowed)
    applied = {k: v for k, v in patch.items() if k in allowed and k not in locked}
    ignored = sorted(k for k in patch if k not in applied)
    return applied, ignored


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

def _tick(state: UniverseState, cmd: Tick) -> CommandResult:
    time = state.simulation_time + cmd.dt
    return _ok(replace(state, simulation_time=time), event(EventType.TICKED, dt=cmd.dt, simulationTime=time))


# ---------------------------------------------------------------------------
# Body hierarchy
# ---------------------------------------------------------------------------

def _unlink_from_parent(bodies: dict[str, Body], child: Body) -> None:
    parent = bodies.get(child.parent_id) if child.parent_id is not None else None
    if parent is not None:
        bodies[parent.id] = replace(parent, children=tuple(c for c in parent.children if c != child.id))


def _prune_systems(groups: Mapping[str, Group], system_ids: set[str]) -> Mapping[str, Group]:
    """Drop system references to ``system_ids`` from every group."""
    changed = {
        gid: replace(g, children=tuple(
            c for c in g.children if not (c.type == GroupChildType.SYSTEM and c.id in system_ids)
        ))
        for gid, g in groups.items()
        if any(c.type == GroupChildType.SYSTEM and c.id in system_ids for c in g.children)
    }
    if not changed:
        return groups
    return {**groups, **changed}


def _add_body(state: UniverseState, cmd: AddBody) -> CommandResult:
    if cmd.id in state.bodies:
        return _ok(state, rejection(EventType.ADD_BODY_FAILED, RejectionReason.DUPLICATE, id=cmd.id))

    body = replace(cmd.body, id=cmd.id, children=())
    parent_id = body.parent_id
    if parent_id is not None and parent_id not in state.bodies:
        return _ok(state, rejection(EventType.PARENT_NOT_FOUND, RejectionReason.NOT_FOUND,
                                    id=cmd.id, parentId=parent_id))

    problems = payload_violations(body) + lagrange_reference_violations(body, state.bodies)
    if problems:
        return _ok(state, rejection(EventType.ADD_BODY_FAILED, RejectionReason.INVALID,
                                    id=cmd.id, problems=problems))

    bodies = dict(state.bodies)
    bodies[cmd.id] = body
    roots = state.root_body_ids
    if parent_id is None:
        roots = roots + (cmd.id,)
    else:
        parent = bodies[parent_id]
        bodies[parent_id] = replace(parent, children=parent.children + (cmd.id,))

    return _ok(
        replace(state, bodies=bodies, root_body_ids=roots),
        event(EventType.BODY_ADDED, id=cmd.id, bodyType=body.body_type.value, parentId=parent_id),
    )


def _update_body(state: UniverseState, cmd: UpdateBody) -> CommandResult:
    body = state.bodies.get(cmd.id)
    if body is None:
        return _ok(state, rejection(EventType.BODY_NOT_FOUND, RejectionReason.NOT_FOUND, id=cmd.id))

    applied, ignored = _split_patch(cmd.patch, body.field_names(), read_only_fields(body))
    if not applied:
        return _ok(state, event(EventType.BODY_UPDATED, id=cmd.id, fields=[], ignored=ignored))

    updated = replace(body, **applied)
    problems = payload_violations(updated) + lagrange_reference_violations(updated, state.bodies)
    if problems:
        return _ok(state, rejection(EventType.UPDATE_BODY_FAILED, RejectionReason.INVALID,
                                    id=cmd.id, problems=problems))

    bodies = {**state.bodies, cmd.id: updated}
    return _ok(
        replace(state, bodies=bodies),
        event(EventType.BODY_UPDATED, id=cmd.id, fields=sorted(applied), ignored=ignored),
    )


def _removal_closure(body_id: str, bodies: Mapping[str, Body]) -> list[str]:
    """``body_id``, its subtree, and every Lagrange marker left without a reference body.

    Markers take their own subtrees (Trojans) with them, which can orphan
    further markers, so this repeats until nothing new is found.
    """
    removed = collect_descendants(body_id, bodies)
    removed_set = set(removed)
    while True:
        orphans = [
            bid for bid, b in bodies.items()
            if bid not in removed_set and isinstance(b, LagrangePoint)
            and (b.lagrange.primary_id in removed_set or b.lagrange.secondary_id in removed_set)
        ]
        if not orphans:
            return removed
        for marker_id in orphans:
            for bid in collect_descendants(marker_id, bodies):
                if bid not in removed_set:
                    removed.append(bid)
                    removed_set.add(bid)


def _remove_body(state: UniverseState, cmd: RemoveBody) -> CommandResult:
    body = state.bodies.get(cmd.id)
    if body is None:
        return _ok(state, rejection(EventType.BODY_NOT_FOUND, RejectionReason.NOT_FOUND, id=cmd.id))

    removed = _removal_closure(cmd.id, state.bodies)
    removed_set = set(removed)
    bodies = {bid: b for bid, b in state.bodies.items() if bid not in removed_set}
    for bid in removed:
        gone = state.bodies[bid]
        if gone.parent_id not in removed_set:
            _unlink_from_parent(bodies, gone)
    for bid, b in list(bodies.items()):
        if isinstance(b, Asteroid) and b.lagrange_host_id in removed_set:
            bodies[bid] = replace(b, lagrange_host_id=None)
    roots = tuple(r for r in state.root_body_ids if r not in removed_set)
    groups = _prune_systems(state.groups, removed_set)

    return _ok(
        replace(state, bodies=bodies, root_body_ids=roots, groups=groups),
        event(EventType.BODY_REMOVED, id=cmd.id, removedIds=removed),
    )


def _attach_body(state: UniverseState, cmd: AttachBody) -> CommandResult:
    child = state.bodies.get(cmd.child_id)
    parent = state.bodies.get(cmd.parent_id)
    if child is None or parent is None:
        missing = [i for i, b in ((cmd.child_id, child), (cmd.parent_id, parent)) if b is None]
        return _ok(state, rejection(EventType.ATTACH_FAILED, RejectionReason.NOT_FOUND,
                                    childId=cmd.child_id, parentId=cmd.parent_id, missing=missing))
    if isinstance(child, LagrangePoint):
        return _ok(state, rejection(EventType.ATTACH_FAILED, RejectionReason.UNSUPPORTED,
                                    childId=cmd.child_id, parentId=cmd.parent_id))
    if would_create_cycle(cmd.child_id, cmd.parent_id, state.bodies):
        return _ok(state, rejection(EventType.ATTACH_FAILED, RejectionReason.CYCLE,
                                    childId=cmd.child_id, parentId=cmd.parent_id))
    if child.parent_id == cmd.parent_id:
        return _ok(state, event(EventType.BODY_ATTACHED, childId=cmd.child_id,
                                parentId=cmd.parent_id, previousParentId=cmd.parent_id))

    bodies = dict(state.bodies)
    _unlink_from_parent(bodies, child)
    parent = bodies[cmd.parent_id]
    bodies[cmd.parent_id] = replace(parent, children=parent.children + (cmd.child_id,))
    bodies[cmd.child_id] = replace(child, parent_id=cmd.parent_id)

    roots = state.root_body_ids
    groups = state.groups
    if child.parent_id is None:
        roots = tuple(r for r in roots if r != cmd.child_id)
        groups = _prune_systems(groups, {cmd.child_id})

    return _ok(
        replace(state, bodies=bodies, root_body_ids=roots, groups=groups),
        event(EventType.BODY_ATTACHED, childId=cmd.child_id, parentId=cmd.parent_id,
              previousParentId=child.parent_id),
    )


def _detach_body(state: UniverseState, cmd: DetachBody) -> CommandResult:
    child = state.bodies.get(cmd.child_id)
    if child is None:
        return _ok(state, rejection(EventType.DETACH_FAILED, RejectionReason.NOT_FOUND, childId=cmd.child_id))
    if isinstance(child, LagrangePoint):
        return _ok(state, rejection(EventType.DETACH_FAILED, RejectionReason.UNSUPPORTED, childId=cmd.child_id))
    if child.parent_id is None:
        return _ok(state, rejection(EventType.DETACH_FAILED, RejectionReason.NOT_ATTACHED, childId=cmd.child_id))

    bodies = dict(state.bodies)
    _unlink_from_parent(bodies, child)
    bodies[cmd.child_id] = replace(child, parent_id=None, orbital_distance=0.0)

    return _ok(
        replace(state, bodies=bodies, root_body_ids=state.root_body_ids + (cmd.child_id,)),
        event(EventType.BODY_DETACHED, childId=cmd.child_id, previousParentId=child.parent_id),
    )


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------

def _move_child(groups: Mapping[str, Group], root_group_ids: tuple[str, ...], child_id: str,
                child_type: GroupChildType, target_id: str | None) -> tuple[dict[str, Group], tuple[str, ...]]:
    """Take a child out of whichever group holds it and put it in ``target_id``."""
    groups = dict(groups)
    for gid, g in list(groups.items()):
        if g.has_child(child_id, child_type):
            groups[gid] = replace(g, children=tuple(
                c for c in g.children if not (c.id == child_id and c.type == child_type)
            ))

    roots = list(root_group_ids)
    if child_type == GroupChildType.GROUP:
        roots = [r for r in roots if r != child_id]
        groups[child_id] = replace(groups[child_id], parent_group_id=target_id)
        if target_id is None:
            roots.append(child_id)

    if target_id is not None:
        target = groups[target_id]
        groups[target_id] = replace(target, children=target.children + (GroupChild(id=child_id, type=child_type),))
    return groups, tuple(roots)


def _check_group_child(state: UniverseState, child_id: str, child_type: GroupChildType,
                       failed: EventType) -> DomainEvent | None:
    """Rejection event if the child cannot be placed in a group at all."""
    if child_type == GroupChildType.GROUP:
        if child_id not in state.groups:
            return rejection(EventType.GROUP_NOT_FOUND, RejectionReason.NOT_FOUND, id=child_id)
        return None
    body = state.bodies.get(child_id)
    if body is None:
        return rejection(failed, RejectionReason.NOT_FOUND, childId=child_id)
    if body.parent_id is not None:
        return rejection(failed, RejectionReason.INVALID, childId=child_id,
                         problems=["only root bodies can be grouped as systems"])
    return None


def _add_group(state: UniverseState, cmd: AddGroup) -> CommandResult:
    if cmd.id in state.groups:
        return _ok(state, rejection(EventType.ADD_GROUP_FAILED, RejectionReason.DUPLICATE, id=cmd.id))

    group = replace(cmd.group, id=cmd.id, children=())
    parent_id = group.parent_group_id
    if parent_id is not None and parent_id not in state.groups:
        return _ok(state, rejection(EventType.GROUP_NOT_FOUND, RejectionReason.NOT_FOUND,
                                    id=parent_id, childId=cmd.id))

    groups = dict(state.groups)
    groups[cmd.id] = group
    roots = state.root_group_ids
    if parent_id is None:
        roots = roots + (cmd.id,)
    else:
        parent = groups[parent_id]
        groups[parent_id] = replace(parent, children=parent.children + (GroupChild(id=cmd.id, type=GroupChildType.GROUP),))

    return _ok(
        replace(state, groups=groups, root_group_ids=roots),
        event(EventType.GROUP_ADDED, id=cmd.id, parentGroupId=parent_id),
    )


def _update_group(state: UniverseState, cmd: UpdateGroup) -> CommandResult:
    group = state.groups.get(cmd.id)
    if group is None:
        return _ok(state, rejection(EventType.GROUP_NOT_FOUND, RejectionReason.NOT_FOUND, id=cmd.id))

    applied, ignored = _split_patch(cmd.patch, (f.name for f in fields(Group)), STRUCTURAL_GROUP_FIELDS)
    groups = {**state.groups, cmd.id: replace(group, **applied)} if applied else state.groups
    return _ok(
        replace(state, groups=groups) if applied else state,
        event(EventType.GROUP_UPDATED, id=cmd.id, fields=sorted(applied), ignored=ignored),
    )


def _remove_group(state: UniverseState, cmd: RemoveGroup) -> CommandResult:
    group = state.groups.get(cmd.id)
    if group is None:
        return _ok(state, rejection(EventType.GROUP_NOT_FOUND, RejectionReason.NOT_FOUND, id=cmd.id))

    groups = dict(state.groups)
    del groups[cmd.id]
    parent_id = group.parent_group_id
    promoted = [c.id for c in group.children if c.type == GroupChildType.GROUP and c.id in groups]
    released = [c.id for c in group.children if c.type == GroupChildType.SYSTEM]

    for gid in promoted:
        groups[gid] = replace(groups[gid], parent_group_id=parent_id)

    roots = tuple(r for r in state.root_group_ids if r != cmd.id)
    if parent_id is not None and parent_id in groups:
        parent = groups[parent_id]
        kept = tuple(c for c in parent.children if not (c.type == GroupChildType.GROUP and c.id == cmd.id))
        groups[parent_id] = replace(
            parent, children=kept + tuple(GroupChild(id=g, type=GroupChildType.GROUP) for g in promoted),
        )
    else:
        roots = roots + tuple(promoted)

    return _ok(
        replace(state, groups=groups, root_group_ids=roots),
        event(EventType.GROUP_REMOVED, id=cmd.id, promotedGroupIds=promoted, releasedSystemIds=released),
    )


def _add_to_group(state: UniverseState, cmd: AddToGroup) -> CommandResult:
    group = state.groups.get(cmd.group_id)
    child = cmd.child
    if group is None:
        return _ok(state, rejection(EventType.GROUP_NOT_FOUND, RejectionReason.NOT_FOUND, id=cmd.group_id))
    if group.has_child(child.id, child.type):
        return _ok(state, rejection(EventType.CHILD_ALREADY_IN_GROUP, RejectionReason.DUPLICATE,
                                    groupId=cmd.group_id, childId=child.id))
    problem = _check_group_child(state, child.id, child.type, EventType.ADD_TO_GROUP_FAILED)
    if problem is not None:
        return _ok(state, problem)
    if child.type == GroupChildType.GROUP and would_create_group_cycle(child.id, cmd.group_id, state.groups):
        return _ok(state, rejection(EventType.ADD_TO_GROUP_FAILED, RejectionReason.CYCLE,
                                    groupId=cmd.group_id, childId=child.id))

    groups, roots = _move_child(state.groups, state.root_group_ids, child.id, child.type, cmd.group_id)
    return _ok(
        replace(state, groups=groups, root_group_ids=roots),
        event(EventType.CHILD_ADDED_TO_GROUP, groupId=cmd.group_id, childId=child.id, childType=child.type.value),
    )


def _remove_from_group(state: UniverseState, cmd: RemoveFromGroup) -> CommandResult:
    group = state.groups.get(cmd.group_id)
    if group is None:
        return _ok(state, rejection(EventType.GROUP_NOT_FOUND, RejectionReason.NOT_FOUND, id=cmd.group_id))
    child = next((c for c in group.children
                  if c.id == cmd.child_id and cmd.child_type in (None, c.type)), None)
    if child is None:
        return _ok(state, rejection(EventType.CHILD_NOT_IN_GROUP, RejectionReason.NOT_FOUND,
                                    groupId=cmd.group_id, childId=cmd.child_id))

    groups, roots = _move_child(state.groups, state.root_group_ids, child.id, child.type, None)
    return _ok(
        replace(state, groups=groups, root_group_ids=roots),
        event(EventType.CHILD_REMOVED_FROM_GROUP, groupId=cmd.group_id, childId=cmd.child_id,
              childType=child.type.value),
    )


def _move_to_group(state: UniverseState, cmd: MoveToGroup) -> CommandResult:
    problem = _check_group_child(state, cmd.child_id, cmd.child_type, EventType.MOVE_TO_GROUP_FAILED)
    if problem is not None:
        return _ok(state, problem)
    target = cmd.target_group_id
    if target is not None:
        if target not in state.groups:
            return _ok(state, rejection(EventType.GROUP_NOT_FOUND, RejectionReason.NOT_FOUND, id=target))
        if cmd.child_type == GroupChildType.GROUP and would_create_group_cycle(cmd.child_id, target, state.groups):
            return _ok(state, rejection(EventType.MOVE_TO_GROUP_FAILED, RejectionReason.CYCLE,
                                        childId=cmd.child_id, targetGroupId=target))

    groups, roots = _move_child(state.groups, state.root_group_ids, cmd.child_id, cmd.child_type, target)
    return _ok(
        replace(state, groups=groups, root_group_ids=roots),
        event(EventType.MOVED_TO_GROUP, childId=cmd.child_id, childType=cmd.child_type.value,
              targetGroupId=target),
    )


# ---------------------------------------------------------------------------
# Keyed visual entities (belts, small-body fields, disks, nebulae)
# ---------------------------------------------------------------------------

def _set_collection(state: UniverseState, attr: str, values: Mapping, done: EventType) -> CommandResult:
    return _ok(replace(state, **{attr: dict(values)}), event(done, count=len(values)))


def _add_entity(state: UniverseState, attr: str, entity: Any, done: EventType, exists: EventType) -> CommandResult:
    collection = getattr(state, attr)
    if entity.id in collection:
        return _ok(state, rejection(exists, RejectionReason.DUPLICATE, id=entity.id))
    return _ok(replace(state, **{attr: {**collection, entity.id: entity}}), event(done, id=entity.id))


def _update_entity(state: UniverseState, attr: str, entity_id: str, patch: Mapping[str, Any],
                   done: EventType, missing: EventType) -> CommandResult:
    collection = getattr(state, attr)
    entity = collection.get(entity_id)
    if entity is None:
        return _ok(state, rejection(missing, RejectionReason.NOT_FOUND, id=entity_id))
    applied, ignored = _split_patch(patch, (f.name for f in fields(entity)), frozenset({"id"}))
    if not applied:
        return _ok(state, event(done, id=entity_id, fields=[], ignored=ignored))
    updated = {**collection, entity_id: replace(entity, **applied)}
    return _ok(replace(state, **{attr: updated}), event(done, id=entity_id, fields=sorted(applied), ignored=ignored))


def _remove_entity(state: UniverseState, attr: str, entity_id: str,
                   done: EventType, missing: EventType) -> CommandResult:
    collection = getattr(state, attr)
    if entity_id not in collection:
        return _ok(state, rejection(missing, RejectionReason.NOT_FOUND, id=entity_id))
    remaining = {k: v for k, v in collection.items() if k != entity_id}
    return _ok(replace(state, **{attr: remaining}), event(done, id=entity_id))


def _set_belts(state: UniverseState, cmd: SetBelts) -> CommandResult:
    return _set_collection(state, "belts", cmd.belts, EventType.BELTS_SET)


def _set_small_body_fields(state: UniverseState, cmd: SetSmallBodyFields) -> CommandResult:
    return _set_collection(state, "small_body_fields", cmd.fields, EventType.SMALL_BODY_FIELDS_SET)


def _add_small_body_field(state: UniverseState, cmd: AddSmallBodyField) -> CommandResult:
    return _add_entity(state, "small_body_fields", cmd.small_body_field,
                       EventType.SMALL_BODY_FIELD_ADDED, EventType.SMALL_BODY_FIELD_EXISTS)


def _update_small_body_field(state: UniverseState, cmd: UpdateSmallBodyField) -> CommandResult:
    return _update_entity(state, "small_body_fields", cmd.id, cmd.patch,
                          EventType.SMALL_BODY_FIELD_UPDATED, EventType.SMALL_BODY_FIELD_NOT_FOUND)


def _remove_small_body_field(state: UniverseState, cmd: RemoveSmallBodyField) -> CommandResult:
    return _remove_entity(state, "small_body_fields", cmd.id,
                          EventType.SMALL_BODY_FIELD_REMOVED, EventType.SMALL_BODY_FIELD_NOT_FOUND)


def _set_protoplanetary_disks(state: UniverseState, cmd: SetProtoplanetaryDisks) -> CommandResult:
    return _set_collection(state, "protoplanetary_disks", cmd.disks, EventType.PROTOPLANETARY_DISKS_SET)


def _add_protoplanetary_disk(state: UniverseState, cmd: AddProtoplanetaryDisk) -> CommandResult:
    return _add_entity(state, "protoplanetary_disks", cmd.disk,
                       EventType.PROTOPLANETARY_DISK_ADDED, EventType.PROTOPLANETARY_DISK_EXISTS)


def _update_protoplanetary_disk(state: UniverseState, cmd: UpdateProtoplanetaryDisk) -> CommandResult:
    return _update_entity(state, "protoplanetary_disks", cmd.id, cmd.patch,
                          EventType.PROTOPLANETARY_DISK_UPDATED, EventType.PROTOPLANETARY_DISK_NOT_FOUND)


def _remove_protoplanetary_disk(state: UniverseState, cmd: RemoveProtoplanetaryDisk) -> CommandResult:
    return _remove_entity(state, "protoplanetary_disks", cmd.id,
                          EventType.PROTOPLANETARY_DISK_REMOVED, EventType.PROTOPLANETARY_DISK_NOT_FOUND)


def _set_nebulae(state: UniverseState, cmd: SetNebulae) -> CommandResult:
    return _set_collection(state, "nebulae", cmd.nebulae, EventType.NEBULAE_SET)


def _add_nebula(state: UniverseState, cmd: AddNebula) -> CommandResult:
    return _add_entity(state, "nebulae", cmd.nebula, EventType.NEBULA_ADDED, EventType.NEBULA_EXISTS)


def _update_nebula(state: UniverseState, cmd: UpdateNebula) -> CommandResult:
    return _update_entity(state, "nebulae", cmd.id, cmd.patch, EventType.NEBULA_UPDATED, EventType.NEBULA_NOT_FOUND)


def _remove_nebula(state: UniverseState, cmd: RemoveNebula) -> CommandResult:
    return _remove_entity(state, "nebulae", cmd.id, EventType.NEBULA_REMOVED, EventType.NEBULA_NOT_FOUND)


# ---------------------------------------------------------------------------
# Rings
# ---------------------------------------------------------------------------

def _update_ring(state: UniverseState, cmd: UpdateRing) -> CommandResult:
    body = state.bodies.get(cmd.body_id)
    if body is None:
        return _ok(state, rejection(EventType.BODY_NOT_FOUND, RejectionReason.NOT_FOUND, id=cmd.body_id))
    if not isinstance(body, RING_BEARERS):
        return _ok(state, rejection(EventType.RING_UNSUPPORTED, RejectionReason.UNSUPPORTED,
                                    id=cmd.body_id, bodyType=body.body_type.value))

    base = body.ring if body.ring is not None else default_ring_for(body)
    applied, ignored = _split_patch(cmd.patch, (f.name for f in fields(PlanetaryRing)))
    ring = replace(base, **applied)
    if ring.inner_radius_multiplier >= ring.outer_radius_multiplier:
        return _ok(state, rejection(EventType.UPDATE_RING_FAILED, RejectionReason.INVALID, id=cmd.body_id,
                                    problems=["ring inner radius must be below outer radius"]))

    bodies = {**state.bodies, cmd.body_id: replace(body, ring=ring)}
    return _ok(
        replace(state, bodies=bodies),
        event(EventType.RING_UPDATED, id=cmd.body_id, created=body.ring is None,
              fields=sorted(applied), ignored=ignored),
    )


def _remove_ring(state: UniverseState, cmd: RemoveRing) -> CommandResult:
    body = state.bodies.get(cmd.body_id)
    if body is None:
        return _ok(state, rejection(EventType.BODY_NOT_FOUND, RejectionReason.NOT_FOUND, id=cmd.body_id))
    if not isinstance(body, RING_BEARERS) or body.ring is None:
        return _ok(state, rejection(EventType.RING_NOT_FOUND, RejectionReason.NOT_FOUND, id=cmd.body_id))

    bodies = {**state.bodies, cmd.body_id: replace(body, ring=None)}
    return _ok(replace(state, bodies=bodies), event(EventType.RING_REMOVED, id=cmd.body_id))


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

def _replace_snapshot(state: UniverseState, cmd: ReplaceSnapshot) -> CommandResult:
    next_state = replace(cmd.snapshot, simulation_time=state.simulation_time)
    return _ok(
        next_state,
        event(EventType.SNAPSHOT_REPLACED, bodies=len(next_state.bodies), groups=len(next_state.groups)),
    )


_HANDLERS: dict[type[Command], Callable[[UniverseState, Any], CommandResult]] = {
    Tick: _tick,
    AddBody: _add_body,
    UpdateBody: _update_body,
    RemoveBody: _remove_body,
    AttachBody: _attach_body,
    DetachBody: _detach_body,
    AddGroup: _add_group,
    UpdateGroup: _update_group,
    RemoveGroup: _remove_group,
    AddToGroup: _add_to_group,
    RemoveFromGroup: _remove_from_group,
    MoveToGroup: _move_to_group,
    SetBelts: _set_belts,
    SetSmallBodyFields: _set_small_body_fields,
    AddSmallBodyField: _add_small_body_field,
    UpdateSmallBodyField: _update_small_body_field,
    RemoveSmallBodyField: _remove_small_body_field,
    SetProtoplanetaryDisks: _set_protoplanetary_disks,
    AddProtoplanetaryDisk: _add_protoplanetary_disk,
    UpdateProtoplanetaryDisk: _update_protoplanetary_disk,
    RemoveProtoplanetaryDisk: _remove_protoplanetary_disk,
    SetNebulae: _set_nebulae,
    AddNebula: _add_nebula,
    UpdateNebula: _update_nebula,
    RemoveNebula: _remove_nebula,
    UpdateRing: _update_ring,
    RemoveRing: _remove_ring,
    ReplaceSnapshot: _replace_snapshot,
}
