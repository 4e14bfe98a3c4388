"""Commands: the closed set of transitions a universe accepts.

Each command is a frozen value. ``command_from_dict`` and ``command_to_dict``
translate to and from the camelCase JSON shape used on the wire.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping

from ..exceptions import CommandFormatError, SnapshotFormatError
from . import save
from .bodies import Body
from .entities import (
    AsteroidBelt,
    Group,
    GroupChild,
    GroupChildType,
    NebulaRegion,
    ProtoplanetaryDisk,
    SmallBodyField,
)
from .universe import UniverseState


@dataclass(frozen=True)
class Command:
    type: ClassVar[str]


# ── Time ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Tick(Command):
    type: ClassVar[str] = "tick"
    dt: float


# ── Bodies ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AddBody(Command):
    """Insert ``body`` under ``id``; its ``children`` are always reset to empty."""

    type: ClassVar[str] = "addBody"
    id: str
    body: Body


@dataclass(frozen=True)
class UpdateBody(Command):
    type: ClassVar[str] = "updateBody"
    id: str
    patch: Mapping[str, Any]


@dataclass(frozen=True)
class RemoveBody(Command):
    type: ClassVar[str] = "removeBody"
    id: str


@dataclass(frozen=True)
class AttachBody(Command):
    type: ClassVar[str] = "attachBody"
    child_id: str
    parent_id: str


@dataclass(frozen=True)
class DetachBody(Command):
    type: ClassVar[str] = "detachBody"
    child_id: str


# ── Groups ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AddGroup(Command):
    """Insert ``group``; children start empty and are added with AddToGroup."""

    type: ClassVar[str] = "addGroup"
    id: str
    group: Group


@dataclass(frozen=True)
class UpdateGroup(Command):
    type: ClassVar[str] = "updateGroup"
    id: str
    patch: Mapping[str, Any]


@dataclass(frozen=True)
class RemoveGroup(Command):
    type: ClassVar[str] = "removeGroup"
    id: str


@dataclass(frozen=True)
class AddToGroup(Command):
    type: ClassVar[str] = "addToGroup"
    group_id: str
    child: GroupChild


@dataclass(frozen=True)
class RemoveFromGroup(Command):
    """Take a child out of a group. Without ``child_type`` the first child with that id goes."""

    type: ClassVar[str] = "removeFromGroup"
    group_id: str
    child_id: str
    child_type: GroupChildType | None = None


@dataclass(frozen=True)
class MoveToGroup(Command):
    """Move a child into ``target_group_id``, or out of every group when None."""

    type: ClassVar[str] = "moveToGroup"
    child_id: str
    child_type: GroupChildType
    target_group_id: str | None


# ── Belts, fields, disks, nebulae ─────────────────────────────────────

@dataclass(frozen=True)
class SetBelts(Command):
    type: ClassVar[str] = "setBelts"
    belts: Mapping[str, AsteroidBelt] = field(default_factory=dict)


@dataclass(frozen=True)
class SetSmallBodyFields(Command):
    type: ClassVar[str] = "setSmallBodyFields"
    fields: Mapping[str, SmallBodyField] = field(default_factory=dict)


@dataclass(frozen=True)
class AddSmallBodyField(Command):
    type: ClassVar[str] = "addSmallBodyField"
    small_body_field: SmallBodyField


@dataclass(frozen=True)
class UpdateSmallBodyField(Command):
    type: ClassVar[str] = "updateSmallBodyField"
    id: str
    patch: Mapping[str, Any]


@dataclass(frozen=True)
class RemoveSmallBodyField(Command):
    type: ClassVar[str] = "removeSmallBodyField"
    id: str


@dataclass(frozen=True)
class SetProtoplanetaryDisks(Command):
    type: ClassVar[str] = "setProtoplanetaryDisks"
    disks: Mapping[str, ProtoplanetaryDisk] = field(default_factory=dict)


@dataclass(frozen=True)
class AddProtoplanetaryDisk(Command):
    type: ClassVar[str] = "addProtoplanetaryDisk"
    disk: ProtoplanetaryDisk


@dataclass(frozen=True)
class UpdateProtoplanetaryDisk(Command):
    type: ClassVar[str] = "updateProtoplanetaryDisk"
    id: str
    patch: Mapping[str, Any]


@dataclass(frozen=True)
class RemoveProtoplanetaryDisk(Command):
    type: ClassVar[str] = "removeProtoplanetaryDisk"
    id: str


@dataclass(frozen=True)
class SetNebulae(Command):
    type: ClassVar[str] = "setNebulae"
    nebulae: Mapping[str, NebulaRegion] = field(default_factory=dict)


@dataclass(frozen=True)
class AddNebula(Command):
    type: ClassVar[str] = "addNebula"
    nebula: NebulaRegion


@dataclass(frozen=True)
class UpdateNebula(Command):
    type: ClassVar[str] = "updateNebula"
    id: str
    patch: Mapping[str, Any]


@dataclass(frozen=True)
class RemoveNebula(Command):
    type: ClassVar[str] = "removeNebula"
    id: str


# ── Rings ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class UpdateRing(Command):
    """Patch the ring of a planet; a missing ring is created from defaults first."""

    type: ClassVar[str] = "updateRing"
    body_id: str
    patch: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RemoveRing(Command):
    type: ClassVar[str] = "removeRing"
    body_id: str


# ── Whole snapshot ────────────────────────────────────────────────────

@dataclass(frozen=True)
class ReplaceSnapshot(Command):
    type: ClassVar[str] = "replaceSnapshot"
    snapshot: UniverseState


COMMAND_TYPES: dict[str, type[Command]] = {
    cls.type: cls
    for cls in (
        Tick, AddBody, UpdateBody, RemoveBody, AttachBody, DetachBody,
        AddGroup, UpdateGroup, RemoveGroup, AddToGroup, RemoveFromGroup, MoveToGroup,
        SetBelts, SetSmallBodyFields, AddSmallBodyField, UpdateSmallBodyField,
        RemoveSmallBodyField, SetProtoplanetaryDisks, AddProtoplanetaryDisk,
        UpdateProtoplanetaryDisk, RemoveProtoplanetaryDisk, SetNebulae, AddNebula,
        UpdateNebula, RemoveNebula, UpdateRing, RemoveRing, ReplaceSnapshot,
    )
}


# ---------------------------------------------------------------------------
# Wire format
# ---------------------------------------------------------------------------

def command_to_dict(command: Command) -> dict[str, Any]:
    """Serialise ``command`` to its camelCase JSON shape."""
    out: dict[str, Any] = {"type": command.type}
    if isinstance(command, Tick):
        out["dt"] = command.dt
    elif isinstance(command, AddBody):
        out["id"] = command.id
        out["payload"] = save.body_to_dict(command.body)
    elif isinstance(command, (UpdateBody, UpdateGroup, UpdateSmallBodyField,
                              UpdateProtoplanetaryDisk, UpdateNebula)):
        out["id"] = command.id
        out["payload"] = save.encode_patch(dict(command.patch))
    elif isinstance(command, (RemoveBody, RemoveGroup, RemoveSmallBodyField,
                              RemoveProtoplanetaryDisk, RemoveNebula)):
        out["id"] = command.id
    elif isinstance(command, AttachBody):
        out["childId"] = command.child_id
        out["parentId"] = command.parent_id
    elif isinstance(command, DetachBody):
        out["childId"] = command.child_id
    elif isinstance(command, AddGroup):
        out["id"] = command.id
        out["payload"] = save.group_to_dict(command.group)
    elif isinstance(command, AddToGroup):
        out["groupId"] = command.group_id
        out["childId"] = command.child.id
        out["childType"] = command.child.type.value
    elif isinstance(command, RemoveFromGroup):
        out["groupId"] = command.group_id
        out["childId"] = command.child_id
        if command.child_type is not None:
            out["childType"] = command.child_type.value
    elif isinstance(command, MoveToGroup):
        out["childId"] = command.child_id
        out["childType"] = command.child_type.value
        out["targetGroupId"] = command.target_group_id
    elif isinstance(command, SetBelts):
        out["belts"] = {k: save.belt_to_dict(v) for k, v in command.belts.items()}
    elif isinstance(command, SetSmallBodyFields):
        out["fields"] = {k: save.small_body_field_to_dict(v) for k, v in command.fields.items()}
    elif isinstance(command, AddSmallBodyField):
        out["field"] = save.small_body_field_to_dict(command.small_body_field)
    elif isinstance(command, SetProtoplanetaryDisks):
        out["disks"] = {k: save.disk_to_dict(v) for k, v in command.disks.items()}
    elif isinstance(command, AddProtoplanetaryDisk):
        out["disk"] = save.disk_to_dict(command.disk)
    elif isinstance(command, SetNebulae):
        out["nebulae"] = {k: save.nebula_to_dict(v) for k, v in command.nebulae.items()}
    elif isinstance(command, AddNebula):
        out["nebula"] = save.nebula_to_dict(command.nebula)
    elif isinstance(command, UpdateRing):
        out["planetId"] = command.body_id
        out["ring"] = save.encode_patch(dict(command.patch))
    elif isinstance(command, RemoveRing):
        out["planetId"] = command.body_id
    elif isinstance(command, ReplaceSnapshot):
        out["snapshot"] = save.snapshot_to_dict(command.snapshot)
    return out


def _text(data: Mapping[str, Any], key: str, optional: bool = False) -> str | None:
    """A string field of a wire command; ids are never coerced."""
    value = data.get(key) if optional else data[key]
    if value is None and optional:
        return None
    if not isinstance(value, str):
        raise CommandFormatError(f"{key} must be a string, got {type(value).__name__}")
    return value


def command_from_dict(data: Mapping[str, Any]) -> Command:
    """Parse a wire command. Raises CommandFormatError on malformed input."""

    if not isinstance(data, Mapping):
        raise CommandFormatError("command must be an object")
    tag = data.get("type")
    if not isinstance(tag, str) or tag not in COMMAND_TYPES:
        raise CommandFormatError(f"unknown command type: {tag!r}")

    try:
        if tag == "tick":
            return Tick(dt=float(data["dt"]))
        if tag == "addBody":
            payload = dict(data["payload"])
            payload.setdefault("id", _text(data, "id"))
            return AddBody(id=_text(data, "id"), body=save.body_from_dict(payload))
        if tag == "updateBody":
            return UpdateBody(id=_text(data, "id"), patch=save.decode_body_patch(data["payload"]))
        if tag == "removeBody":
            return RemoveBody(id=_text(data, "id"))
        if tag == "attachBody":
            return AttachBody(child_id=_text(data, "childId"), parent_id=_text(data, "parentId"))
        if tag == "detachBody":
            return DetachBody(child_id=_text(data, "childId"))
        if tag == "addGroup":
            payload = dict(data["payload"])
            payload.setdefault("id", _text(data, "id"))
            return AddGroup(id=_text(data, "id"), group=save.group_from_dict(payload))
        if tag == "updateGroup":
            return UpdateGroup(id=_text(data, "id"), patch=save.decode_group_patch(data["payload"]))
        if tag == "removeGroup":
            return RemoveGroup(id=_text(data, "id"))
        if tag == "addToGroup":
            child = GroupChild(id=_text(data, "childId"), type=GroupChildType(data["childType"]))
            return AddToGroup(group_id=_text(data, "groupId"), child=child)
        if tag == "removeFromGroup":
            child_type = data.get("childType")
            return RemoveFromGroup(
                group_id=_text(data, "groupId"),
                child_id=_text(data, "childId"),
                child_type=GroupChildType(child_type) if child_type is not None else None,
            )
        if tag == "moveToGroup":
            return MoveToGroup(
                child_id=_text(data, "childId"),
                child_type=GroupChildType(data["childType"]),
                target_group_id=_text(data, "targetGroupId", optional=True),
            )
        if tag == "setBelts":
            return SetBelts(belts={k: save.belt_from_dict(v) for k, v in data["belts"].items()})
        if tag == "setSmallBodyFields":
            return SetSmallBodyFields(
                fields={k: save.small_body_field_from_dict(v) for k, v in data["fields"].items()})
        if tag == "addSmallBodyField":
            return AddSmallBodyField(small_body_field=save.small_body_field_from_dict(data["field"]))
        if tag == "updateSmallBodyField":
            return UpdateSmallBodyField(id=_text(data, "id"), patch=save.decode_field_patch(data["payload"]))
        if tag == "removeSmallBodyField":
            return RemoveSmallBodyField(id=_text(data, "id"))
        if tag == "setProtoplanetaryDisks":
            return SetProtoplanetaryDisks(
                disks={k: save.disk_from_dict(v) for k, v in data["disks"].items()})
        if tag == "addProtoplanetaryDisk":
            return AddProtoplanetaryDisk(disk=save.disk_from_dict(data["disk"]))
        if tag == "updateProtoplanetaryDisk":
            return UpdateProtoplanetaryDisk(id=_text(data, "id"), patch=save.decode_disk_patch(data["payload"]))
        if tag == "removeProtoplanetaryDisk":
            return RemoveProtoplanetaryDisk(id=_text(data, "id"))
        if tag == "setNebulae":
            return SetNebulae(nebulae={k: save.nebula_from_dict(v) for k, v in data["nebulae"].items()})
        if tag == "addNebula":
            return AddNebula(nebula=save.nebula_from_dict(data["nebula"]))
        if tag == "updateNebula":
            return UpdateNebula(id=_text(data, "id"), patch=save.decode_nebula_patch(data["payload"]))
        if tag == "removeNebula":
            return RemoveNebula(id=_text(data, "id"))
        if tag == "updateRing":
            return UpdateRing(body_id=_text(data, "planetId"), patch=save.decode_ring_patch(data.get("ring", {})))
        if tag == "removeRing":
            return RemoveRing(body_id=_text(data, "planetId"))
        return ReplaceSnapshot(snapshot=save.snapshot_from_dict(data["snapshot"], strict=True))
    except (KeyError, TypeError, ValueError, AttributeError, SnapshotFormatError) as exc:
        raise CommandFormatError(f"malformed {tag} command: {exc}") from exc
