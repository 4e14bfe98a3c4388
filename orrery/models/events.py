"""Domain events emitted alongside every state transition.

Events are diagnostics: they say what a command did (or why it did nothing)
and are never needed to reconstruct state.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class EventType(enum.Enum):
    """What happened as a result of a command."""

    TICKED = "ticked"

    BODY_ADDED = "bodyAdded"
    BODY_UPDATED = "bodyUpdated"
    BODY_REMOVED = "bodyRemoved"
    BODY_NOT_FOUND = "bodyNotFound"
    ADD_BODY_FAILED = "addBodyFailed"
    UPDATE_BODY_FAILED = "updateBodyFailed"
    PARENT_NOT_FOUND = "parentNotFound"
    BODY_ATTACHED = "bodyAttached"
    ATTACH_FAILED = "attachFailed"
    BODY_DETACHED = "bodyDetached"
    DETACH_FAILED = "detachFailed"

    GROUP_ADDED = "groupAdded"
    GROUP_UPDATED = "groupUpdated"
    GROUP_REMOVED = "groupRemoved"
    GROUP_NOT_FOUND = "groupNotFound"
    ADD_GROUP_FAILED = "addGroupFailed"
    CHILD_ADDED_TO_GROUP = "childAddedToGroup"
    CHILD_ALREADY_IN_GROUP = "childAlreadyInGroup"
    ADD_TO_GROUP_FAILED = "addToGroupFailed"
    CHILD_REMOVED_FROM_GROUP = "childRemovedFromGroup"
    CHILD_NOT_IN_GROUP = "childNotInGroup"
    MOVED_TO_GROUP = "movedToGroup"
    MOVE_TO_GROUP_FAILED = "moveToGroupFailed"

    BELTS_SET = "beltsSet"
    SMALL_BODY_FIELDS_SET = "smallBodyFieldsSet"
    SMALL_BODY_FIELD_ADDED = "smallBodyFieldAdded"
    SMALL_BODY_FIELD_UPDATED = "smallBodyFieldUpdated"
    SMALL_BODY_FIELD_REMOVED = "smallBodyFieldRemoved"
    SMALL_BODY_FIELD_NOT_FOUND = "smallBodyFieldNotFound"
    SMALL_BODY_FIELD_EXISTS = "smallBodyFieldExists"
    PROTOPLANETARY_DISKS_SET = "protoplanetaryDisksSet"
    PROTOPLANETARY_DISK_ADDED = "protoplanetaryDiskAdded"
    PROTOPLANETARY_DISK_UPDATED = "protoplanetaryDiskUpdated"
    PROTOPLANETARY_DISK_REMOVED = "protoplanetaryDiskRemoved"
    PROTOPLANETARY_DISK_NOT_FOUND = "protoplanetaryDiskNotFound"
    PROTOPLANETARY_DISK_EXISTS = "protoplanetaryDiskExists"
    NEBULAE_SET = "nebulaeSet"
    NEBULA_ADDED = "nebulaAdded"
    NEBULA_UPDATED = "nebulaUpdated"
    NEBULA_REMOVED = "nebulaRemoved"
    NEBULA_NOT_FOUND = "nebulaNotFound"
    NEBULA_EXISTS = "nebulaExists"

    RING_UPDATED = "ringUpdated"
    RING_REMOVED = "ringRemoved"
    RING_NOT_FOUND = "ringNotFound"
    RING_UNSUPPORTED = "ringUnsupported"
    UPDATE_RING_FAILED = "updateRingFailed"

    SNAPSHOT_REPLACED = "snapshotReplaced"


class RejectionReason(enum.Enum):
    """Why a command left the state untouched."""

    NOT_FOUND = "notFound"
    CYCLE = "cycle"
    DUPLICATE = "duplicate"
    NOT_ATTACHED = "notAttached"
    INVALID = "invalid"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class DomainEvent:
    """A record of one thing a command did, or refused to do."""

    type: EventType
    reason: RejectionReason | None = None  # Set only on rejections
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_rejection(self) -> bool:
        return self.reason is not None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type.value}
        if self.reason is not None:
            out["reason"] = self.reason.value
        out.update(self.data)
        return out


def event(event_type: EventType, **data: Any) -> DomainEvent:
    return DomainEvent(event_type, None, data)


def rejection(event_type: EventType, reason: RejectionReason, **data: Any) -> DomainEvent:
    return DomainEvent(event_type, reason, data)
