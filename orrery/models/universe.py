"""The universe snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .bodies import Body
from .entities import AsteroidBelt, Group, NebulaRegion, ProtoplanetaryDisk, SmallBodyField

_EMPTY: Mapping = MappingProxyType({})


@dataclass(frozen=True, kw_only=True)
class UniverseState:
    """Complete state of one universe.

    Treated as immutable: every transition builds a new instance and copies
    only the maps it changes, so untouched collections are shared between
    successive snapshots.
    """

    bodies: Mapping[str, Body] = field(default_factory=dict)
    root_body_ids: tuple[str, ...] = ()
    groups: Mapping[str, Group] = field(default_factory=dict)
    root_group_ids: tuple[str, ...] = ()
    belts: Mapping[str, AsteroidBelt] = field(default_factory=dict)
    small_body_fields: Mapping[str, SmallBodyField] = field(default_factory=dict)
    protoplanetary_disks: Mapping[str, ProtoplanetaryDisk] = field(default_factory=dict)
    nebulae: Mapping[str, NebulaRegion] = field(default_factory=dict)
    simulation_time: float = 0.0

    def same_content(self, other: UniverseState, *, ignore_time: bool = False) -> bool:
        """Deep equality over every collection, optionally ignoring simulation time."""
        return (
            dict(self.bodies) == dict(other.bodies)
            and self.root_body_ids == other.root_body_ids
            and dict(self.groups) == dict(other.groups)
            and self.root_group_ids == other.root_group_ids
            and dict(self.belts) == dict(other.belts)
            and dict(self.small_body_fields) == dict(other.small_body_fields)
            and dict(self.protoplanetary_disks) == dict(other.protoplanetary_disks)
            and dict(self.nebulae) == dict(other.nebulae)
            and (ignore_time or self.simulation_time == other.simulation_time)
        )


def empty_state() -> UniverseState:
    """A universe with nothing in it."""
    return UniverseState(
        bodies=_EMPTY,
        groups=_EMPTY,
        belts=_EMPTY,
        small_body_fields=_EMPTY,
        protoplanetary_disks=_EMPTY,
        nebulae=_EMPTY,
    )
