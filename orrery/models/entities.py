"""Non-body entities: groups and visual particle fields.

None of these take part in the orbital hierarchy. Groups organise root
systems; belts, small-body fields, disks and nebulae are rendering volumes
keyed by their own ids.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from .bodies import Vec3


class GroupChildType(enum.Enum):
    SYSTEM = "system"  # A root body standing for its whole system
    GROUP = "group"


class BeltType(enum.Enum):
    MAIN = "main"
    KUIPER = "kuiper"


class FieldStyle(enum.Enum):
    THIN = "thin"
    MODERATE = "moderate"
    THICK = "thick"
    SCATTERED = "scattered"


class DiskStyle(enum.Enum):
    THIN = "thin"
    MODERATE = "moderate"
    THICK = "thick"
    EXTREME = "extreme"


@dataclass(frozen=True, kw_only=True)
class GroupChild:
    id: str
    type: GroupChildType


@dataclass(frozen=True, kw_only=True)
class Group:
    """A named node collecting systems and nested groups."""

    id: str
    name: str
    children: tuple[GroupChild, ...] = ()
    parent_group_id: str | None = None
    color: str | None = None
    icon: str | None = None
    position: Vec3 | None = None

    def has_child(self, child_id: str, child_type: GroupChildType) -> bool:
        return any(c.id == child_id and c.type == child_type for c in self.children)

    def group_ids(self) -> list[str]:
        return [c.id for c in self.children if c.type == GroupChildType.GROUP]


STRUCTURAL_GROUP_FIELDS = frozenset({"id", "children", "parent_group_id"})


@dataclass(frozen=True, kw_only=True)
class AsteroidBelt:
    """A belt made of individual asteroid bodies."""

    id: str
    name: str
    parent_id: str
    inner_radius: float
    outer_radius: float
    thickness: float = 0.5
    eccentricity: float = 0.0
    inclination: float = 0.0  # Degrees
    asteroid_ids: tuple[str, ...] = ()
    color: str | None = None
    belt_type: BeltType = BeltType.MAIN
    region_label: str | None = None
    is_icy: bool = False
    seed: str | None = None

    @property
    def asteroid_count(self) -> int:
        return len(self.asteroid_ids)


@dataclass(frozen=True, kw_only=True)
class SmallBodyField:
    """Particle field standing in for a main belt or Kuiper belt."""

    id: str
    system_id: str
    host_star_id: str
    inner_radius: float
    outer_radius: float
    thickness: float
    particle_count: int
    base_color: str
    highlight_color: str
    opacity: float = 0.8
    brightness: float = 1.0
    clumpiness: float = 0.3
    rotation_speed_multiplier: float = 1.0
    belt_type: BeltType = BeltType.MAIN
    region_label: str = "Main Belt"
    is_icy: bool = False
    inclination_sigma: float | None = None
    seed: str = ""
    style: FieldStyle = FieldStyle.MODERATE
    name: str | None = None
    visible: bool = True


@dataclass(frozen=True, kw_only=True)
class ProtoplanetaryDisk:
    """Young circumstellar disk of gas and dust. Visual only."""

    id: str
    system_id: str
    central_star_id: str
    inner_radius: float
    outer_radius: float
    thickness: float
    particle_count: int
    base_color: str
    highlight_color: str
    opacity: float = 0.6
    brightness: float = 0.8
    clumpiness: float = 0.4
    rotation_speed_multiplier: float = 1.0
    seed: str = ""
    style: DiskStyle = DiskStyle.MODERATE
    name: str | None = None
    band_strength: float | None = None
    band_frequency: float | None = None
    gap_sharpness: float | None = None
    inner_glow_strength: float | None = None
    noise_scale: float | None = None
    noise_strength: float | None = None
    spiral_strength: float | None = None
    spiral_arm_count: int | None = None
    edge_softness: float | None = None
    temperature_gradient: float | None = None


@dataclass(frozen=True, kw_only=True)
class NebulaRegion:
    """Galactic-scale gas cloud placed in group space."""

    id: str
    name: str
    position: Vec3
    radius: float
    density: float  # 0.0–1.0
    brightness: float  # 0.0–1.0
    base_color: str
    accent_color: str
    noise_scale: float = 1.0
    noise_detail: float = 4.0
    dimensions: Vec3 | None = None
    associated_group_ids: tuple[str, ...] = field(default_factory=tuple)
    seed: str = ""
    visible: bool = True
