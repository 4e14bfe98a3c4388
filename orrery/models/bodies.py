"""Celestial bodies: the nodes of the universe hierarchy.

Every body shares the same core (identity, mass, orbit, parent/child links);
variant-specific data lives only on the variant that can carry it, so a star
with a black-hole payload cannot be built.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, fields
from typing import ClassVar


class BodyType(enum.Enum):
    """Discriminator for the body variants."""

    STAR = "star"
    PLANET = "planet"
    MOON = "moon"
    ASTEROID = "asteroid"
    COMET = "comet"
    BLACK_HOLE = "blackHole"
    LAGRANGE_POINT = "lagrangePoint"
    ROGUE_PLANET = "roguePlanet"


class AsteroidSubType(enum.Enum):
    MAIN_BELT = "mainBelt"
    KUIPER_BELT = "kuiperBelt"
    GENERIC = "generic"


class PairType(enum.Enum):
    """Which two-body pair a Lagrange point belongs to."""

    STAR_PLANET = "starPlanet"
    PLANET_MOON = "planetMoon"


# ---------------------------------------------------------------------------
# Variant payloads
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class PlanetaryRing:
    """Saturn-like ring. Radii are multiples of the host body's radius."""

    inner_radius_multiplier: float = 1.5
    outer_radius_multiplier: float = 3.0
    thickness: float = 0.1  # Half-thickness in world units
    opacity: float = 0.6  # 0.0–1.0
    albedo: float = 0.8
    color: str = "#CCCCCC"
    density: float = 0.6  # 0.0–1.0
    warp_factor: float | None = None
    seed: str | None = None


@dataclass(frozen=True, kw_only=True)
class CometMeta:
    is_periodic: bool = True
    perihelion_distance: float = 0.0
    aphelion_distance: float = 0.0
    last_perihelion_time: float | None = None
    has_tail: bool = True
    tail_length_base: float = 1.0
    tail_width_base: float = 0.2
    tail_color: str = "#9BD8FF"
    tail_opacity_base: float = 0.7  # 0.0–1.0
    activity_falloff_distance: float = 20.0
    seed: str | None = None


@dataclass(frozen=True, kw_only=True)
class LagrangePointMeta:
    primary_id: str
    secondary_id: str
    point_index: int  # 1–5
    stable: bool  # True for L4/L5
    pair_type: PairType = PairType.STAR_PLANET
    label: str | None = None


@dataclass(frozen=True, kw_only=True)
class BlackHoleProperties:
    """Visual and physical-ish parameters of a black hole."""

    has_accretion_disk: bool = True
    has_relativistic_jet: bool = False
    has_photon_ring: bool = True
    spin: float = 0.5  # Kerr spin, 0.0–1.0
    shadow_radius: float = 1.0
    accretion_inner_radius: float = 1.5  # Must exceed shadow_radius
    accretion_outer_radius: float = 6.0
    disk_thickness: float = 0.2
    disk_brightness: float = 0.8
    disk_opacity: float = 0.9
    disk_temperature: float = 6000.0
    disk_clumpiness: float = 0.3
    jet_length: float = 0.0
    jet_opening_angle: float = 5.0  # Degrees
    jet_brightness: float = 0.0
    doppler_beaming_strength: float = 0.5
    lensing_strength: float = 0.5
    rotation_speed_multiplier: float = 1.0
    seed: str = ""


@dataclass(frozen=True, kw_only=True)
class Vec3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True, kw_only=True)
class RoguePlanetMeta:
    seed: str
    initial_position: Vec3 = field(default_factory=Vec3)
    velocity: Vec3 = field(default_factory=Vec3)  # World-space drift per second
    color_override: str | None = None
    path_curvature: float = 0.0  # 0 = straight drift, 1 = strongly curved
    semi_major_axis: float | None = None
    eccentricity: float | None = None
    path_period: float | None = None
    show_trajectory: bool | None = None


# ---------------------------------------------------------------------------
# Body variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True, kw_only=True)
class Body:
    """Fields common to every body variant."""

    body_type: ClassVar[BodyType]

    id: str
    name: str
    mass: float = 1.0
    radius: float = 1.0
    color: str = "#FFFFFF"
    parent_id: str | None = None
    children: tuple[str, ...] = ()

    # Kinematic circular orbit
    orbital_distance: float = 0.0
    orbital_speed: float = 0.0
    orbital_phase: float = 0.0  # Degrees, 0–360

    # Elliptical shape and orientation
    semi_major_axis: float | None = None
    eccentricity: float = 0.0  # 0 = circle, < 1 = ellipse
    orbit_offset_x: float = 0.0
    orbit_offset_y: float = 0.0
    orbit_offset_z: float = 0.0
    orbit_rot_x: float = 0.0  # Degrees, applied Z then Y then X
    orbit_rot_y: float = 0.0
    orbit_rot_z: float = 0.0

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))


@dataclass(frozen=True, kw_only=True)
class Star(Body):
    body_type: ClassVar[BodyType] = BodyType.STAR


@dataclass(frozen=True, kw_only=True)
class Planet(Body):
    body_type: ClassVar[BodyType] = BodyType.PLANET

    ring: PlanetaryRing | None = None


@dataclass(frozen=True, kw_only=True)
class Moon(Body):
    body_type: ClassVar[BodyType] = BodyType.MOON


@dataclass(frozen=True, kw_only=True)
class Asteroid(Body):
    body_type: ClassVar[BodyType] = BodyType.ASTEROID

    parent_belt_id: str | None = None
    sub_type: AsteroidSubType = AsteroidSubType.GENERIC
    lagrange_host_id: str | None = None  # Set on Trojans


@dataclass(frozen=True, kw_only=True)
class Comet(Body):
    body_type: ClassVar[BodyType] = BodyType.COMET

    comet: CometMeta = field(default_factory=CometMeta)


@dataclass(frozen=True, kw_only=True)
class BlackHole(Body):
    body_type: ClassVar[BodyType] = BodyType.BLACK_HOLE

    black_hole: BlackHoleProperties = field(default_factory=BlackHoleProperties)


@dataclass(frozen=True, kw_only=True)
class LagrangePoint(Body):
    body_type: ClassVar[BodyType] = BodyType.LAGRANGE_POINT

    lagrange: LagrangePointMeta


@dataclass(frozen=True, kw_only=True)
class RoguePlanet(Body):
    body_type: ClassVar[BodyType] = BodyType.ROGUE_PLANET

    rogue: RoguePlanetMeta
    ring: PlanetaryRing | None = None


BODY_CLASSES: dict[BodyType, type[Body]] = {
    cls.body_type: cls
    for cls in (Star, Planet, Moon, Asteroid, Comet, BlackHole, LagrangePoint, RoguePlanet)
}

RING_BEARERS: tuple[type[Body], ...] = (Planet, RoguePlanet)

# Only hierarchy commands may touch these.
STRUCTURAL_BODY_FIELDS = frozenset({"id", "parent_id", "children"})

# Positions of Lagrange markers are derived from their primary/secondary pair.
LAGRANGE_COMPUTED_FIELDS = frozenset({
    "orbital_distance", "orbital_speed", "orbital_phase", "semi_major_axis",
    "eccentricity", "orbit_offset_x", "orbit_offset_y", "orbit_offset_z",
    "orbit_rot_x", "orbit_rot_y", "orbit_rot_z",
})


def read_only_fields(body: Body) -> frozenset[str]:
    """Fields an update patch may not change on ``body``."""
    if isinstance(body, LagrangePoint):
        return STRUCTURAL_BODY_FIELDS | LAGRANGE_COMPUTED_FIELDS
    return STRUCTURAL_BODY_FIELDS
