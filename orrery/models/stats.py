"""Aggregate statistics over a universe snapshot."""

from __future__ import annotations

from dataclasses import dataclass, fields

from ..constants import INTERMEDIATE_BLACK_HOLE_LIMIT, STELLAR_BLACK_HOLE_LIMIT
from .bodies import Asteroid, AsteroidSubType, BlackHole, Body, BodyType, RoguePlanet
from .entities import BeltType
from .invariants import depth_of
from .save import camel_key
from .universe import UniverseState


@dataclass(frozen=True, kw_only=True)
class UniverseStats:
    total_bodies: int = 0
    total_stars: int = 0
    total_planets: int = 0
    total_moons: int = 0
    total_asteroids: int = 0
    total_comets: int = 0
    total_black_holes: int = 0
    total_lagrange_points: int = 0
    total_rogue_planets: int = 0
    total_root_systems: int = 0
    total_trojans: int = 0
    total_kuiper_objects: int = 0
    total_ringed_planets: int = 0

    total_groups: int = 0
    total_root_groups: int = 0

    total_belts: int = 0
    total_belt_asteroids: int = 0
    total_small_body_fields: int = 0
    total_main_belts: int = 0
    total_kuiper_belts: int = 0
    total_small_body_particles: int = 0
    total_main_belt_particles: int = 0
    total_kuiper_belt_particles: int = 0
    total_protoplanetary_disks: int = 0
    total_protoplanetary_disk_particles: int = 0
    total_nebulae: int = 0

    rogue_planet_ids: tuple[str, ...] = ()

    black_holes_with_disks: int = 0
    black_holes_with_jets: int = 0
    black_holes_with_photon_rings: int = 0
    stellar_black_holes: int = 0
    intermediate_black_holes: int = 0
    supermassive_black_holes: int = 0
    min_black_hole_spin: float = 0.0
    avg_black_hole_spin: float = 0.0
    max_black_hole_spin: float = 0.0

    max_depth: int = 0
    min_mass: float = 0.0
    avg_mass: float = 0.0
    max_mass: float = 0.0

    def to_dict(self) -> dict:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[camel_key(f.name)] = list(value) if isinstance(value, tuple) else value
        return out


def _count(bodies: list[Body], body_type: BodyType) -> int:
    return sum(1 for b in bodies if b.body_type == body_type)


def _spread(values: list[float]) -> tuple[float, float, float]:
    """(min, avg, max), all zero for an empty list."""
    if not values:
        return 0.0, 0.0, 0.0
    return min(values), sum(values) / len(values), max(values)


def compute_stats(state: UniverseState) -> UniverseStats:
    """Count everything in ``state``. Reads only; never modifies the snapshot."""
    bodies = list(state.bodies.values())
    asteroids = [b for b in bodies if isinstance(b, Asteroid)]
    black_holes = [b for b in bodies if isinstance(b, BlackHole)]
    rogues = [b for b in bodies if isinstance(b, RoguePlanet)]
    small_fields = list(state.small_body_fields.values())
    main_fields = [f for f in small_fields if f.belt_type == BeltType.MAIN]
    kuiper_fields = [f for f in small_fields if f.belt_type == BeltType.KUIPER]

    spin_min, spin_avg, spin_max = _spread([b.black_hole.spin for b in black_holes])
    mass_min, mass_avg, mass_max = _spread([b.mass for b in bodies])
    bh_masses = [b.mass for b in black_holes]

    return UniverseStats(
        total_bodies=len(bodies),
        total_stars=_count(bodies, BodyType.STAR),
        total_planets=_count(bodies, BodyType.PLANET),
        total_moons=_count(bodies, BodyType.MOON),
        total_asteroids=len(asteroids),
        total_comets=_count(bodies, BodyType.COMET),
        total_black_holes=len(black_holes),
        total_lagrange_points=_count(bodies, BodyType.LAGRANGE_POINT),
        total_rogue_planets=len(rogues),
        total_root_systems=sum(
            1 for bid in state.root_body_ids
            if bid in state.bodies and not isinstance(state.bodies[bid], RoguePlanet)
        ),
        total_trojans=sum(1 for a in asteroids if a.lagrange_host_id is not None),
        total_kuiper_objects=sum(1 for a in asteroids if a.sub_type == AsteroidSubType.KUIPER_BELT),
        total_ringed_planets=sum(1 for b in bodies if getattr(b, "ring", None) is not None),
        total_groups=len(state.groups),
        total_root_groups=len(state.root_group_ids),
        total_belts=len(state.belts),
        total_belt_asteroids=sum(b.asteroid_count for b in state.belts.values()),
        total_small_body_fields=len(small_fields),
        total_main_belts=len(main_fields),
        total_kuiper_belts=len(kuiper_fields),
        total_small_body_particles=sum(f.particle_count for f in small_fields),
        total_main_belt_particles=sum(f.particle_count for f in main_fields),
        total_kuiper_belt_particles=sum(f.particle_count for f in kuiper_fields),
        total_protoplanetary_disks=len(state.protoplanetary_disks),
        total_protoplanetary_disk_particles=sum(d.particle_count for d in state.protoplanetary_disks.values()),
        total_nebulae=len(state.nebulae),
        rogue_planet_ids=tuple(b.id for b in rogues),
        black_holes_with_disks=sum(1 for b in black_holes if b.black_hole.has_accretion_disk),
        black_holes_with_jets=sum(1 for b in black_holes if b.black_hole.has_relativistic_jet),
        black_holes_with_photon_rings=sum(1 for b in black_holes if b.black_hole.has_photon_ring),
        stellar_black_holes=sum(1 for m in bh_masses if m < STELLAR_BLACK_HOLE_LIMIT),
        intermediate_black_holes=sum(
            1 for m in bh_masses if STELLAR_BLACK_HOLE_LIMIT <= m < INTERMEDIATE_BLACK_HOLE_LIMIT
        ),
        supermassive_black_holes=sum(1 for m in bh_masses if m >= INTERMEDIATE_BLACK_HOLE_LIMIT),
        min_black_hole_spin=spin_min,
        avg_black_hole_spin=spin_avg,
        max_black_hole_spin=spin_max,
        max_depth=max((depth_of(bid, state.bodies) for bid in state.bodies), default=0),
        min_mass=mass_min,
        avg_mass=mass_avg,
        max_mass=mass_max,
    )
