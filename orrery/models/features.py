"""Optional decoration layers applied after the core hierarchy is built.

Every layer forks its own stream from the root as ``"{layer}:{key}"`` where
the key is a system or body id. Turning one layer on or off therefore never
shifts the numbers another layer draws. Layers that add bodies write them into
the generator's working ``bodies`` dict; parent/child lists are derived
afterwards from the parent pointers.
"""

from __future__ import annotations

import math
from dataclasses import fields, replace
from typing import TYPE_CHECKING, Mapping

from ..constants import (
    ASTEROID_COLOR,
    BLACK_HOLE_COLOR,
    COMET_COLOR,
    COMET_TAIL_COLORS,
    COOL_NEBULA_COLORS,
    DISK_COLORS,
    KUIPER_BELT_COLORS,
    KUIPER_OBJECT_COLOR,
    LAGRANGE_COLOR,
    MAIN_BELT_COLORS,
    RING_COLORS,
    ROGUE_PLANET_COLORS,
    WARM_NEBULA_COLORS,
)
from .bodies import (
    RING_BEARERS,
    Asteroid,
    AsteroidSubType,
    BlackHole,
    BlackHoleProperties,
    Body,
    Comet,
    CometMeta,
    LagrangePoint,
    LagrangePointMeta,
    Moon,
    PairType,
    Planet,
    PlanetaryRing,
    RoguePlanet,
    RoguePlanetMeta,
    Star,
    Vec3,
)
from .config import (
    BeltPlacement,
    BlackHoleMassProfile,
    CometOrbitStyle,
    GenerationConfig,
    KuiperDistanceStyle,
    LagrangeMarkerMode,
    LagrangePairScope,
    NebulaColorStyle,
    NebulaSizeBias,
    RogueOrbitStyle,
    RogueTrajectoryMode,
)
from .entities import BeltType, DiskStyle, FieldStyle, Group, NebulaRegion, ProtoplanetaryDisk, SmallBodyField
from .physics import body_mass, body_radius, orbital_speed
from .prng import Prng

if TYPE_CHECKING:
    from .generator import SystemSummary

MAX_ROGUE_PLANETS = 200
MAX_NEBULAE = 8


def _planet_distances(bodies: Mapping[str, Body]) -> dict[str, list[float]]:
    """Sorted orbital distances of planets, keyed by the id of the body they circle."""
    index: dict[str, list[float]] = {}
    for b in bodies.values():
        if isinstance(b, Planet) and b.parent_id is not None:
            index.setdefault(b.parent_id, []).append(b.orbital_distance)
    for distances in index.values():
        distances.sort()
    return index


def _outer_reach(config: GenerationConfig, distances: list[float]) -> float:
    if distances:
        return distances[-1]
    return config.orbit_base * config.orbit_growth ** 2


def _sample_indices(rng: Prng, population: int, k: int) -> list[int]:
    """``k`` distinct indices from ``range(population)``, in ascending order."""
    order = list(range(population))
    for i in range(k):
        j = rng.randint(i, population - 1)
        order[i], order[j] = order[j], order[i]
    return sorted(order[:k])


# ---------------------------------------------------------------------------
# Lagrange points and Trojans
# ---------------------------------------------------------------------------

# Direction of each point seen from the secondary, relative to the secondary's
# own phase around the primary.
_LAGRANGE_OFFSETS = {1: 180.0, 2: 0.0, 3: 180.0, 4: 120.0, 5: 240.0}


def _pair_type(body: Body, bodies: Mapping[str, Body], scope: LagrangePairScope) -> PairType | None:
    parent = bodies.get(body.parent_id) if body.parent_id is not None else None
    if parent is None:
        return None
    if isinstance(body, Planet) and isinstance(parent, Star):
        pair = PairType.STAR_PLANET
    elif isinstance(body, Moon) and isinstance(parent, Planet):
        pair = PairType.PLANET_MOON
    else:
        return None
    if scope == LagrangePairScope.BOTH or scope.value == pair.value:
        return pair
    return None


def _lagrange_marker(primary: Body, secondary: Body, point: int, pair: PairType) -> LagrangePoint:
    d = secondary.orbital_distance
    hill = d * (secondary.mass / (3.0 * primary.mass)) ** (1.0 / 3.0) if primary.mass > 0 else 0.0
    distance = {1: hill, 2: hill, 3: 2.0 * d, 4: d, 5: d}[point]
    # Co-rotates with the secondary so the point keeps its place in the pair's frame
    return LagrangePoint(
        id=f"{secondary.id}-L{point}",
        name=f"{secondary.name} L{point}",
        mass=0.0,
        radius=0.05,
        color=LAGRANGE_COLOR,
        parent_id=secondary.id,
        orbital_distance=distance,
        orbital_speed=secondary.orbital_speed,
        orbital_phase=(secondary.orbital_phase + _LAGRANGE_OFFSETS[point]) % 360.0,
        orbit_rot_x=secondary.orbit_rot_x,
        orbit_rot_y=secondary.orbit_rot_y,
        orbit_rot_z=secondary.orbit_rot_z,
        lagrange=LagrangePointMeta(
            primary_id=primary.id,
            secondary_id=secondary.id,
            point_index=point,
            stable=point in (4, 5),
            pair_type=pair,
            label=f"L{point}",
        ),
    )


def _trojans(rng: Prng, config: GenerationConfig, marker: LagrangePoint, pair_distance: float) -> list[Asteroid]:
    count = rng.randint(1, 2 + round(config.trojan_richness * 10))
    spread = max(0.1, 0.08 * pair_distance)
    trojans = []
    for k in range(count):
        distance = rng.uniform(0.2, 1.0) * spread
        trojans.append(Asteroid(
            id=f"{marker.id}-trojan-{k}",
            name=f"{marker.name} Trojan {k + 1}",
            mass=rng.uniform(0.001, 0.01),
            radius=rng.uniform(0.03, 0.06),
            color=ASTEROID_COLOR,
            parent_id=marker.id,
            orbital_distance=distance,
            orbital_speed=orbital_speed(config, distance) * 0.1,
            orbital_phase=rng.uniform(0.0, 360.0),
            lagrange_host_id=marker.id,
        ))
    return trojans


def add_lagrange_points(config: GenerationConfig, root: Prng, bodies: dict[str, Body]) -> None:
    """Markers for star-planet and/or planet-moon pairs, Trojans at L4/L5."""
    if not config.enable_lagrange_points or config.lagrange_marker_mode == LagrangeMarkerMode.NONE:
        return
    points = (4, 5) if config.lagrange_marker_mode == LagrangeMarkerMode.STABLE_ONLY else (1, 2, 3, 4, 5)

    for secondary in list(bodies.values()):
        pair = _pair_type(secondary, bodies, config.lagrange_pair_scope)
        if pair is None:
            continue
        primary = bodies[secondary.parent_id]
        rng = root.fork(f"lagrange:{secondary.id}")
        for point in points:
            marker = _lagrange_marker(primary, secondary, point, pair)
            bodies[marker.id] = marker
            if marker.lagrange.stable and rng.chance(config.trojan_frequency):
                for trojan in _trojans(rng, config, marker, secondary.orbital_distance):
                    bodies[trojan.id] = trojan


# ---------------------------------------------------------------------------
# Planetary rings
# ---------------------------------------------------------------------------

def _ring(rng: Prng, config: GenerationConfig, body_id: str) -> PlanetaryRing:
    prominence = config.ring_prominence
    inner = rng.uniform(1.2, 1.8)
    return PlanetaryRing(
        inner_radius_multiplier=inner,
        outer_radius_multiplier=inner + rng.uniform(0.6, 1.6) * (0.5 + prominence),
        thickness=rng.uniform(0.02, 0.1),
        opacity=min(1.0, 0.3 + 0.6 * prominence * rng.uniform(0.8, 1.2)),
        albedo=rng.uniform(0.5, 1.0),
        color=rng.choice(RING_COLORS),
        density=rng.uniform(0.3, 0.9),
        warp_factor=rng.uniform(0.0, 0.3) if rng.chance(0.2) else None,
        seed=f"ring:{body_id}",
    )


def add_planetary_rings(config: GenerationConfig, root: Prng, bodies: dict[str, Body]) -> None:
    if not config.enable_planetary_rings:
        return
    for body in list(bodies.values()):
        if not isinstance(body, RING_BEARERS) or body.ring is not None:
            continue
        rng = root.fork(f"ring:{body.id}")
        if rng.chance(config.ring_frequency):
            bodies[body.id] = replace(body, ring=_ring(rng, config, body.id))


# ---------------------------------------------------------------------------
# Comets
# ---------------------------------------------------------------------------

# (most comets per system, aphelion as a multiple of the outermost planet orbit,
#  chance of a periodic orbit)
_COMET_STYLES: dict[CometOrbitStyle, tuple[int, tuple[float, float], float]] = {
    CometOrbitStyle.RARE_LONG: (2, (3.0, 6.0), 0.3),
    CometOrbitStyle.MIXED: (4, (1.5, 5.0), 0.6),
    CometOrbitStyle.MANY_SHORT: (8, (1.2, 2.5), 0.95),
}


def add_comets(config: GenerationConfig, root: Prng, bodies: dict[str, Body],
               systems: list[SystemSummary]) -> None:
    if not config.enable_comets:
        return
    max_count, (low, high), periodic = _COMET_STYLES[config.comet_orbit_style]
    activity = config.comet_activity
    planet_distances = _planet_distances(bodies)

    for system in systems:
        rng = root.fork(f"comet:{system.id}")
        count = sum(1 for _ in range(max_count) if rng.chance(config.comet_frequency))
        reach = _outer_reach(config, planet_distances.get(system.center_id, []))
        for k in range(count):
            perihelion = rng.uniform(0.3, 1.0) * config.orbit_base
            aphelion = max(perihelion, reach * rng.uniform(low, high))
            semi_major = (perihelion + aphelion) / 2.0
            comet_id = f"{system.id}-comet-{k}"
            meta = CometMeta(
                is_periodic=rng.chance(periodic),
                perihelion_distance=perihelion,
                aphelion_distance=aphelion,
                has_tail=activity > 0,
                tail_length_base=(0.5 + 2.5 * activity) * rng.uniform(0.8, 1.2),
                tail_width_base=0.1 + 0.3 * activity,
                tail_color=rng.choice(COMET_TAIL_COLORS),
                tail_opacity_base=0.3 + 0.6 * activity,
                activity_falloff_distance=semi_major * rng.uniform(0.8, 1.5),
                seed=f"comet:{comet_id}",
            )
            bodies[comet_id] = Comet(
                id=comet_id,
                name=f"Comet {system.name} {k + 1}",
                mass=rng.uniform(0.01, 0.1),
                radius=rng.uniform(0.04, 0.08),
                color=COMET_COLOR,
                parent_id=system.center_id,
                orbital_distance=semi_major,
                orbital_speed=orbital_speed(config, semi_major),
                orbital_phase=rng.uniform(0.0, 360.0),
                semi_major_axis=semi_major,
                eccentricity=(aphelion - perihelion) / (aphelion + perihelion),
                orbit_rot_x=rng.uniform(-40.0, 40.0),
                orbit_rot_y=rng.uniform(0.0, 360.0),
                comet=meta,
            )


# ---------------------------------------------------------------------------
# Small-body fields (main belts, Kuiper belts)
# ---------------------------------------------------------------------------

_KUIPER_DISTANCES: dict[KuiperDistanceStyle, tuple[float, float]] = {
    KuiperDistanceStyle.TIGHT: (1.2, 1.6),
    KuiperDistanceStyle.CLASSICAL: (1.5, 2.5),
    KuiperDistanceStyle.WIDE: (2.5, 4.0),
}


def _field_style(density: float) -> FieldStyle:
    if density < 0.25:
        return FieldStyle.SCATTERED
    if density < 0.5:
        return FieldStyle.THIN
    if density < 0.8:
        return FieldStyle.MODERATE
    return FieldStyle.THICK


def _belt_gaps(config: GenerationConfig, distances: list[float]) -> list[tuple[float, float]]:
    gaps: list[tuple[float, float]] = []
    if config.belt_placement in (BeltPlacement.BETWEEN_PLANETS, BeltPlacement.BOTH):
        gaps.extend((a, b) for a, b in zip(distances, distances[1:]) if b > a)
    if config.belt_placement in (BeltPlacement.OUTER_BELT, BeltPlacement.BOTH):
        outer = _outer_reach(config, distances)
        gaps.append((outer * 1.15, outer * 1.6))
    if not gaps:
        inner = config.orbit_base * config.orbit_growth
        gaps.append((inner, inner * config.orbit_growth))
    return gaps


def _main_belts(rng: Prng, config: GenerationConfig, system: SystemSummary,
                distances: list[float]) -> list[SmallBodyField]:
    density = config.belt_density
    if not rng.chance(0.3 + 0.6 * density):
        return []
    gaps = _belt_gaps(config, distances)
    count = min(len(gaps), rng.randint(1, config.max_belts_per_system))
    base_color, highlight_color = MAIN_BELT_COLORS

    belts = []
    for k, index in enumerate(_sample_indices(rng, len(gaps), count)):
        low, high = gaps[index]
        width = high - low
        inner, outer = low + width * 0.2, high - width * 0.2
        belts.append(SmallBodyField(
            id=f"{system.id}-belt-{k}",
            system_id=system.root_id,
            host_star_id=system.center_id,
            inner_radius=inner,
            outer_radius=outer,
            thickness=(outer - inner) * rng.uniform(0.05, 0.15),
            particle_count=rng.randint(*config.belt_particle_range),
            base_color=base_color,
            highlight_color=highlight_color,
            opacity=0.5 + 0.4 * density,
            brightness=rng.uniform(0.7, 1.0),
            clumpiness=rng.uniform(0.1, 0.6),
            rotation_speed_multiplier=rng.uniform(0.8, 1.2),
            belt_type=BeltType.MAIN,
            region_label="Main Belt" if k == 0 else f"Main Belt {k + 1}",
            seed=f"belt:{system.id}:{k}",
            style=_field_style(density),
            name=f"{system.name} Belt {k + 1}",
        ))
    return belts


def _kuiper_belt(rng: Prng, config: GenerationConfig, system: SystemSummary, distances: list[float],
                 bodies: dict[str, Body]) -> SmallBodyField:
    density = config.kuiper_belt_density
    tilt = config.kuiper_inclination
    reach = _outer_reach(config, distances)
    inner = reach * rng.uniform(*_KUIPER_DISTANCES[config.kuiper_distance_style])
    outer = inner * rng.uniform(1.3, 1.8)
    sigma = 2.0 + 15.0 * tilt
    base_color, highlight_color = KUIPER_BELT_COLORS

    belt = SmallBodyField(
        id=f"{system.id}-kuiper",
        system_id=system.root_id,
        host_star_id=system.center_id,
        inner_radius=inner,
        outer_radius=outer,
        thickness=(outer - inner) * (0.1 + 0.4 * tilt),
        particle_count=math.floor((300 + 700 * density) * config.detail_multiplier),
        base_color=base_color,
        highlight_color=highlight_color,
        opacity=0.4 + 0.4 * density,
        brightness=rng.uniform(0.5, 0.8),
        clumpiness=rng.uniform(0.2, 0.5),
        rotation_speed_multiplier=rng.uniform(0.5, 0.8),
        belt_type=BeltType.KUIPER,
        region_label="Kuiper Belt",
        is_icy=True,
        inclination_sigma=sigma,
        seed=f"kuiper:{system.id}",
        style=FieldStyle.SCATTERED if tilt > 0.6 else FieldStyle.MODERATE,
        name=f"{system.name} Kuiper Belt",
    )

    # A few named objects large enough to track individually
    for k in range(rng.randint(0, round(1 + 4 * density))):
        distance = rng.uniform(inner, outer)
        mass = rng.uniform(0.05, 0.5)
        kbo_id = f"{system.id}-kbo-{k}"
        bodies[kbo_id] = Asteroid(
            id=kbo_id,
            name=f"{system.name} KBO {k + 1}",
            mass=mass,
            radius=body_radius(config, mass),
            color=KUIPER_OBJECT_COLOR,
            parent_id=system.center_id,
            orbital_distance=distance,
            orbital_speed=orbital_speed(config, distance),
            orbital_phase=rng.uniform(0.0, 360.0),
            semi_major_axis=distance,
            eccentricity=rng.uniform(0.0, 0.2),
            orbit_rot_x=max(-90.0, min(90.0, rng.normal(0.0, sigma))),
            sub_type=AsteroidSubType.KUIPER_BELT,
        )
    return belt


def add_small_body_fields(config: GenerationConfig, root: Prng, bodies: dict[str, Body],
                          systems: list[SystemSummary]) -> list[SmallBodyField]:
    """Main-belt and Kuiper-belt particle fields. Kuiper objects go into ``bodies``."""
    result: list[SmallBodyField] = []
    main = config.enable_asteroid_belts and config.max_belts_per_system > 0
    if not main and not config.enable_kuiper_belt:
        return result
    planet_distances = _planet_distances(bodies)
    for system in systems:
        distances = planet_distances.get(system.center_id, [])
        if main:
            result.extend(_main_belts(root.fork(f"belt:{system.id}"), config, system, distances))
        if config.enable_kuiper_belt:
            result.append(_kuiper_belt(root.fork(f"kuiper:{system.id}"), config, system, distances, bodies))
    return result


# ---------------------------------------------------------------------------
# Protoplanetary disks
# ---------------------------------------------------------------------------

def _disk_style(density: float) -> DiskStyle:
    if density < 0.25:
        return DiskStyle.THIN
    if density < 0.5:
        return DiskStyle.MODERATE
    if density < 0.8:
        return DiskStyle.THICK
    return DiskStyle.EXTREME


def build_protoplanetary_disks(config: GenerationConfig, root: Prng,
                               systems: list[SystemSummary]) -> list[ProtoplanetaryDisk]:
    if not config.enable_protoplanetary_disks:
        return []
    density = config.disk_density
    prominence = config.disk_prominence
    base_color, highlight_color = DISK_COLORS

    disks = []
    for system in systems:
        rng = root.fork(f"disk:{system.id}")
        if not rng.chance(config.disk_presence):
            continue
        inner = config.orbit_base * rng.uniform(0.2, 0.4)
        outer = config.orbit_base * config.orbit_growth ** rng.uniform(1.0, 3.0) * (0.5 + prominence)
        outer = max(outer, inner * 2.0)
        disks.append(ProtoplanetaryDisk(
            id=f"{system.id}-disk",
            system_id=system.root_id,
            central_star_id=system.center_id,
            inner_radius=inner,
            outer_radius=outer,
            thickness=(outer - inner) * rng.uniform(0.02, 0.1),
            particle_count=math.floor((1000 + 4000 * density) * config.detail_multiplier),
            base_color=base_color,
            highlight_color=highlight_color,
            opacity=0.3 + 0.5 * prominence,
            brightness=0.4 + 0.6 * prominence,
            clumpiness=rng.uniform(0.2, 0.6),
            rotation_speed_multiplier=rng.uniform(0.8, 1.2),
            seed=f"disk:{system.id}",
            style=_disk_style(density),
            name=f"{system.name} Disk",
            band_strength=rng.uniform(0.2, 0.8) * prominence,
            band_frequency=rng.uniform(3.0, 10.0),
            gap_sharpness=rng.uniform(0.2, 0.8),
            inner_glow_strength=0.3 + 0.5 * prominence,
            noise_scale=rng.uniform(0.5, 2.0),
            noise_strength=rng.uniform(0.1, 0.5),
            spiral_strength=rng.uniform(0.0, 0.6),
            spiral_arm_count=rng.randint(0, 4),
            edge_softness=rng.uniform(0.2, 0.8),
            temperature_gradient=rng.uniform(0.5, 1.5),
        ))
    return disks


# ---------------------------------------------------------------------------
# Rogue planets
# ---------------------------------------------------------------------------

_ROGUE_SPEEDS: dict[str, tuple[float, float]] = {
    "slow": (0.05, 0.3),
    "fast": (1.0, 3.0),
}


def _rogue(rng: Prng, config: GenerationConfig, index: int) -> RoguePlanet:
    if config.rogue_orbit_style == RogueOrbitStyle.SLOW_DRIFTERS:
        speed_range = _ROGUE_SPEEDS["slow"]
    elif config.rogue_orbit_style == RogueOrbitStyle.FAST_INTRUDERS:
        speed_range = _ROGUE_SPEEDS["fast"]
    else:
        speed_range = _ROGUE_SPEEDS["slow" if rng.chance(0.5) else "fast"]
    speed = rng.uniform(*speed_range)

    dx, dy, dz = rng.normal(), rng.normal() * 0.2, rng.normal()
    norm = math.sqrt(dx * dx + dy * dy + dz * dz) or 1.0
    spread = max(config.group_position_sigma, 10.0) * 1.5

    if config.rogue_trajectory_mode == RogueTrajectoryMode.LINEAR:
        curved = False
    elif config.rogue_trajectory_mode == RogueTrajectoryMode.CURVED:
        curved = True
    else:
        curved = rng.chance(0.5)

    mass = body_mass(rng, config, "planet")
    meta = RoguePlanetMeta(
        seed=f"rogue:{index}",
        initial_position=Vec3(x=rng.normal(0.0, spread), y=rng.normal(0.0, spread * 0.2), z=rng.normal(0.0, spread)),
        velocity=Vec3(x=dx / norm * speed, y=dy / norm * speed, z=dz / norm * speed),
        path_curvature=rng.uniform(0.3, 1.0) if curved else 0.0,
        semi_major_axis=rng.uniform(20.0, 80.0) if curved else None,
        eccentricity=rng.uniform(0.3, 0.9) if curved else None,
        path_period=rng.uniform(200.0, 1200.0) if curved else None,
        show_trajectory=config.rogue_show_trajectories,
    )
    return RoguePlanet(
        id=f"rogue-{index}",
        name=f"Wanderer {index + 1}",
        mass=mass,
        radius=body_radius(config, mass),
        color=rng.choice(ROGUE_PLANET_COLORS),
        rogue=meta,
    )


def add_rogue_planets(config: GenerationConfig, root: Prng, bodies: dict[str, Body], system_count: int) -> None:
    """Unbound planets drifting between systems; each is its own root."""
    if not config.enable_rogue_planets:
        return
    rng = root.fork("rogues")
    trials = max(1, system_count)
    count = min(MAX_ROGUE_PLANETS, sum(1 for _ in range(trials) if rng.chance(config.rogue_planet_frequency)))
    for index in range(count):
        rogue = _rogue(root.fork(f"rogue:{index}"), config, index)
        bodies[rogue.id] = rogue


# ---------------------------------------------------------------------------
# Black holes
# ---------------------------------------------------------------------------

# Log-uniform mass ranges per profile
_BLACK_HOLE_MASSES: dict[BlackHoleMassProfile, list[tuple[float, float]]] = {
    BlackHoleMassProfile.STELLAR_ONLY: [(5.0, 45.0)],
    BlackHoleMassProfile.MIXED: [(5.0, 45.0), (100.0, 9_000.0), (20_000.0, 500_000.0)],
    BlackHoleMassProfile.SUPERMASSIVE_CENTRES: [(20_000.0, 2_000_000.0)],
}


def _black_hole_properties(rng: Prng, config: GenerationConfig, shadow: float, seed: str) -> BlackHoleProperties:
    intensity = config.black_hole_accretion_intensity
    spin = min(1.0, max(0.0, config.black_hole_spin_level + rng.uniform(-0.15, 0.15)))
    inner = shadow * rng.uniform(1.5, 3.0)
    outer = inner * rng.uniform(2.0, 4.0) * (0.6 + 0.8 * intensity)
    jets = rng.chance(config.black_hole_jet_frequency)
    return BlackHoleProperties(
        has_accretion_disk=intensity > 0,
        has_relativistic_jet=jets,
        has_photon_ring=True,
        spin=spin,
        shadow_radius=shadow,
        accretion_inner_radius=inner,
        accretion_outer_radius=outer,
        disk_thickness=rng.uniform(0.1, 0.3),
        disk_brightness=0.3 + 0.7 * intensity,
        disk_opacity=0.5 + 0.5 * intensity,
        disk_temperature=rng.uniform(4_000.0, 20_000.0) * (0.5 + intensity),
        disk_clumpiness=rng.uniform(0.1, 0.5),
        jet_length=outer * rng.uniform(3.0, 8.0) if jets else 0.0,
        jet_opening_angle=rng.uniform(3.0, 10.0),
        jet_brightness=rng.uniform(0.5, 1.0) if jets else 0.0,
        doppler_beaming_strength=0.3 + 0.6 * spin,
        lensing_strength=rng.uniform(0.4, 0.9),
        rotation_speed_multiplier=0.5 + spin,
        seed=seed,
    )


def convert_black_hole_centres(config: GenerationConfig, root: Prng, bodies: dict[str, Body],
                               systems: list[SystemSummary]) -> None:
    """Turn some system centres into black holes, keeping their place in the tree."""
    if not config.enable_black_holes:
        return
    shared = [f.name for f in fields(Body)]
    for system in systems:
        rng = root.fork(f"blackhole:{system.id}")
        if not rng.chance(config.black_hole_frequency):
            continue
        center = bodies[system.center_id]
        low, high = rng.choice(_BLACK_HOLE_MASSES[config.black_hole_mass_profile])
        core = {name: getattr(center, name) for name in shared}
        core.update(
            mass=math.exp(rng.uniform(math.log(low), math.log(high))),
            color=BLACK_HOLE_COLOR,
        )
        props = _black_hole_properties(rng, config, center.radius, f"blackhole:{center.id}")
        bodies[center.id] = BlackHole(**core, black_hole=props)


# ---------------------------------------------------------------------------
# Nebulae
# ---------------------------------------------------------------------------

_NEBULA_RADII: dict[NebulaSizeBias, tuple[float, float]] = {
    NebulaSizeBias.SMALL: (20.0, 60.0),
    NebulaSizeBias.MEDIUM: (50.0, 150.0),
    NebulaSizeBias.GIANT: (150.0, 400.0),
}


def _nebula_color(rng: Prng, style: NebulaColorStyle) -> str:
    if style == NebulaColorStyle.WARM:
        return rng.choice(WARM_NEBULA_COLORS)
    if style == NebulaColorStyle.COOL:
        return rng.choice(COOL_NEBULA_COLORS)
    if style == NebulaColorStyle.MIXED:
        return rng.choice(WARM_NEBULA_COLORS + COOL_NEBULA_COLORS)
    return f"#{rng.randint(0, 0xFFFFFF):06X}"


def _nearby_groups(position: Vec3, reach: float, groups: Mapping[str, Group]) -> tuple[str, ...]:
    found = []
    for group_id, group in groups.items():
        if group.position is None:
            continue
        dx = group.position.x - position.x
        dy = group.position.y - position.y
        dz = group.position.z - position.z
        if math.sqrt(dx * dx + dy * dy + dz * dz) <= reach:
            found.append(group_id)
    return tuple(found)


def build_nebulae(config: GenerationConfig, root: Prng, groups: Mapping[str, Group]) -> list[NebulaRegion]:
    """Gas clouds in group space. Group association uses positions only."""
    if not config.enable_nebulae:
        return []
    rng = root.fork("nebulae")
    count = sum(1 for _ in range(MAX_NEBULAE) if rng.chance(config.nebula_density))
    spread = max(config.group_position_sigma, 25.0) * 2.0

    nebulae = []
    for k in range(count):
        radius = rng.uniform(*_NEBULA_RADII[config.nebula_size_bias])
        position = Vec3(x=rng.normal(0.0, spread), y=rng.normal(0.0, spread * 0.3), z=rng.normal(0.0, spread))
        nebulae.append(NebulaRegion(
            id=f"nebula-{k}",
            name=f"Nebula {k + 1}",
            position=position,
            radius=radius,
            density=rng.uniform(0.3, 0.9),
            brightness=config.nebula_brightness * rng.uniform(0.7, 1.0),
            base_color=_nebula_color(rng, config.nebula_color_style),
            accent_color=_nebula_color(rng, config.nebula_color_style),
            noise_scale=rng.uniform(0.5, 2.0),
            noise_detail=float(rng.randint(3, 6)),
            dimensions=Vec3(
                x=radius * rng.uniform(0.8, 1.6),
                y=radius * rng.uniform(0.4, 1.0),
                z=radius * rng.uniform(0.8, 1.6),
            ),
            associated_group_ids=_nearby_groups(position, radius * 2.0, groups),
            seed=f"nebula:{k}",
        ))
    return nebulae
