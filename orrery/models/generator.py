"""Procedural universe generation.

A seeded stochastic grammar builds each system (stars, planets, moons and
sub-moons), then optional feature layers decorate the result. The root stream
is only ever forked, never drawn from: system ``i`` uses ``system:{i}`` and its
``topology`` / ``physics`` / ``orbits`` children, feature layers use their own
labels. Output is a pure function of the config.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from ..constants import GROUP_COLORS, MOON_COLOR, PLANET_COLORS
from ..logging_config import get_logger
from . import features
from .bodies import Body, Moon, Planet, Star
from .config import GenerationConfig
from .entities import Group, GroupChild, GroupChildType, Vec3
from .physics import body_mass, body_radius, orbit_fields, orbital_distance, star_color
from .presets import CountRule, TopologyPreset, get_topology_preset
from .prng import Prng, create_prng
from .save import snapshot_to_dict
from .stats import UniverseStats, compute_stats
from .universe import UniverseState

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Name generation
# ---------------------------------------------------------------------------

_GREEK = [
    "Alpha", "Beta", "Gamma", "Delta", "Epsilon", "Zeta", "Eta", "Theta",
]

_CONSTELLATIONS = ["Centauri", "Orionis", "Cygni", "Tauri", "Lyrae", "Aquilae"]

_PLANET_NAMES = [
    "Mercury", "Venus", "Earth", "Mars", "Jupiter", "Saturn", "Uranus", "Neptune", "Pluto",
]

_MOON_NAMES = ["Moon", "Phobos", "Deimos", "Io", "Europa", "Ganymede", "Callisto", "Titan"]


def _planet_name(count: int) -> str:
    if count <= len(_PLANET_NAMES):
        return _PLANET_NAMES[count - 1]
    if count <= 26:
        return f"Planet {chr(64 + count)}"
    return f"Planet {count}"


def _moon_name(count: int) -> str:
    if count <= len(_MOON_NAMES):
        return _MOON_NAMES[count - 1]
    return f"Moon {count}"


def _clamp(count: int, low: int | None, high: int | None) -> int:
    if low is not None:
        count = max(count, low)
    if high is not None:
        count = min(count, high)
    return count


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SystemSummary:
    """Where one generated system sits in the snapshot."""

    index: int
    id: str  # Prefix of every id in the system, also its feature-layer key
    name: str
    root_id: str
    center_id: str  # Heaviest star; the root in generated systems
    star_count: int
    planet_count: int
    moon_count: int

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "id": self.id,
            "name": self.name,
            "rootId": self.root_id,
            "centerId": self.center_id,
            "starCount": self.star_count,
            "planetCount": self.planet_count,
            "moonCount": self.moon_count,
        }


@dataclass(frozen=True)
class GeneratedUniverse:
    state: UniverseState
    stats: UniverseStats
    seed: int | str
    systems: tuple[SystemSummary, ...]
    generated_at: str | None = None  # Display only, supplied by the caller

    def snapshot(self) -> UniverseState:
        return self.state

    def to_dict(self) -> dict:
        """Snapshot dictionary with the flat stats merged in."""
        data = snapshot_to_dict(self.state)
        data.update(self.stats.to_dict())
        data["seed"] = self.seed
        data["generatedAt"] = self.generated_at
        data["systems"] = [s.to_dict() for s in self.systems]
        return data


# ---------------------------------------------------------------------------
# System generation
# ---------------------------------------------------------------------------


class _SystemBuilder:
    """Builds the bodies of one system from its own three sub-streams."""

    def __init__(self, config: GenerationConfig, topology: TopologyPreset, root: Prng, index: int) -> None:
        self.config = config
        self.topology = topology
        self.index = index
        self.prefix = f"s{index}"

        system_rng = root.fork(f"system:{index}")
        self.topology_rng = system_rng.fork("topology")
        self.physics = system_rng.fork("physics")
        self.orbits = system_rng.fork("orbits")

        self.bodies: dict[str, Body] = {}
        self.counts = {"planet": 0, "moon": 0, "submoon": 0}

    def build(self) -> SystemSummary:
        cfg = self.config
        star_count = self.topology_rng.weighted((1, 2, 3), cfg.star_probabilities)
        constellation = self.topology_rng.choice(_CONSTELLATIONS)

        # Masses first: the heaviest star becomes the centre
        masses = sorted((body_mass(self.physics, cfg, "star") for _ in range(star_count)), reverse=True)
        star_ids = [f"{self.prefix}-star-{rank}" for rank in range(star_count)]
        center_id = star_ids[0]
        self._add_star(star_ids[0], f"{_GREEK[0]} {constellation}", masses[0])

        companions = star_count - 1
        start = self.orbits.uniform(0.0, 360.0) if companions else 0.0
        for rank in range(1, star_count):
            distance = orbital_distance(self.orbits, cfg, 0)
            phase = start + 360.0 * (rank - 1) / companions
            self._add_star(
                star_ids[rank], f"{_GREEK[rank % len(_GREEK)]} {constellation}", masses[rank],
                parent_id=center_id, **orbit_fields(self.orbits, cfg, distance, phase),
            )

        for rank, star_id in enumerate(star_ids):
            # Planets of the centre start outside the companions' shared orbit
            self._add_planets(star_id, companions if rank == 0 else 0)

        return SystemSummary(
            index=self.index,
            id=self.prefix,
            name=constellation,
            root_id=center_id,
            center_id=center_id,
            star_count=star_count,
            planet_count=self.counts["planet"],
            moon_count=self.counts["moon"] + self.counts["submoon"],
        )

    def _next(self, tier: str) -> tuple[str, int]:
        self.counts[tier] += 1
        return f"{self.prefix}-{tier}-{self.counts[tier] - 1}", self.counts[tier]

    def _add_star(self, star_id: str, name: str, mass: float, **kwargs: Any) -> None:
        self.bodies[star_id] = Star(
            id=star_id,
            name=name,
            mass=mass,
            radius=body_radius(self.config, mass),
            color=star_color(mass),
            **kwargs,
        )

    def _draw(self, rule: CountRule, default_p: float) -> int:
        return rule.draw(self.topology_rng, default_p)

    def _add_planets(self, star_id: str, orbit_offset: int) -> None:
        cfg = self.config
        if cfg.max_depth < 2:
            return
        count = _clamp(self._draw(self.topology.planets, cfg.planet_geometric_p), cfg.min_planets, cfg.max_planets)
        for n in range(count):
            planet_id, number = self._next("planet")
            mass = body_mass(self.physics, cfg, "planet")
            distance = orbital_distance(self.orbits, cfg, n + orbit_offset)
            self.bodies[planet_id] = Planet(
                id=planet_id,
                name=_planet_name(number),
                mass=mass,
                radius=body_radius(cfg, mass),
                color=self.physics.choice(PLANET_COLORS),
                parent_id=star_id,
                **orbit_fields(self.orbits, cfg, distance, self.orbits.uniform(0.0, 360.0)),
            )
            self._add_moons(planet_id)

    def _add_moons(self, planet_id: str) -> None:
        cfg = self.config
        if cfg.max_depth < 3:
            return
        count = _clamp(self._draw(self.topology.moons, cfg.moon_geometric_p), cfg.min_moons, cfg.max_moons)
        for n in range(count):
            moon_id = self._add_moon(planet_id, "moon", n)
            if cfg.max_depth >= 4 and self.topology.submoons is not None:
                sub_count = self._draw(self.topology.submoons, min(1.0, cfg.moon_geometric_p * 1.5))
                for m in range(sub_count):
                    self._add_moon(moon_id, "submoon", m)

    def _add_moon(self, parent_id: str, tier: str, n: int) -> str:
        cfg = self.config
        moon_id, number = self._next(tier)
        mass = body_mass(self.physics, cfg, tier)
        distance = orbital_distance(self.orbits, cfg, n, base=cfg.orbit_base * cfg.moon_orbit_scale)
        self.bodies[moon_id] = Moon(
            id=moon_id,
            name=_moon_name(number) if tier == "moon" else f"Moonlet {number}",
            mass=mass,
            radius=body_radius(cfg, mass),
            color=MOON_COLOR,
            parent_id=parent_id,
            **orbit_fields(self.orbits, cfg, distance, self.orbits.uniform(0.0, 360.0)),
        )
        return moon_id


def _link(bodies: Mapping[str, Body]) -> tuple[dict[str, Body], tuple[str, ...]]:
    """Derive every children list and the root list from parent pointers."""
    children: dict[str, list[str]] = {body_id: [] for body_id in bodies}
    roots: list[str] = []
    for body_id, body in bodies.items():
        if body.parent_id is None:
            roots.append(body_id)
        else:
            children[body.parent_id].append(body_id)
    linked = {body_id: replace(body, children=tuple(children[body_id])) for body_id, body in bodies.items()}
    return linked, tuple(roots)


def _validated(config: GenerationConfig | Mapping[str, Any]) -> GenerationConfig:
    if isinstance(config, GenerationConfig):
        return config
    return GenerationConfig.model_validate(dict(config))


def generate_system(config: GenerationConfig | Mapping[str, Any], index: int) -> tuple[SystemSummary, dict[str, Body]]:
    """Generate system ``index`` alone, exactly as ``generate`` would build it
    before feature layers run."""
    config = _validated(config)
    root = create_prng(config.seed if config.seed is not None else 0)
    builder = _SystemBuilder(config, get_topology_preset(config.topology_preset), root, index)
    summary = builder.build()
    bodies, _ = _link(builder.bodies)
    return summary, bodies


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------

def _group_name(index: int) -> str:
    if index < 26:
        return f"Cluster {chr(65 + index)}"
    return f"Cluster {index + 1}"


def _group_depth(group_id: str, parents: Mapping[str, str | None]) -> int:
    depth = 1
    current = parents[group_id]
    while current is not None:
        depth += 1
        current = parents[current]
    return depth


def build_groups(config: GenerationConfig, rng: Prng, system_ids: list[str]) -> dict[str, Group]:
    """Partition systems into clusters and nest some clusters inside earlier ones."""
    if not system_ids:
        return {}
    low, high = config.group_count
    count = rng.randint(min(low, len(system_ids)), min(high, len(system_ids)))
    if count == 0:
        return {}

    group_ids = [f"group-{i}" for i in range(count)]
    sigma = config.group_position_sigma
    looks = [
        (rng.choice(GROUP_COLORS), Vec3(x=rng.normal(0.0, sigma), y=rng.normal(0.0, sigma), z=rng.normal(0.0, sigma)))
        for _ in group_ids
    ]

    members: dict[str, list[GroupChild]] = {gid: [] for gid in group_ids}
    for system_id in system_ids:
        members[rng.choice(group_ids)].append(GroupChild(id=system_id, type=GroupChildType.SYSTEM))

    # Groups only nest under earlier groups, so no cycle can form.
    parents: dict[str, str | None] = {gid: None for gid in group_ids}
    for i in range(1, count):
        if not rng.chance(config.nesting_probability):
            continue
        candidates = [gid for gid in group_ids[:i] if _group_depth(gid, parents) < config.max_group_depth]
        if not candidates:
            continue
        parent = rng.choice(candidates)
        parents[group_ids[i]] = parent
        members[parent].append(GroupChild(id=group_ids[i], type=GroupChildType.GROUP))

    return {
        gid: Group(
            id=gid,
            name=_group_name(i),
            children=tuple(members[gid]),
            parent_group_id=parents[gid],
            color=color,
            position=position,
        )
        for i, (gid, (color, position)) in enumerate(zip(group_ids, looks))
    }


# ---------------------------------------------------------------------------
# Universe generation
# ---------------------------------------------------------------------------

def generate(config: GenerationConfig | Mapping[str, Any], *, generated_at: str | None = None) -> GeneratedUniverse:
    """Build a complete universe. A plain mapping is validated first."""
    config = _validated(config)
    seed = config.seed if config.seed is not None else 0
    topology = get_topology_preset(config.topology_preset)
    root = create_prng(seed)
    logger.debug("generating universe", seed=seed, systems=config.system_count, topology=topology.id)

    bodies: dict[str, Body] = {}
    systems: list[SystemSummary] = []
    for index in range(config.system_count):
        builder = _SystemBuilder(config, topology, root, index)
        systems.append(builder.build())
        bodies.update(builder.bodies)

    # Layers that read the bare hierarchy run before the ones that reshape it.
    features.add_lagrange_points(config, root, bodies)
    features.add_comets(config, root, bodies, systems)
    small_body_fields = features.add_small_body_fields(config, root, bodies, systems)
    disks = features.build_protoplanetary_disks(config, root, systems)
    features.add_rogue_planets(config, root, bodies, len(systems))
    features.add_planetary_rings(config, root, bodies)
    features.convert_black_hole_centres(config, root, bodies, systems)

    groups = build_groups(config, root.fork("groups"), [s.root_id for s in systems]) if config.enable_groups else {}
    nebulae = features.build_nebulae(config, root, groups)

    linked, root_ids = _link(bodies)
    state = UniverseState(
        bodies=linked,
        root_body_ids=root_ids,
        groups=groups,
        root_group_ids=tuple(gid for gid, g in groups.items() if g.parent_group_id is None),
        small_body_fields={f.id: f for f in small_body_fields},
        protoplanetary_disks={d.id: d for d in disks},
        nebulae={n.id: n for n in nebulae},
    )
    stats = compute_stats(state)
    logger.info(
        "universe generated",
        seed=seed,
        systems=len(systems),
        bodies=len(state.bodies),
        groups=len(groups),
    )
    return GeneratedUniverse(
        state=state,
        stats=stats,
        seed=seed,
        systems=tuple(systems),
        generated_at=generated_at,
    )
