"""Named parameter bundles for the universe generator.

Topology presets describe how many children each tier of a system gets;
style presets are plain overrides for GenerationConfig fields. Neither adds
a code path to the generator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..exceptions import UnknownPresetError
from .prng import Prng


@dataclass(frozen=True)
class CountRule:
    """How many children a node gets at one tier of the hierarchy."""

    kind: str = "geometric"  # "geometric", "uniform" or "table"
    p: float | None = None  # None = use the config's p for this tier
    low: int = 0
    high: int = 0
    table: tuple[tuple[int, float], ...] = ()  # (count, weight) pairs
    min_count: int = 0
    max_count: int | None = None
    presence: float = 1.0  # Chance the node has any children at this tier

    def draw(self, rng: Prng, default_p: float) -> int:
        if self.presence < 1.0 and not rng.chance(self.presence):
            return 0
        if self.kind == "uniform":
            count = rng.randint(self.low, self.high)
        elif self.kind == "table":
            count = rng.weighted([c for c, _ in self.table], [w for _, w in self.table])
        else:
            count = rng.geometric(self.p if self.p is not None else default_p)
        count = max(count, self.min_count)
        if self.max_count is not None:
            count = min(count, self.max_count)
        return count


@dataclass(frozen=True)
class TopologyPreset:
    id: str
    name: str
    description: str
    planets: CountRule = field(default_factory=CountRule)
    moons: CountRule = field(default_factory=CountRule)
    submoons: CountRule | None = None
    suggested: dict[str, Any] = field(default_factory=dict)


TOPOLOGY_PRESETS: dict[str, TopologyPreset] = {
    p.id: p
    for p in (
        TopologyPreset(
            id="classic",
            name="Classic",
            description="1-3 stars with geometric planet and moon counts",
            submoons=CountRule(),
        ),
        TopologyPreset(
            id="compact",
            name="Compact",
            description="Only 1-2 planets but each has 5-18 moons",
            planets=CountRule(kind="uniform", low=1, high=2),
            moons=CountRule(p=0.08, min_count=5, max_count=18),
            suggested={
                "star_probabilities": (1.0, 0.0, 0.0),
                "planet_geometric_p": 0.9,
                "moon_geometric_p": 0.08,
            },
        ),
        TopologyPreset(
            id="multiStarHeavy",
            name="Multi-Star Heavy",
            description="Mostly binary and ternary systems with few planets",
            planets=CountRule(kind="uniform", low=1, high=4),
            moons=CountRule(kind="uniform", low=1, high=3, presence=0.7),
            suggested={
                "star_probabilities": (0.05, 0.55, 0.40),
                "planet_geometric_p": 0.6,
                "moon_geometric_p": 0.5,
            },
        ),
        TopologyPreset(
            id="moonRich",
            name="Moon-Rich",
            description="Every planet has 4-25 moons",
            planets=CountRule(kind="uniform", low=3, high=6),
            moons=CountRule(p=0.05, min_count=4, max_count=25),
            suggested={
                "star_probabilities": (1.0, 0.0, 0.0),
                "planet_geometric_p": 0.3,
                "moon_geometric_p": 0.05,
            },
        ),
        TopologyPreset(
            id="sparseOutpost",
            name="Sparse Outpost",
            description="One star, 0-2 planets, most without moons",
            planets=CountRule(kind="table", table=((0, 0.15), (1, 0.60), (2, 0.25))),
            moons=CountRule(kind="table", table=((1, 0.85), (2, 0.15)), presence=0.25),
            suggested={
                "star_probabilities": (1.0, 0.0, 0.0),
                "planet_geometric_p": 0.95,
                "moon_geometric_p": 0.95,
                "max_depth": 3,
            },
        ),
        TopologyPreset(
            id="deepHierarchy",
            name="Deep Hierarchy",
            description="Half of all moons carry 1-4 sub-moons",
            planets=CountRule(kind="uniform", low=2, high=5),
            moons=CountRule(kind="uniform", low=2, high=6),
            submoons=CountRule(kind="uniform", low=1, high=4, presence=0.5),
            suggested={
                "star_probabilities": (1.0, 0.0, 0.0),
                "planet_geometric_p": 0.35,
                "moon_geometric_p": 0.25,
                "max_depth": 6,
            },
        ),
    )
}

DEFAULT_TOPOLOGY_PRESET = "classic"


def get_topology_preset(name: str) -> TopologyPreset:
    try:
        return TOPOLOGY_PRESETS[name]
    except KeyError:
        raise UnknownPresetError("topology", name, sorted(TOPOLOGY_PRESETS)) from None


# ---------------------------------------------------------------------------
# Style presets
# ---------------------------------------------------------------------------

STYLE_PRESETS: dict[str, dict[str, Any]] = {
    "sparse": {
        "system_count": 3,
        "max_stars_per_system": 1,
        "max_depth": 2,
        "planet_density": 0.8,
        "moon_density": 0.8,
        "eccentricity_style": "circular",
        "inclination_max": 5.0,
    },
    "solarLike": {
        "system_count": 5,
        "max_stars_per_system": 2,
        "max_depth": 3,
        "planet_density": 0.5,
        "moon_density": 0.6,
        "eccentricity_style": "circular",
        "inclination_max": 10.0,
        "enable_asteroid_belts": True,
        "belt_density": 0.4,
        "max_belts_per_system": 1,
        "belt_placement": "betweenPlanets",
        "enable_planetary_rings": True,
        "ring_frequency": 0.3,
        "ring_prominence": 0.7,
        "enable_comets": True,
        "comet_frequency": 0.3,
        "comet_orbit_style": "rareLong",
        "comet_activity": 0.5,
        "enable_lagrange_points": True,
        "lagrange_marker_mode": "all",
        "trojan_frequency": 0.3,
        "trojan_richness": 0.4,
        "lagrange_pair_scope": "starPlanet",
    },
    "crowded": {
        "system_count": 15,
        "max_stars_per_system": 3,
        "max_depth": 3,
        "planet_density": 0.3,
        "moon_density": 0.4,
        "eccentricity_style": "mixed",
        "inclination_max": 25.0,
        "enable_asteroid_belts": True,
        "belt_density": 0.6,
        "max_belts_per_system": 2,
        "belt_placement": "both",
        "enable_planetary_rings": True,
        "ring_frequency": 0.6,
        "ring_prominence": 0.6,
        "enable_comets": True,
        "comet_frequency": 0.5,
        "comet_orbit_style": "mixed",
        "comet_activity": 0.7,
        "enable_lagrange_points": True,
        "lagrange_marker_mode": "all",
        "trojan_frequency": 0.6,
        "trojan_richness": 0.7,
        "lagrange_pair_scope": "starPlanet",
    },
    "superDenseExperimental": {
        "system_count": 50,
        "max_stars_per_system": 3,
        "max_depth": 4,
        "planet_density": 0.2,
        "moon_density": 0.3,
        "enable_groups": True,
        "target_group_count": 8,
        "group_structure_mode": "deepHierarchy",
        "eccentricity_style": "eccentric",
        "inclination_max": 45.0,
        "orbit_offset_enabled": True,
        "enable_asteroid_belts": True,
        "belt_density": 0.7,
        "max_belts_per_system": 3,
        "belt_placement": "both",
        "enable_planetary_rings": True,
        "ring_frequency": 0.9,
        "ring_prominence": 0.9,
        "enable_comets": True,
        "comet_frequency": 0.8,
        "comet_orbit_style": "manyShort",
        "comet_activity": 0.9,
        "enable_lagrange_points": True,
        "lagrange_marker_mode": "all",
        "trojan_frequency": 0.8,
        "trojan_richness": 0.9,
        "lagrange_pair_scope": "both",
    },
}


def get_style_preset(name: str) -> dict[str, Any]:
    try:
        return dict(STYLE_PRESETS[name])
    except KeyError:
        raise UnknownPresetError("style", name, sorted(STYLE_PRESETS)) from None
