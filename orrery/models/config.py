"""Validated configuration for the universe generator.

``GenerationConfig`` is the only input the generator accepts. Construction is
the validation boundary: out-of-range values raise ``pydantic.ValidationError``
and star-count probabilities are normalized to sum to 1. Preset names are
resolved here too, so the generator sees one flat set of resolved values.

Precedence, highest first: fields the caller sets explicitly, the topology
preset's suggested values, the style preset, then field defaults. Setting a
density slider counts as setting the matching geometric ``p``.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from .presets import DEFAULT_TOPOLOGY_PRESET, get_style_preset, get_topology_preset


class ScaleMode(enum.Enum):
    TOY = "toy"
    COMPRESSED = "compressed"
    REALISTIC = "realistic"


class EccentricityStyle(enum.Enum):
    CIRCULAR = "circular"
    MIXED = "mixed"
    ECCENTRIC = "eccentric"


class GroupStructureMode(enum.Enum):
    FLAT = "flat"
    GALAXY_CLUSTER = "galaxyCluster"
    DEEP_HIERARCHY = "deepHierarchy"


class BeltPlacement(enum.Enum):
    BETWEEN_PLANETS = "betweenPlanets"
    OUTER_BELT = "outerBelt"
    BOTH = "both"


class SmallBodyDetail(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ULTRA = "ultra"


class KuiperDistanceStyle(enum.Enum):
    TIGHT = "tight"
    CLASSICAL = "classical"
    WIDE = "wide"


class CometOrbitStyle(enum.Enum):
    RARE_LONG = "rareLong"
    MIXED = "mixed"
    MANY_SHORT = "manyShort"


class LagrangeMarkerMode(enum.Enum):
    NONE = "none"
    STABLE_ONLY = "stableOnly"
    ALL = "all"


class LagrangePairScope(enum.Enum):
    STAR_PLANET = "starPlanet"
    PLANET_MOON = "planetMoon"
    BOTH = "both"


class NebulaSizeBias(enum.Enum):
    SMALL = "small"
    MEDIUM = "medium"
    GIANT = "giant"


class NebulaColorStyle(enum.Enum):
    RANDOM = "random"
    WARM = "warm"
    COOL = "cool"
    MIXED = "mixed"


class RogueOrbitStyle(enum.Enum):
    SLOW_DRIFTERS = "slowDrifters"
    MIXED = "mixed"
    FAST_INTRUDERS = "fastIntruders"


class RogueTrajectoryMode(enum.Enum):
    LINEAR = "linear"
    MIXED = "mixed"
    CURVED = "curved"


class BlackHoleMassProfile(enum.Enum):
    STELLAR_ONLY = "stellarOnly"
    MIXED = "mixed"
    SUPERMASSIVE_CENTRES = "supermassiveCentres"


# (orbit_base, orbit_growth, orbit_k)
_SCALE_MODES: dict[str, tuple[float, float, float]] = {
    "toy": (3.0, 1.5, 15.0),
    "compressed": (5.0, 1.6, 18.0),
    "realistic": (8.0, 1.8, 20.0),
}

_ECCENTRICITY_RANGES: dict[EccentricityStyle, tuple[float, float]] = {
    EccentricityStyle.CIRCULAR: (0.0, 0.0),
    EccentricityStyle.MIXED: (0.0, 0.3),
    EccentricityStyle.ECCENTRIC: (0.1, 0.7),
}

_DETAIL_MULTIPLIERS: dict[SmallBodyDetail, float] = {
    SmallBodyDetail.LOW: 0.5,
    SmallBodyDetail.MEDIUM: 1.0,
    SmallBodyDetail.HIGH: 2.0,
    SmallBodyDetail.ULTRA: 3.0,
}

ORBIT_OFFSET_MAGNITUDE = 2.0


def density_to_p(density: float) -> float:
    """Map a 0..1 density slider to a geometric ``p`` (denser means lower p)."""
    return 0.8 - 0.6 * density


def _group_defaults(mode: str, target: int) -> tuple[tuple[int, int], float]:
    if mode == GroupStructureMode.FLAT.value:
        return (target, target), 0.0
    if mode == GroupStructureMode.GALAXY_CLUSTER.value:
        return (max(2, math.floor(target * 0.7)), target), 0.2
    return (math.floor(target * 0.5), math.ceil(target * 1.5)), 0.5


class GenerationConfig(BaseModel):
    """All knobs of one generator run."""

    model_config = {"extra": "forbid", "frozen": True}

    seed: int | str | None = Field(default=None, description="PRNG seed; None means 0")
    topology_preset: str = Field(default=DEFAULT_TOPOLOGY_PRESET, description="Topology preset name")
    style_preset: str | None = Field(default=None, description="Style preset name")

    # Hierarchy
    system_count: int = Field(default=5, ge=0, le=100_000, description="Number of root systems")
    max_stars_per_system: int = Field(default=3, ge=1, le=3)
    star_probabilities: tuple[float, float, float] = Field(
        default=(0.65, 0.25, 0.10),
        validate_default=True,
        description="Probabilities of 1, 2 and 3 stars per system",
    )
    planet_density: float | None = Field(default=None, ge=0.0, le=1.0)
    moon_density: float | None = Field(default=None, ge=0.0, le=1.0)
    planet_geometric_p: float = Field(default=0.4, gt=0.0, le=1.0)
    moon_geometric_p: float = Field(default=0.3, gt=0.0, le=1.0)
    max_depth: int = Field(default=3, ge=1, le=6, description="1 stars only, 2 planets, 3 moons, 4 sub-moons")
    min_planets: int | None = Field(default=None, ge=0)
    max_planets: int | None = Field(default=None, ge=0)
    min_moons: int | None = Field(default=None, ge=0)
    max_moons: int | None = Field(default=None, ge=0)

    # Physics
    mass_mu: float = 1.5
    mass_sigma: float = Field(default=0.8, ge=0.0)
    radius_power: float = Field(default=0.4, gt=0.0)
    radius_scale: float = Field(default=0.15, gt=0.0)

    # Orbits
    scale_mode: ScaleMode | None = None
    orbit_base: float = Field(default=1.0, gt=0.0)
    orbit_growth: float = Field(default=1.8, ge=1.0)
    orbit_jitter: float = Field(default=0.1, ge=0.0, lt=1.0)
    orbit_k: float = Field(default=20.0, gt=0.0)
    moon_orbit_scale: float = Field(default=1.0, gt=0.0)
    eccentricity_style: EccentricityStyle = EccentricityStyle.CIRCULAR
    inclination_max: float = Field(default=0.0, ge=0.0, le=90.0, description="Degrees")
    orbit_offset_enabled: bool = False

    # Groups
    enable_groups: bool = False
    group_structure_mode: GroupStructureMode | None = None
    target_group_count: int | None = Field(default=None, ge=1)
    group_count: tuple[int, int] = (3, 7)
    nesting_probability: float = Field(default=0.2, ge=0.0, le=1.0)
    max_group_depth: int = Field(default=3, ge=1)
    group_position_sigma: float = Field(default=50.0, ge=0.0)

    # Small-body fields
    enable_asteroid_belts: bool = False
    belt_density: float = Field(default=0.5, ge=0.0, le=1.0)
    max_belts_per_system: int = Field(default=2, ge=0, le=5)
    belt_placement: BeltPlacement = BeltPlacement.BETWEEN_PLANETS
    small_body_detail: SmallBodyDetail = SmallBodyDetail.MEDIUM
    enable_kuiper_belt: bool = False
    kuiper_belt_density: float = Field(default=0.5, ge=0.0, le=1.0)
    kuiper_distance_style: KuiperDistanceStyle = KuiperDistanceStyle.CLASSICAL
    kuiper_inclination: float = Field(default=0.5, ge=0.0, le=1.0)

    # Rings
    enable_planetary_rings: bool = False
    ring_frequency: float = Field(default=0.2, ge=0.0, le=1.0)
    ring_prominence: float = Field(default=0.6, ge=0.0, le=1.0)

    # Comets
    enable_comets: bool = False
    comet_frequency: float = Field(default=0.2, ge=0.0, le=1.0)
    comet_orbit_style: CometOrbitStyle = CometOrbitStyle.RARE_LONG
    comet_activity: float = Field(default=0.6, ge=0.0, le=1.0)

    # Lagrange points and Trojans
    enable_lagrange_points: bool = False
    lagrange_marker_mode: LagrangeMarkerMode = LagrangeMarkerMode.STABLE_ONLY
    lagrange_pair_scope: LagrangePairScope = LagrangePairScope.STAR_PLANET
    trojan_frequency: float = Field(default=0.3, ge=0.0, le=1.0)
    trojan_richness: float = Field(default=0.5, ge=0.0, le=1.0)

    # Protoplanetary disks
    enable_protoplanetary_disks: bool = False
    disk_presence: float = Field(default=0.3, ge=0.0, le=1.0)
    disk_density: float = Field(default=0.5, ge=0.0, le=1.0)
    disk_prominence: float = Field(default=0.5, ge=0.0, le=1.0)

    # Nebulae
    enable_nebulae: bool = False
    nebula_density: float = Field(default=0.3, ge=0.0, le=1.0)
    nebula_size_bias: NebulaSizeBias = NebulaSizeBias.MEDIUM
    nebula_color_style: NebulaColorStyle = NebulaColorStyle.MIXED
    nebula_brightness: float = Field(default=0.6, ge=0.0, le=1.0)

    # Rogue planets
    enable_rogue_planets: bool = False
    rogue_planet_frequency: float = Field(default=0.2, ge=0.0, le=1.0)
    rogue_orbit_style: RogueOrbitStyle = RogueOrbitStyle.MIXED
    rogue_trajectory_mode: RogueTrajectoryMode = RogueTrajectoryMode.MIXED
    rogue_show_trajectories: bool = True

    # Black holes
    enable_black_holes: bool = False
    black_hole_frequency: float = Field(default=0.1, ge=0.0, le=1.0)
    black_hole_jet_frequency: float = Field(default=0.3, ge=0.0, le=1.0)
    black_hole_mass_profile: BlackHoleMassProfile = BlackHoleMassProfile.STELLAR_ONLY
    black_hole_spin_level: float = Field(default=0.5, ge=0.0, le=1.0)
    black_hole_accretion_intensity: float = Field(default=0.5, ge=0.0, le=1.0)

    @model_validator(mode="before")
    @classmethod
    def resolve_presets(cls, data: Any) -> Any:
        """Fold preset bundles and derived sliders into plain field values."""
        if not isinstance(data, Mapping):
            return data
        values = dict(data)
        explicit = set(values)
        for tier in ("planet", "moon"):
            if f"{tier}_density" in explicit:
                explicit.add(f"{tier}_geometric_p")

        style = values.get("style_preset")
        if style is not None:
            for key, value in get_style_preset(style).items():
                values.setdefault(key, value)

        for tier in ("planet", "moon"):
            density = values.get(f"{tier}_density")
            if isinstance(density, (int, float)) and f"{tier}_geometric_p" not in values:
                values[f"{tier}_geometric_p"] = density_to_p(density)

        topology = get_topology_preset(values.get("topology_preset", DEFAULT_TOPOLOGY_PRESET))
        for key, value in topology.suggested.items():
            if key not in explicit:
                values[key] = value

        scale = values.get("scale_mode")
        scale_key = scale.value if isinstance(scale, ScaleMode) else scale
        if scale_key in _SCALE_MODES:
            base, growth, k = _SCALE_MODES[scale_key]
            values.setdefault("orbit_base", base)
            values.setdefault("orbit_growth", growth)
            values.setdefault("orbit_k", k)

        mode = values.get("group_structure_mode")
        mode_key = mode.value if isinstance(mode, GroupStructureMode) else mode
        if mode_key is not None:
            target = values.get("target_group_count") or 5
            if isinstance(target, int):
                group_count, nesting = _group_defaults(mode_key, target)
                values.setdefault("group_count", group_count)
                values.setdefault("nesting_probability", nesting)
        return values

    @field_validator("star_probabilities")
    @classmethod
    def normalize_star_probabilities(
        cls, v: tuple[float, float, float], info: ValidationInfo
    ) -> tuple[float, float, float]:
        if any(p < 0 or not math.isfinite(p) for p in v):
            raise ValueError("star probabilities must be finite and non-negative")
        max_stars = info.data.get("max_stars_per_system", 3)
        weights = [p if i < max_stars else 0.0 for i, p in enumerate(v)]
        total = sum(weights)
        if total <= 0:
            raise ValueError("star probabilities must have a positive sum")
        return tuple(p / total for p in weights)  # type: ignore[return-value]

    @field_validator("group_count")
    @classmethod
    def validate_group_count(cls, v: tuple[int, int]) -> tuple[int, int]:
        low, high = v
        if low < 0 or high < low:
            raise ValueError("group_count must be (min, max) with 0 <= min <= max")
        return v

    @model_validator(mode="after")
    def validate_clamps(self) -> GenerationConfig:
        for tier in ("planets", "moons"):
            low = getattr(self, f"min_{tier}")
            high = getattr(self, f"max_{tier}")
            if low is not None and high is not None and low > high:
                raise ValueError(f"min_{tier} must not exceed max_{tier}")
        return self

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def eccentricity_range(self) -> tuple[float, float]:
        return _ECCENTRICITY_RANGES[self.eccentricity_style]

    @property
    def belt_particle_range(self) -> tuple[int, int]:
        """Particle count bounds for one main belt at the current density and detail."""
        scale = _DETAIL_MULTIPLIERS[self.small_body_detail]
        low = math.floor((50 + self.belt_density * 150) * scale)
        high = math.floor((500 + self.belt_density * 500) * scale)
        return low, high

    @property
    def detail_multiplier(self) -> float:
        return _DETAIL_MULTIPLIERS[self.small_body_detail]
