"""Physical properties and kinematic orbits for generated bodies.

Orbits are kinematic, not integrated: a body at distance ``d`` sweeps
``orbit_k / sqrt(d)`` degrees per unit of simulation time.
"""

from __future__ import annotations

import math
from typing import Any

from ..constants import COOLEST_STAR_COLOR, STAR_COLOR_THRESHOLDS
from .config import ORBIT_OFFSET_MAGNITUDE, GenerationConfig
from .prng import Prng

# Multiplier applied to the shared log-normal mass draw per hierarchy tier
TIER_MASS_SCALE: dict[str, float] = {
    "star": 100.0,
    "planet": 10.0,
    "moon": 1.0,
    "submoon": 0.3,
}


def body_mass(rng: Prng, config: GenerationConfig, tier: str) -> float:
    return rng.log_normal(config.mass_mu, config.mass_sigma) * TIER_MASS_SCALE[tier]


def body_radius(config: GenerationConfig, mass: float) -> float:
    return config.radius_scale * mass ** config.radius_power


def star_color(mass: float) -> str:
    """Spectral-class colour for a star of ``mass``."""
    for threshold, color in STAR_COLOR_THRESHOLDS:
        if mass > threshold:
            return color
    return COOLEST_STAR_COLOR


def orbital_distance(rng: Prng, config: GenerationConfig, index: int, base: float | None = None) -> float:
    """Distance of the ``index``-th child: geometric spacing with multiplicative jitter."""
    if base is None:
        base = config.orbit_base
    jitter = config.orbit_jitter * rng.uniform(-1.0, 1.0)
    return base * config.orbit_growth ** index * (1.0 + jitter)


def orbital_speed(config: GenerationConfig, distance: float) -> float:
    if distance <= 0:
        return 0.0
    return config.orbit_k / math.sqrt(distance)


def orbit_fields(rng: Prng, config: GenerationConfig, distance: float, phase: float) -> dict[str, Any]:
    """Keyword arguments describing one orbit, including shape and tilt."""
    low, high = config.eccentricity_range
    eccentricity = rng.uniform(low, high) if high > 0 else 0.0
    orbit: dict[str, Any] = {
        "orbital_distance": distance,
        "orbital_speed": orbital_speed(config, distance),
        "orbital_phase": phase % 360.0,
        "eccentricity": eccentricity,
        "semi_major_axis": distance if eccentricity > 0 else None,
    }
    if config.inclination_max > 0:
        orbit["orbit_rot_x"] = rng.uniform(-config.inclination_max, config.inclination_max)
    if config.orbit_offset_enabled:
        orbit["orbit_offset_x"] = rng.uniform(-ORBIT_OFFSET_MAGNITUDE, ORBIT_OFFSET_MAGNITUDE)
        orbit["orbit_offset_z"] = rng.uniform(-ORBIT_OFFSET_MAGNITUDE, ORBIT_OFFSET_MAGNITUDE)
    return orbit
