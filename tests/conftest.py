"""Shared fixtures for the orrery test suite."""

import pytest

from orrery.models.bodies import Moon, Planet, Star
from orrery.models.commands import AddBody
from orrery.models.config import GenerationConfig
from orrery.models.generator import generate
from orrery.models.reducer import apply_commands
from orrery.models.universe import empty_state


@pytest.fixture
def empty():
    return empty_state()


@pytest.fixture
def solar_state():
    """sun -> (earth -> moon, mars); plus a lone second star ``vega``."""
    commands = [
        AddBody(id="sun", body=Star(id="sun", name="Sun", mass=100.0, radius=1.0)),
        AddBody(id="earth", body=Planet(id="earth", name="Earth", parent_id="sun", orbital_distance=5.0)),
        AddBody(id="moon", body=Moon(id="moon", name="Moon", parent_id="earth", orbital_distance=0.5)),
        AddBody(id="mars", body=Planet(id="mars", name="Mars", parent_id="sun", orbital_distance=8.0)),
        AddBody(id="vega", body=Star(id="vega", name="Vega", mass=200.0)),
    ]
    result = apply_commands(empty_state(), commands)
    assert not result.rejected
    return result.next_state


@pytest.fixture
def full_config():
    """Every feature layer switched on with frequencies high enough to fire."""
    return GenerationConfig(
        seed="full-features",
        system_count=6,
        max_depth=3,
        enable_groups=True,
        group_structure_mode="deepHierarchy",
        enable_asteroid_belts=True,
        belt_placement="both",
        enable_kuiper_belt=True,
        enable_planetary_rings=True,
        ring_frequency=0.8,
        enable_comets=True,
        comet_frequency=0.8,
        enable_lagrange_points=True,
        lagrange_marker_mode="all",
        lagrange_pair_scope="both",
        trojan_frequency=0.9,
        enable_protoplanetary_disks=True,
        disk_presence=0.8,
        enable_nebulae=True,
        nebula_density=0.8,
        enable_rogue_planets=True,
        rogue_planet_frequency=0.8,
        enable_black_holes=True,
        black_hole_frequency=0.5,
        black_hole_mass_profile="mixed",
    )


@pytest.fixture
def full_universe(full_config):
    return generate(full_config)
