"""Tests for procedural universe generation."""

import json
from dataclasses import replace

import pytest
from structlog.testing import capture_logs

from orrery.models.bodies import (
    RING_BEARERS,
    Asteroid,
    AsteroidSubType,
    BlackHole,
    Comet,
    LagrangePoint,
    Moon,
    Planet,
    RoguePlanet,
    Star,
)
from orrery.models.commands import ReplaceSnapshot
from orrery.models.config import GenerationConfig
from orrery.models.entities import BeltType, GroupChildType
from orrery.models.features import _planet_distances
from orrery.models.generator import build_groups, generate, generate_system
from orrery.models.invariants import depth_of, forest_violations, payload_violations
from orrery.models.prng import create_prng
from orrery.models.reducer import apply_command
from orrery.models.stats import compute_stats
from orrery.models.universe import empty_state


def _dump(universe):
    return json.dumps(universe.to_dict(), sort_keys=True)


def _of_type(state, cls):
    return [b for b in state.bodies.values() if isinstance(b, cls)]


class TestDeterminism:
    def test_same_config_byte_identical(self, full_config):
        assert _dump(generate(full_config)) == _dump(generate(full_config))

    def test_mapping_and_model_agree(self):
        data = {"seed": 77, "system_count": 4, "enable_comets": True}
        assert _dump(generate(data)) == _dump(generate(GenerationConfig(**data)))

    def test_different_seeds_differ(self):
        a = generate(GenerationConfig(seed=1, system_count=4))
        b = generate(GenerationConfig(seed=2, system_count=4))
        assert _dump(a) != _dump(b)

    def test_missing_seed_is_zero(self):
        unseeded = generate(GenerationConfig(system_count=3))
        assert unseeded.seed == 0
        assert _dump(unseeded) == _dump(generate(GenerationConfig(seed=0, system_count=3)))

    def test_generated_at_is_display_only(self):
        config = GenerationConfig(seed=5, system_count=2)
        stamped = generate(config, generated_at="2026-01-01T00:00:00Z")
        assert stamped.to_dict()["generatedAt"] == "2026-01-01T00:00:00Z"
        assert stamped.state.same_content(generate(config).state)

    def test_earlier_systems_unaffected_by_count(self):
        """System i is built from its own stream, so adding systems never changes it."""
        small = generate(GenerationConfig(seed="grow", system_count=3))
        large = generate(GenerationConfig(seed="grow", system_count=8))
        for body_id, body in small.state.bodies.items():
            assert large.state.bodies[body_id] == body


class TestHierarchy:
    def test_structure_is_consistent(self, full_universe):
        assert forest_violations(full_universe.state) == []

    def test_zero_systems(self):
        universe = generate(GenerationConfig(system_count=0))
        assert universe.state.bodies == {}
        assert universe.stats.total_bodies == 0

    def test_center_is_heaviest_root_star(self):
        universe = generate(GenerationConfig(seed="stars", system_count=20, star_probabilities=(0, 0, 1)))
        state = universe.state
        for system in universe.systems:
            center = state.bodies[system.center_id]
            assert center.parent_id is None
            assert system.root_id == center.id == f"{system.id}-star-0"
            companions = [state.bodies[c] for c in center.children if isinstance(state.bodies[c], Star)]
            assert len(companions) == 2
            assert all(c.mass <= center.mass for c in companions)

    def test_max_depth_one_has_only_stars(self):
        universe = generate(GenerationConfig(seed=3, system_count=10, max_depth=1))
        assert all(isinstance(b, Star) for b in universe.state.bodies.values())

    def test_max_depth_two_has_no_moons(self):
        universe = generate(GenerationConfig(seed=3, system_count=10, max_depth=2, planet_geometric_p=0.3))
        assert universe.stats.total_planets > 0
        assert universe.stats.total_moons == 0

    def test_planet_clamps(self):
        universe = generate(GenerationConfig(seed=4, system_count=10, min_planets=2, max_planets=3,
                                             star_probabilities=(1, 0, 0)))
        for system in universe.systems:
            assert 2 <= system.planet_count <= 3

    def test_geometric_planet_mean(self):
        """With p = 0.5 the mean number of planets per star is (1 - p) / p = 1."""
        universe = generate(GenerationConfig(
            seed="geometric", system_count=10_000, max_depth=2,
            planet_geometric_p=0.5, star_probabilities=(1, 0, 0),
        ))
        stats = universe.stats
        assert stats.total_stars == 10_000
        assert stats.total_planets / stats.total_stars == pytest.approx(1.0, abs=0.05)

    def test_orbits_are_kinematic(self):
        universe = generate(GenerationConfig(seed=6, system_count=5))
        for planet in _of_type(universe.state, Planet):
            assert planet.orbital_distance > 0
            assert planet.orbital_speed == pytest.approx(20.0 / planet.orbital_distance ** 0.5)
            assert 0.0 <= planet.orbital_phase < 360.0
            assert planet.eccentricity == 0.0

    def test_eccentric_orbits_carry_semi_major_axis(self):
        universe = generate(GenerationConfig(seed=6, system_count=5, eccentricity_style="eccentric"))
        planets = _of_type(universe.state, Planet)
        assert planets
        for planet in planets:
            assert 0.1 <= planet.eccentricity <= 0.7
            assert planet.semi_major_axis == planet.orbital_distance

    def test_summaries_match_stats(self, full_universe):
        systems = full_universe.systems
        assert sum(s.star_count for s in systems) == full_universe.stats.total_stars + sum(
            1 for b in _of_type(full_universe.state, BlackHole)
        )


class TestGenerateSystem:
    def test_matches_full_generation(self):
        config = GenerationConfig(seed="solo", system_count=4)
        universe = generate(config)
        for index in range(4):
            summary, bodies = generate_system(config, index)
            assert summary == universe.systems[index]
            expected = {k: v for k, v in universe.state.bodies.items() if k.startswith(f"s{index}-")}
            assert bodies == expected


class TestTopologies:
    def test_compact_moon_counts(self):
        universe = generate(GenerationConfig(seed=8, system_count=6, topology_preset="compact"))
        state = universe.state
        for system in universe.systems:
            assert system.star_count == 1
            assert 1 <= system.planet_count <= 2
        for planet in _of_type(state, Planet):
            moons = [c for c in planet.children if isinstance(state.bodies[c], Moon)]
            assert 5 <= len(moons) <= 18

    def test_sparse_outpost(self):
        universe = generate(GenerationConfig(seed=9, system_count=30, topology_preset="sparseOutpost"))
        assert all(s.planet_count <= 2 for s in universe.systems)
        assert all(s.star_count == 1 for s in universe.systems)

    def test_deep_hierarchy_has_submoons(self):
        universe = generate(GenerationConfig(seed=10, system_count=5, topology_preset="deepHierarchy"))
        state = universe.state
        submoons = [b for b in _of_type(state, Moon) if isinstance(state.bodies[b.parent_id], Moon)]
        assert submoons
        assert all(b.name.startswith("Moonlet") for b in submoons)
        assert universe.stats.max_depth == 4

    def test_multi_star_heavy(self):
        universe = generate(GenerationConfig(seed=11, system_count=40, topology_preset="multiStarHeavy"))
        multiple = sum(1 for s in universe.systems if s.star_count > 1)
        assert multiple > 30


class TestFeatureLayers:
    def test_rings_do_not_disturb_other_layers(self, full_config):
        with_rings = generate(full_config)
        without = generate(full_config.model_copy(update={"enable_planetary_rings": False}))
        assert dict(with_rings.state.small_body_fields) == dict(without.state.small_body_fields)
        assert dict(with_rings.state.nebulae) == dict(without.state.nebulae)

        def strip(body):
            return replace(body, ring=None) if isinstance(body, RING_BEARERS) else body

        assert {k: strip(b) for k, b in with_rings.state.bodies.items()} == dict(without.state.bodies)
        assert with_rings.stats.total_ringed_planets > 0
        assert without.stats.total_ringed_planets == 0

    def test_comets_do_not_disturb_fields(self, full_config):
        with_comets = generate(full_config)
        without = generate(full_config.model_copy(update={"enable_comets": False}))
        assert dict(with_comets.state.small_body_fields) == dict(without.state.small_body_fields)
        assert dict(with_comets.state.protoplanetary_disks) == dict(without.state.protoplanetary_disks)
        assert set(without.state.bodies) == {
            k for k, b in with_comets.state.bodies.items() if not isinstance(b, Comet)
        }

    def test_planet_distance_index(self, full_universe):
        bodies = full_universe.state.bodies
        index = _planet_distances(bodies)
        for system in full_universe.systems:
            expected = sorted(
                b.orbital_distance for b in bodies.values()
                if isinstance(b, Planet) and b.parent_id == system.center_id
            )
            assert index.get(system.center_id, []) == expected

    def test_many_systems_with_belts_and_comets(self):
        """Per-system layers read one shared planet index, so wide universes stay cheap."""
        config = GenerationConfig(
            seed="wide", system_count=3000, max_depth=2,
            enable_asteroid_belts=True, enable_kuiper_belt=True, enable_comets=True,
        )
        universe = generate(config)
        assert len(universe.systems) == 3000
        assert universe.stats.total_small_body_fields > 0

    def test_comet_orbits(self, full_universe):
        comets = _of_type(full_universe.state, Comet)
        assert comets
        for comet in comets:
            meta = comet.comet
            assert meta.perihelion_distance <= meta.aphelion_distance
            assert 0.0 <= comet.eccentricity < 1.0
            assert comet.semi_major_axis == pytest.approx((meta.perihelion_distance + meta.aphelion_distance) / 2)

    def test_lagrange_markers(self, full_universe):
        state = full_universe.state
        markers = _of_type(state, LagrangePoint)
        assert markers
        for marker in markers:
            meta = marker.lagrange
            secondary = state.bodies[meta.secondary_id]
            assert marker.parent_id == secondary.id
            assert secondary.parent_id == meta.primary_id
            assert marker.id == f"{secondary.id}-L{meta.point_index}"
            assert meta.stable == (meta.point_index in (4, 5))
            assert marker.mass == 0.0

    def test_stable_only_markers(self):
        universe = generate(GenerationConfig(seed=12, system_count=5, enable_lagrange_points=True))
        state = universe.state
        markers = _of_type(state, LagrangePoint)
        assert markers
        assert {m.lagrange.point_index for m in markers} == {4, 5}
        for marker in markers:
            secondary = state.bodies[marker.parent_id]
            offset = 120.0 if marker.lagrange.point_index == 4 else 240.0
            assert marker.orbital_phase == pytest.approx((secondary.orbital_phase + offset) % 360.0)

    def test_trojans_sit_on_stable_points(self, full_universe):
        state = full_universe.state
        trojans = [a for a in _of_type(state, Asteroid) if a.lagrange_host_id is not None]
        assert trojans
        for trojan in trojans:
            host = state.bodies[trojan.lagrange_host_id]
            assert trojan.parent_id == host.id
            assert host.lagrange.stable

    def test_small_body_fields(self, full_universe):
        state = full_universe.state
        fields = list(state.small_body_fields.values())
        kuiper = [f for f in fields if f.belt_type == BeltType.KUIPER]
        assert len(kuiper) == len(full_universe.systems)
        for field in fields:
            assert field.inner_radius < field.outer_radius
            assert field.particle_count > 0
            assert field.host_star_id in state.bodies
        kbos = [a for a in _of_type(state, Asteroid) if a.sub_type == AsteroidSubType.KUIPER_BELT]
        assert full_universe.stats.total_kuiper_objects == len(kbos)

    def test_rogue_planets_are_roots(self, full_universe):
        state = full_universe.state
        rogues = _of_type(state, RoguePlanet)
        assert rogues
        for rogue in rogues:
            assert rogue.parent_id is None
            assert rogue.id in state.root_body_ids
            assert rogue.rogue.show_trajectory is True
        assert full_universe.stats.total_root_systems == len(full_universe.systems)

    def test_black_holes_replace_centres(self):
        config = GenerationConfig(seed=13, system_count=6, enable_black_holes=True, black_hole_frequency=1.0)
        universe = generate(config)
        state = universe.state
        for system in universe.systems:
            hole = state.bodies[system.center_id]
            assert isinstance(hole, BlackHole)
            assert hole.parent_id is None
            assert 5.0 <= hole.mass <= 45.0
            assert payload_violations(hole) == []
        assert universe.stats.stellar_black_holes == 6
        assert forest_violations(state) == []

    def test_disks_and_nebulae(self, full_universe):
        state = full_universe.state
        for disk in state.protoplanetary_disks.values():
            assert disk.central_star_id in state.bodies
            assert disk.inner_radius < disk.outer_radius
        for nebula in state.nebulae.values():
            assert set(nebula.associated_group_ids) <= set(state.groups)

    def test_features_off_by_default(self):
        stats = generate(GenerationConfig(seed=14, system_count=5)).stats
        assert stats.total_comets == 0
        assert stats.total_lagrange_points == 0
        assert stats.total_small_body_fields == 0
        assert stats.total_groups == 0
        assert stats.total_nebulae == 0


class TestGroups:
    def test_every_system_in_exactly_one_group(self, full_universe):
        state = full_universe.state
        members = [
            c.id for g in state.groups.values() for c in g.children if c.type == GroupChildType.SYSTEM
        ]
        assert sorted(members) == sorted(s.root_id for s in full_universe.systems)

    def test_nesting_depth_bounded(self):
        config = GenerationConfig(group_count=(10, 10), nesting_probability=1.0, max_group_depth=2)
        groups = build_groups(config, create_prng(1), [f"s{i}" for i in range(10)])
        for group in groups.values():
            parent = group.parent_group_id
            if parent is not None:
                assert groups[parent].parent_group_id is None

    def test_no_systems_no_groups(self):
        assert build_groups(GenerationConfig(), create_prng(1), []) == {}


class TestOutput:
    def test_stats_match_state(self, full_universe):
        assert full_universe.stats == compute_stats(full_universe.state)

    def test_to_dict_carries_stats_and_systems(self, full_universe):
        data = full_universe.to_dict()
        assert data["totalBodies"] == len(full_universe.state.bodies)
        assert data["seed"] == "full-features"
        assert data["systems"][0]["rootId"] == "s0-star-0"
        assert data["roguePlanetIds"] == list(full_universe.stats.rogue_planet_ids)

    def test_replace_snapshot_round_trip(self, full_universe):
        result = apply_command(empty_state(), ReplaceSnapshot(snapshot=full_universe.snapshot()))
        assert result.next_state.same_content(full_universe.state)

    def test_generation_logged(self):
        with capture_logs() as logs:
            generate(GenerationConfig(seed=1, system_count=2))
        done = [entry for entry in logs if entry["event"] == "universe generated"]
        assert len(done) == 1
        assert done[0]["log_level"] == "info"
        assert done[0]["systems"] == 2

    def test_depth_matches_helper(self, full_universe):
        state = full_universe.state
        assert full_universe.stats.max_depth == max(depth_of(b, state.bodies) for b in state.bodies)
