"""Tests for the command reducer."""

from dataclasses import replace

import pytest

from orrery.models.bodies import Asteroid, LagrangePoint, LagrangePointMeta, Moon, Planet, PlanetaryRing, Star, Vec3
from orrery.models.commands import (
    AddBody,
    AddGroup,
    AddNebula,
    AddProtoplanetaryDisk,
    AddSmallBodyField,
    AddToGroup,
    AttachBody,
    Command,
    DetachBody,
    MoveToGroup,
    RemoveBody,
    RemoveFromGroup,
    RemoveGroup,
    RemoveNebula,
    RemoveRing,
    RemoveSmallBodyField,
    ReplaceSnapshot,
    SetBelts,
    Tick,
    UpdateBody,
    UpdateGroup,
    UpdateNebula,
    UpdateRing,
    UpdateSmallBodyField,
)
from orrery.models.entities import (
    AsteroidBelt,
    Group,
    GroupChild,
    GroupChildType,
    NebulaRegion,
    ProtoplanetaryDisk,
    SmallBodyField,
)
from orrery.models.events import EventType, RejectionReason
from orrery.models.invariants import forest_violations
from orrery.models.prng import create_prng
from orrery.models.reducer import apply_command, apply_commands, default_ring_for
from orrery.models.save import snapshot_to_dict
from orrery.models.universe import empty_state


def _only_event(result):
    assert len(result.events) == 1
    return result.events[0]


def _assert_rejected(state, result, event_type, reason):
    ev = _only_event(result)
    assert ev.type == event_type
    assert ev.reason == reason
    assert result.rejected
    assert result.next_state is state


def _system(system_id, group_id):
    return AddToGroup(group_id=group_id, child=GroupChild(id=system_id, type=GroupChildType.SYSTEM))


def _field(field_id="belt-1"):
    return SmallBodyField(
        id=field_id, system_id="sun", host_star_id="sun", inner_radius=2.0, outer_radius=3.0,
        thickness=0.2, particle_count=100, base_color="#000000", highlight_color="#FFFFFF",
    )


def _marker(marker_id, parent_id):
    """An L4 marker for the sun/earth pair hung under ``parent_id``."""
    return LagrangePoint(
        id=marker_id, name="L4", parent_id=parent_id,
        lagrange=LagrangePointMeta(primary_id="sun", secondary_id="earth", point_index=4, stable=True),
    )


class TestTick:
    def test_tick_advances_time(self, empty):
        result = apply_command(empty, Tick(dt=0.5))
        assert result.next_state.simulation_time == 0.5
        assert _only_event(result).type == EventType.TICKED

    def test_tick_accumulates(self, empty):
        result = apply_commands(empty, [Tick(dt=1.0), Tick(dt=2.5)])
        assert result.next_state.simulation_time == 3.5


class TestAddBody:
    def test_add_root(self, empty):
        result = apply_command(empty, AddBody(id="sun", body=Star(id="ignored", name="Sun")))
        state = result.next_state
        assert state.bodies["sun"].id == "sun"
        assert state.root_body_ids == ("sun",)
        assert _only_event(result).type == EventType.BODY_ADDED

    def test_add_child_links_parent(self, solar_state):
        assert solar_state.bodies["sun"].children == ("earth", "mars")
        assert solar_state.bodies["earth"].children == ("moon",)
        assert solar_state.root_body_ids == ("sun", "vega")

    def test_supplied_children_are_reset(self, empty):
        body = Star(id="s", name="S", children=("ghost",))
        result = apply_command(empty, AddBody(id="s", body=body))
        assert result.next_state.bodies["s"].children == ()

    def test_duplicate_rejected(self, solar_state):
        result = apply_command(solar_state, AddBody(id="sun", body=Star(id="sun", name="Again")))
        _assert_rejected(solar_state, result, EventType.ADD_BODY_FAILED, RejectionReason.DUPLICATE)

    def test_dangling_parent_rejected(self, solar_state):
        body = Planet(id="p", name="P", parent_id="nowhere")
        result = apply_command(solar_state, AddBody(id="p", body=body))
        _assert_rejected(solar_state, result, EventType.PARENT_NOT_FOUND, RejectionReason.NOT_FOUND)

    def test_invalid_payload_rejected(self, solar_state):
        ring = PlanetaryRing(inner_radius_multiplier=4.0, outer_radius_multiplier=2.0)
        result = apply_command(solar_state, AddBody(id="p", body=Planet(id="p", name="P", ring=ring)))
        _assert_rejected(solar_state, result, EventType.ADD_BODY_FAILED, RejectionReason.INVALID)

    def test_lagrange_point_with_missing_reference_rejected(self, solar_state):
        marker = LagrangePoint(
            id="m", name="M", parent_id="earth",
            lagrange=LagrangePointMeta(primary_id="sun", secondary_id="ghost", point_index=4, stable=True),
        )
        result = apply_command(solar_state, AddBody(id="m", body=marker))
        _assert_rejected(solar_state, result, EventType.ADD_BODY_FAILED, RejectionReason.INVALID)


class TestUpdateBody:
    def test_update_applies_fields(self, solar_state):
        result = apply_command(solar_state, UpdateBody(id="earth", patch={"mass": 3.0, "color": "#00FF00"}))
        earth = result.next_state.bodies["earth"]
        assert earth.mass == 3.0
        assert earth.color == "#00FF00"
        assert _only_event(result).data["fields"] == ["color", "mass"]

    def test_structural_fields_ignored(self, solar_state):
        """Only hierarchy commands may change parent or children."""
        patch = {"parent_id": "vega", "children": (), "id": "x"}
        result = apply_command(solar_state, UpdateBody(id="earth", patch=patch))
        ev = _only_event(result)
        assert ev.type == EventType.BODY_UPDATED
        assert ev.data["fields"] == []
        assert ev.data["ignored"] == ["children", "id", "parent_id"]
        assert result.next_state is solar_state

    def test_variant_field_on_wrong_variant_ignored(self, solar_state):
        result = apply_command(solar_state, UpdateBody(id="sun", patch={"ring": PlanetaryRing()}))
        assert _only_event(result).data["ignored"] == ["ring"]
        assert result.next_state is solar_state

    def test_lagrange_positions_read_only(self, solar_state):
        marker = LagrangePoint(
            id="earth-L4", name="L4", parent_id="earth", orbital_distance=5.0,
            lagrange=LagrangePointMeta(primary_id="sun", secondary_id="earth", point_index=4, stable=True),
        )
        state = apply_command(solar_state, AddBody(id="earth-L4", body=marker)).next_state
        result = apply_command(state, UpdateBody(id="earth-L4", patch={"orbital_distance": 9.0, "name": "Greeks"}))
        updated = result.next_state.bodies["earth-L4"]
        assert updated.orbital_distance == 5.0
        assert updated.name == "Greeks"

    def test_missing_body(self, solar_state):
        result = apply_command(solar_state, UpdateBody(id="nope", patch={"mass": 1.0}))
        _assert_rejected(solar_state, result, EventType.BODY_NOT_FOUND, RejectionReason.NOT_FOUND)

    def test_invalid_result_rejected(self, solar_state):
        bad = PlanetaryRing(inner_radius_multiplier=5.0, outer_radius_multiplier=1.0)
        result = apply_command(solar_state, UpdateBody(id="earth", patch={"ring": bad}))
        _assert_rejected(solar_state, result, EventType.UPDATE_BODY_FAILED, RejectionReason.INVALID)


class TestRemoveBody:
    def test_cascade_removes_whole_subtree(self, solar_state):
        result = apply_command(solar_state, RemoveBody(id="sun"))
        state = result.next_state
        assert set(state.bodies) == {"vega"}
        assert state.root_body_ids == ("vega",)
        ev = _only_event(result)
        assert ev.data["removedIds"][0] == "sun"
        assert set(ev.data["removedIds"]) == {"sun", "earth", "moon", "mars"}

    def test_removing_child_unlinks_from_parent(self, solar_state):
        state = apply_command(solar_state, RemoveBody(id="earth")).next_state
        assert state.bodies["sun"].children == ("mars",)
        assert "moon" not in state.bodies
        assert forest_violations(state) == []

    def test_removal_prunes_group_references(self, solar_state):
        state = apply_commands(solar_state, [
            AddGroup(id="g", group=Group(id="g", name="G")),
            _system("sun", "g"),
        ]).next_state
        state = apply_command(state, RemoveBody(id="sun")).next_state
        assert state.groups["g"].children == ()

    def test_missing_body(self, solar_state):
        result = apply_command(solar_state, RemoveBody(id="nope"))
        _assert_rejected(solar_state, result, EventType.BODY_NOT_FOUND, RejectionReason.NOT_FOUND)

    def test_marker_under_primary_goes_with_secondary(self, solar_state):
        state = apply_command(solar_state, AddBody(id="earth-L4", body=_marker("earth-L4", "sun"))).next_state
        result = apply_command(state, RemoveBody(id="earth"))
        assert "earth-L4" not in result.next_state.bodies
        assert "earth-L4" in _only_event(result).data["removedIds"]
        assert result.next_state.bodies["sun"].children == ("mars",)
        assert forest_violations(result.next_state) == []

    def test_marker_takes_its_trojans_along(self, solar_state):
        state = apply_commands(solar_state, [
            AddBody(id="earth-L4", body=_marker("earth-L4", "sun")),
            AddBody(id="trojan", body=Asteroid(id="trojan", name="T", parent_id="earth-L4",
                                               lagrange_host_id="earth-L4")),
        ]).next_state
        state = apply_command(state, RemoveBody(id="earth")).next_state
        assert "trojan" not in state.bodies
        assert forest_violations(state) == []

    def test_trojan_elsewhere_loses_host(self, solar_state):
        state = apply_commands(solar_state, [
            AddBody(id="earth-L4", body=_marker("earth-L4", "sun")),
            AddBody(id="stray", body=Asteroid(id="stray", name="S", parent_id="mars",
                                              lagrange_host_id="earth-L4")),
        ]).next_state
        state = apply_command(state, RemoveBody(id="earth")).next_state
        assert state.bodies["stray"].lagrange_host_id is None

    def test_root_marker_removed_with_primary(self, solar_state):
        state = apply_command(solar_state, AddBody(id="earth-L4", body=_marker("earth-L4", None))).next_state
        state = apply_command(state, RemoveBody(id="sun")).next_state
        assert set(state.bodies) == {"vega"}
        assert state.root_body_ids == ("vega",)
        assert forest_violations(state) == []


class TestAttachDetach:
    def test_attach_moves_between_parents(self, solar_state):
        result = apply_command(solar_state, AttachBody(child_id="moon", parent_id="mars"))
        state = result.next_state
        assert state.bodies["moon"].parent_id == "mars"
        assert state.bodies["mars"].children == ("moon",)
        assert state.bodies["earth"].children == ()
        assert _only_event(result).data["previousParentId"] == "earth"
        assert forest_violations(state) == []

    def test_attach_root_leaves_root_list(self, solar_state):
        state = apply_command(solar_state, AttachBody(child_id="vega", parent_id="sun")).next_state
        assert state.root_body_ids == ("sun",)
        assert state.bodies["sun"].children == ("earth", "mars", "vega")

    def test_attach_same_parent_is_noop(self, solar_state):
        result = apply_command(solar_state, AttachBody(child_id="moon", parent_id="earth"))
        assert result.next_state is solar_state
        assert not result.rejected

    def test_cycle_rejected(self, empty):
        chain = apply_commands(empty, [
            AddBody(id="a", body=Star(id="a", name="A")),
            AddBody(id="b", body=Planet(id="b", name="B", parent_id="a")),
            AddBody(id="c", body=Moon(id="c", name="C", parent_id="b")),
        ]).next_state
        result = apply_command(chain, AttachBody(child_id="a", parent_id="c"))
        _assert_rejected(chain, result, EventType.ATTACH_FAILED, RejectionReason.CYCLE)

    def test_self_attach_rejected(self, solar_state):
        result = apply_command(solar_state, AttachBody(child_id="earth", parent_id="earth"))
        _assert_rejected(solar_state, result, EventType.ATTACH_FAILED, RejectionReason.CYCLE)

    def test_attach_missing_reports_which(self, solar_state):
        result = apply_command(solar_state, AttachBody(child_id="ghost", parent_id="sun"))
        _assert_rejected(solar_state, result, EventType.ATTACH_FAILED, RejectionReason.NOT_FOUND)
        assert result.events[0].data["missing"] == ["ghost"]

    def test_detach_makes_root(self, solar_state):
        result = apply_command(solar_state, DetachBody(child_id="earth"))
        state = result.next_state
        earth = state.bodies["earth"]
        assert earth.parent_id is None
        assert earth.orbital_distance == 0.0
        assert earth.children == ("moon",)
        assert state.root_body_ids == ("sun", "vega", "earth")
        assert forest_violations(state) == []

    def test_detach_root_rejected(self, solar_state):
        result = apply_command(solar_state, DetachBody(child_id="sun"))
        _assert_rejected(solar_state, result, EventType.DETACH_FAILED, RejectionReason.NOT_ATTACHED)

    def test_detach_missing_rejected(self, solar_state):
        result = apply_command(solar_state, DetachBody(child_id="ghost"))
        _assert_rejected(solar_state, result, EventType.DETACH_FAILED, RejectionReason.NOT_FOUND)

    def test_lagrange_marker_cannot_be_moved(self, solar_state):
        state = apply_command(solar_state, AddBody(id="earth-L4", body=_marker("earth-L4", "sun"))).next_state
        attach = apply_command(state, AttachBody(child_id="earth-L4", parent_id="mars"))
        _assert_rejected(state, attach, EventType.ATTACH_FAILED, RejectionReason.UNSUPPORTED)
        detach = apply_command(state, DetachBody(child_id="earth-L4"))
        _assert_rejected(state, detach, EventType.DETACH_FAILED, RejectionReason.UNSUPPORTED)

    def test_random_reparenting_stays_acyclic(self, empty):
        """Hundreds of random attach and detach commands never break the forest."""
        rng = create_prng("reparent")
        state = apply_commands(
            empty, [AddBody(id=f"b{i}", body=Star(id=f"b{i}", name=f"B{i}")) for i in range(12)],
        ).next_state
        ids = [f"b{i}" for i in range(12)]
        for _ in range(400):
            if rng.chance(0.8):
                cmd = AttachBody(child_id=rng.choice(ids), parent_id=rng.choice(ids))
            else:
                cmd = DetachBody(child_id=rng.choice(ids))
            state = apply_command(state, cmd).next_state
            assert forest_violations(state) == []


class TestGroups:
    @pytest.fixture
    def grouped(self, solar_state):
        return apply_commands(solar_state, [
            AddGroup(id="outer", group=Group(id="outer", name="Outer")),
            AddGroup(id="inner", group=Group(id="inner", name="Inner", parent_group_id="outer")),
            _system("sun", "inner"),
        ]).next_state

    def test_nested_add(self, grouped):
        assert grouped.root_group_ids == ("outer",)
        assert grouped.groups["outer"].group_ids() == ["inner"]
        assert grouped.groups["inner"].has_child("sun", GroupChildType.SYSTEM)
        assert forest_violations(grouped) == []

    def test_add_group_missing_parent(self, solar_state):
        result = apply_command(solar_state, AddGroup(id="g", group=Group(id="g", name="G", parent_group_id="x")))
        _assert_rejected(solar_state, result, EventType.GROUP_NOT_FOUND, RejectionReason.NOT_FOUND)

    def test_duplicate_group_rejected(self, grouped):
        result = apply_command(grouped, AddGroup(id="outer", group=Group(id="outer", name="Again")))
        _assert_rejected(grouped, result, EventType.ADD_GROUP_FAILED, RejectionReason.DUPLICATE)

    def test_system_moves_between_groups(self, grouped):
        """A system belongs to at most one group."""
        state = apply_command(grouped, _system("sun", "outer")).next_state
        assert not state.groups["inner"].has_child("sun", GroupChildType.SYSTEM)
        assert state.groups["outer"].has_child("sun", GroupChildType.SYSTEM)
        assert forest_violations(state) == []

    def test_already_in_group_rejected(self, grouped):
        result = apply_command(grouped, _system("sun", "inner"))
        _assert_rejected(grouped, result, EventType.CHILD_ALREADY_IN_GROUP, RejectionReason.DUPLICATE)

    def test_non_root_body_cannot_be_grouped(self, grouped):
        result = apply_command(grouped, _system("earth", "outer"))
        _assert_rejected(grouped, result, EventType.ADD_TO_GROUP_FAILED, RejectionReason.INVALID)

    def test_group_cycle_rejected(self, grouped):
        child = GroupChild(id="outer", type=GroupChildType.GROUP)
        result = apply_command(grouped, AddToGroup(group_id="inner", child=child))
        _assert_rejected(grouped, result, EventType.ADD_TO_GROUP_FAILED, RejectionReason.CYCLE)

    def test_remove_from_group(self, grouped):
        result = apply_command(grouped, RemoveFromGroup(group_id="outer", child_id="inner"))
        state = result.next_state
        assert state.groups["inner"].parent_group_id is None
        assert set(state.root_group_ids) == {"outer", "inner"}
        assert forest_violations(state) == []

    def test_remove_from_group_missing_child(self, grouped):
        result = apply_command(grouped, RemoveFromGroup(group_id="outer", child_id="vega"))
        _assert_rejected(grouped, result, EventType.CHILD_NOT_IN_GROUP, RejectionReason.NOT_FOUND)

    def test_remove_from_group_matches_child_type(self, grouped):
        """A system and a sub-group may share an id; the requested kind is the one removed."""
        state = apply_commands(grouped, [
            AddGroup(id="vega", group=Group(id="vega", name="Vega cluster", parent_group_id="outer")),
            _system("vega", "outer"),
        ]).next_state
        cmd = RemoveFromGroup(group_id="outer", child_id="vega", child_type=GroupChildType.SYSTEM)
        result = apply_command(state, cmd)
        outer = result.next_state.groups["outer"]
        assert outer.has_child("vega", GroupChildType.GROUP)
        assert not outer.has_child("vega", GroupChildType.SYSTEM)
        assert _only_event(result).data["childType"] == "system"
        assert forest_violations(result.next_state) == []

    def test_move_group_to_top_level(self, grouped):
        cmd = MoveToGroup(child_id="inner", child_type=GroupChildType.GROUP, target_group_id=None)
        state = apply_command(grouped, cmd).next_state
        assert "inner" in state.root_group_ids
        assert state.groups["outer"].children == ()

    def test_move_into_own_descendant_rejected(self, grouped):
        cmd = MoveToGroup(child_id="outer", child_type=GroupChildType.GROUP, target_group_id="inner")
        result = apply_command(grouped, cmd)
        _assert_rejected(grouped, result, EventType.MOVE_TO_GROUP_FAILED, RejectionReason.CYCLE)

    def test_update_group_ignores_structure(self, grouped):
        result = apply_command(grouped, UpdateGroup(id="inner", patch={"name": "Core", "parent_group_id": None}))
        group = result.next_state.groups["inner"]
        assert group.name == "Core"
        assert group.parent_group_id == "outer"
        assert _only_event(result).data["ignored"] == ["parent_group_id"]

    def test_remove_group_promotes_children(self, grouped):
        """Nested groups move up a level and systems are released."""
        state = apply_command(grouped, AddGroup(id="leaf", group=Group(id="leaf", name="Leaf",
                                                                        parent_group_id="inner"))).next_state
        result = apply_command(state, RemoveGroup(id="inner"))
        after = result.next_state
        assert "inner" not in after.groups
        assert after.groups["leaf"].parent_group_id == "outer"
        assert after.groups["outer"].group_ids() == ["leaf"]
        assert _only_event(result).data["releasedSystemIds"] == ["sun"]
        assert forest_violations(after) == []

    def test_remove_root_group_promotes_to_roots(self, grouped):
        state = apply_command(grouped, RemoveGroup(id="outer")).next_state
        assert state.root_group_ids == ("inner",)
        assert state.groups["inner"].parent_group_id is None


class TestEntityCollections:
    def test_small_body_field_lifecycle(self, solar_state):
        state = apply_command(solar_state, AddSmallBodyField(small_body_field=_field())).next_state
        assert "belt-1" in state.small_body_fields

        dup = apply_command(state, AddSmallBodyField(small_body_field=_field()))
        _assert_rejected(state, dup, EventType.SMALL_BODY_FIELD_EXISTS, RejectionReason.DUPLICATE)

        state = apply_command(state, UpdateSmallBodyField(id="belt-1", patch={"opacity": 0.1})).next_state
        assert state.small_body_fields["belt-1"].opacity == 0.1

        state = apply_command(state, RemoveSmallBodyField(id="belt-1")).next_state
        assert state.small_body_fields == {}

        missing = apply_command(state, RemoveSmallBodyField(id="belt-1"))
        _assert_rejected(state, missing, EventType.SMALL_BODY_FIELD_NOT_FOUND, RejectionReason.NOT_FOUND)

    def test_disk_add_duplicate(self, solar_state):
        disk = ProtoplanetaryDisk(
            id="d", system_id="sun", central_star_id="sun", inner_radius=0.5, outer_radius=4.0,
            thickness=0.1, particle_count=1000, base_color="#111111", highlight_color="#EEEEEE",
        )
        state = apply_command(solar_state, AddProtoplanetaryDisk(disk=disk)).next_state
        result = apply_command(state, AddProtoplanetaryDisk(disk=disk))
        _assert_rejected(state, result, EventType.PROTOPLANETARY_DISK_EXISTS, RejectionReason.DUPLICATE)

    def test_nebula_update_and_remove(self, empty):
        nebula = NebulaRegion(
            id="n", name="N", position=Vec3(), radius=50.0, density=0.5, brightness=0.5,
            base_color="#FF0000", accent_color="#00FF00",
        )
        state = apply_command(empty, AddNebula(nebula=nebula)).next_state
        state = apply_command(state, UpdateNebula(id="n", patch={"radius": 80.0, "id": "z"})).next_state
        assert state.nebulae["n"].radius == 80.0
        assert state.nebulae["n"].id == "n"
        result = apply_command(state, RemoveNebula(id="n"))
        assert result.next_state.nebulae == {}
        missing = apply_command(empty, UpdateNebula(id="n", patch={}))
        _assert_rejected(empty, missing, EventType.NEBULA_NOT_FOUND, RejectionReason.NOT_FOUND)

    def test_set_belts_replaces_collection(self, solar_state):
        belt = AsteroidBelt(id="ab", name="AB", parent_id="sun", inner_radius=2.0, outer_radius=3.0,
                            asteroid_ids=("x", "y"))
        result = apply_command(solar_state, SetBelts(belts={"ab": belt}))
        assert result.next_state.belts == {"ab": belt}
        assert _only_event(result).data["count"] == 1


class TestRings:
    def test_update_ring_creates_default(self, solar_state):
        result = apply_command(solar_state, UpdateRing(body_id="earth", patch={"opacity": 0.9}))
        earth = result.next_state.bodies["earth"]
        expected = replace(default_ring_for(solar_state.bodies["earth"]), opacity=0.9)
        assert earth.ring == expected
        assert _only_event(result).data["created"] is True

    def test_update_ring_edits_existing(self, solar_state):
        state = apply_command(solar_state, UpdateRing(body_id="earth", patch={})).next_state
        result = apply_command(state, UpdateRing(body_id="earth", patch={"outer_radius_multiplier": 4.0}))
        assert result.next_state.bodies["earth"].ring.outer_radius_multiplier == 4.0
        assert _only_event(result).data["created"] is False

    def test_ring_on_star_unsupported(self, solar_state):
        result = apply_command(solar_state, UpdateRing(body_id="sun", patch={}))
        _assert_rejected(solar_state, result, EventType.RING_UNSUPPORTED, RejectionReason.UNSUPPORTED)

    def test_ring_with_crossed_radii_rejected(self, solar_state):
        patch = {"inner_radius_multiplier": 3.0, "outer_radius_multiplier": 2.0}
        result = apply_command(solar_state, UpdateRing(body_id="earth", patch=patch))
        _assert_rejected(solar_state, result, EventType.UPDATE_RING_FAILED, RejectionReason.INVALID)

    def test_remove_ring(self, solar_state):
        state = apply_command(solar_state, UpdateRing(body_id="mars", patch={})).next_state
        state = apply_command(state, RemoveRing(body_id="mars")).next_state
        assert state.bodies["mars"].ring is None
        result = apply_command(state, RemoveRing(body_id="mars"))
        _assert_rejected(state, result, EventType.RING_NOT_FOUND, RejectionReason.NOT_FOUND)


class TestSnapshotAndPurity:
    def test_replace_snapshot_keeps_time(self, solar_state, empty):
        ticking = apply_command(empty, Tick(dt=4.0)).next_state
        result = apply_command(ticking, ReplaceSnapshot(snapshot=solar_state))
        assert result.next_state.same_content(solar_state, ignore_time=True)
        assert result.next_state.simulation_time == 4.0

    def test_unknown_command_raises(self, empty):
        class Bogus(Command):
            type = "bogus"

        with pytest.raises(TypeError):
            apply_command(empty, Bogus())

    def test_input_state_never_mutated(self, solar_state):
        """Every command leaves the state it was given exactly as it was."""
        before = snapshot_to_dict(solar_state)
        commands = [
            Tick(dt=1.0),
            AddBody(id="rock", body=Asteroid(id="rock", name="Rock", parent_id="sun")),
            UpdateBody(id="earth", patch={"mass": 9.0}),
            RemoveBody(id="earth"),
            AttachBody(child_id="vega", parent_id="mars"),
            DetachBody(child_id="moon"),
            AddGroup(id="g", group=Group(id="g", name="G")),
            UpdateRing(body_id="mars", patch={}),
            AddSmallBodyField(small_body_field=_field()),
        ]
        for cmd in commands:
            apply_command(solar_state, cmd)
            assert snapshot_to_dict(solar_state) == before


def _random_forest(seed, size=7):
    """A seeded forest where each body hangs under an earlier one or is a root."""
    rng = create_prng(seed)
    commands = []
    for i in range(size):
        parent = f"n{rng.randint(0, i - 1)}" if i and rng.chance(0.7) else None
        commands.append(AddBody(id=f"n{i}", body=Star(id=f"n{i}", name=f"N{i}", parent_id=parent)))
    return apply_commands(empty_state(), commands).next_state


class TestForestProperties:
    @pytest.mark.parametrize("seed", range(5))
    def test_every_reparenting(self, seed):
        """Each attach either keeps the forest acyclic or is rejected as a cycle."""
        state = _random_forest(seed)
        ids = sorted(state.bodies)
        for child in ids:
            for parent in ids:
                result = apply_command(state, AttachBody(child_id=child, parent_id=parent))
                if result.rejected:
                    assert result.events[0].reason == RejectionReason.CYCLE
                    assert child == parent or child in _ancestors_of(parent, state)
                else:
                    assert result.next_state.bodies[child].parent_id == parent
                assert forest_violations(result.next_state) == []

    @pytest.mark.parametrize("seed", range(5))
    def test_every_cascade_delete(self, seed):
        """Removing a body removes exactly its subtree and nothing else."""
        state = _random_forest(seed)
        for body_id in state.bodies:
            subtree = {body_id} | _descendants_of(body_id, state)
            after = apply_command(state, RemoveBody(id=body_id)).next_state
            assert set(after.bodies) == set(state.bodies) - subtree
            assert forest_violations(after) == []

    def test_removals_in_generated_universe_stay_consistent(self, full_universe):
        """Random removals from a feature-rich universe keep every snapshot loadable."""
        state = full_universe.state
        rng = create_prng("removals")
        for _ in range(60):
            if not state.bodies:
                break
            state = apply_command(state, RemoveBody(id=rng.choice(sorted(state.bodies)))).next_state
            assert forest_violations(state) == []
            assert all(
                a.lagrange_host_id is None or a.lagrange_host_id in state.bodies
                for a in state.bodies.values() if isinstance(a, Asteroid)
            )


def _ancestors_of(body_id, state):
    found = set()
    current = state.bodies[body_id].parent_id
    while current is not None:
        found.add(current)
        current = state.bodies[current].parent_id
    return found


def _descendants_of(body_id, state):
    return {other for other in state.bodies if body_id in _ancestors_of(other, state)}
