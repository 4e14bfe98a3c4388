"""Snapshot serialisation and the on-disk snapshot store.

The JSON shape is camelCase, keyed by id, plain data all the way down, so any
persistence adapter can store it without knowing about these classes.

Uses platformdirs for the default save location:
  Linux:   ~/.local/share/orrery/universe.json
  macOS:   ~/Library/Application Support/orrery/universe.json
  Windows: C:/Users/.../AppData/Local/orrery/universe.json
"""

from __future__ import annotations

import enum
import json
import re
from dataclasses import fields, is_dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Mapping, get_type_hints

from platformdirs import user_data_dir
from pydantic import TypeAdapter

from ..constants import APP_NAME, SNAPSHOT_FILENAME
from ..exceptions import SnapshotFormatError
from ..logging_config import get_logger
from .bodies import (
    BODY_CLASSES,
    AsteroidSubType,
    BlackHoleProperties,
    Body,
    BodyType,
    CometMeta,
    LagrangePointMeta,
    PairType,
    PlanetaryRing,
    RoguePlanetMeta,
    Vec3,
)
from .entities import (
    AsteroidBelt,
    BeltType,
    DiskStyle,
    FieldStyle,
    Group,
    GroupChild,
    GroupChildType,
    NebulaRegion,
    ProtoplanetaryDisk,
    SmallBodyField,
)
from .invariants import forest_violations
from .universe import UniverseState

logger = get_logger(__name__)

SAVE_DIR = Path(user_data_dir(APP_NAME))
SAVE_FILE = SAVE_DIR / SNAPSHOT_FILENAME
SNAPSHOT_VERSION = 1

# Written as explicit nulls rather than omitted.
_KEEP_NULL = frozenset({"parent_id", "parent_group_id"})

_CAMEL_SPLIT = re.compile(r"(?<!^)(?=[A-Z])")


def camel_key(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _snake(key: str) -> str:
    return _CAMEL_SPLIT.sub("_", key).lower()


# ── Generic helpers ───────────────────────────────────────────────────

def _encode(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if is_dataclass(value):
        return _to_dict(value)
    if isinstance(value, (tuple, list)):
        return [_encode(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _encode(v) for k, v in value.items()}
    return value


def _to_dict(obj: Any) -> dict:
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None and f.name not in _KEEP_NULL:
            continue
        out[camel_key(f.name)] = _encode(value)
    return out


Decoders = Mapping[str, Callable[[Any], Any]]


@lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


@lru_cache(maxsize=None)
def _field_types(classes: tuple[type, ...]) -> dict[str, Any]:
    """Resolved annotation of every dataclass field across ``classes``."""
    out: dict[str, Any] = {}
    for cls in classes:
        hints = get_type_hints(cls)
        out.update({f.name: hints[f.name] for f in fields(cls)})
    return out


def _from_dict(cls: type, data: Mapping[str, Any], decoders: Decoders) -> Any:
    """Build ``cls`` from camelCase ``data``. Unknown keys are ignored.

    Values are checked against the field annotations; a wrong type raises
    ``pydantic.ValidationError``, which is a ``ValueError``.
    """
    if not isinstance(data, Mapping):
        raise TypeError(f"{cls.__name__} must be an object, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = _snake(key)
        if name not in known:
            continue
        decode = decoders.get(name)
        kwargs[name] = decode(value) if decode is not None and value is not None else value
    return _adapter(cls).validate_python(kwargs)


def _vec3(d: Mapping[str, Any]) -> Vec3:
    return _from_dict(Vec3, d, {})


def _str_tuple(values: Any) -> tuple[str, ...]:
    return _adapter(tuple[str, ...]).validate_python(values)


def _seed(value: Any) -> str:
    return str(value)


_BODY_DECODERS: Decoders = {
    "children": _str_tuple,
    "ring": lambda d: _from_dict(PlanetaryRing, d, {"seed": _seed}),
    "comet": lambda d: _from_dict(CometMeta, d, {"seed": _seed}),
    "black_hole": lambda d: _from_dict(BlackHoleProperties, d, {"seed": _seed}),
    "lagrange": lambda d: _from_dict(LagrangePointMeta, d, {"pair_type": PairType}),
    "rogue": lambda d: _from_dict(RoguePlanetMeta, d, {
        "seed": _seed, "initial_position": _vec3, "velocity": _vec3,
    }),
    "sub_type": AsteroidSubType,
}

_GROUP_DECODERS: Decoders = {
    "children": lambda items: tuple(_from_dict(GroupChild, c, {"type": GroupChildType}) for c in items),
    "position": _vec3,
}

_BELT_DECODERS: Decoders = {"asteroid_ids": _str_tuple, "belt_type": BeltType, "seed": _seed}
_FIELD_DECODERS: Decoders = {"belt_type": BeltType, "style": FieldStyle, "seed": _seed}
_DISK_DECODERS: Decoders = {"style": DiskStyle, "seed": _seed}
_NEBULA_DECODERS: Decoders = {
    "position": _vec3, "dimensions": _vec3, "associated_group_ids": _str_tuple, "seed": _seed,
}
_RING_DECODERS: Decoders = {"seed": _seed}


# ── Bodies ────────────────────────────────────────────────────────────

def body_to_dict(body: Body) -> dict:
    out = {"bodyType": body.body_type.value}
    out.update(_to_dict(body))
    return out


def body_from_dict(d: Mapping[str, Any]) -> Body:
    try:
        body_type = BodyType(d.get("bodyType", BodyType.STAR.value))
    except ValueError as exc:
        raise SnapshotFormatError(f"unknown body type {d.get('bodyType')!r}") from exc
    try:
        return _from_dict(BODY_CLASSES[body_type], d, _BODY_DECODERS)
    except (TypeError, ValueError, KeyError, AttributeError) as exc:
        raise SnapshotFormatError(f"malformed body {d.get('id')!r}: {exc}") from exc


# ── Groups and particle fields ────────────────────────────────────────

def group_to_dict(g: Group) -> dict:
    return _to_dict(g)


def group_from_dict(d: Mapping[str, Any]) -> Group:
    return _from_dict(Group, d, _GROUP_DECODERS)


def belt_to_dict(b: AsteroidBelt) -> dict:
    out = _to_dict(b)
    out["asteroidCount"] = b.asteroid_count
    return out


def belt_from_dict(d: Mapping[str, Any]) -> AsteroidBelt:
    return _from_dict(AsteroidBelt, d, _BELT_DECODERS)


def small_body_field_to_dict(f: SmallBodyField) -> dict:
    return _to_dict(f)


def small_body_field_from_dict(d: Mapping[str, Any]) -> SmallBodyField:
    return _from_dict(SmallBodyField, d, _FIELD_DECODERS)


def disk_to_dict(disk: ProtoplanetaryDisk) -> dict:
    return _to_dict(disk)


def disk_from_dict(d: Mapping[str, Any]) -> ProtoplanetaryDisk:
    return _from_dict(ProtoplanetaryDisk, d, _DISK_DECODERS)


def nebula_to_dict(n: NebulaRegion) -> dict:
    return _to_dict(n)


def nebula_from_dict(d: Mapping[str, Any]) -> NebulaRegion:
    return _from_dict(NebulaRegion, d, _NEBULA_DECODERS)


# ── Patches ───────────────────────────────────────────────────────────

def encode_patch(patch: Mapping[str, Any]) -> dict:
    """camelCase a snake_case patch, serialising nested values."""
    return {camel_key(k): _encode(v) for k, v in patch.items()}


def _decode_patch(payload: Mapping[str, Any], decoders: Decoders, classes: tuple[type, ...]) -> dict:
    """snake_case ``payload`` and check each known field against its annotation.

    Unknown keys pass through untouched; the reducer reports them as ignored.
    """
    if not isinstance(payload, Mapping):
        raise TypeError(f"patch must be an object, got {type(payload).__name__}")
    types = _field_types(classes)
    out: dict[str, Any] = {}
    for key, value in payload.items():
        name = _snake(key)
        decode = decoders.get(name)
        if decode is not None and value is not None:
            value = decode(value)
        if name in types:
            value = _adapter(types[name]).validate_python(value)
        out[name] = value
    return out


def decode_body_patch(payload: Mapping[str, Any]) -> dict:
    return _decode_patch(payload, _BODY_DECODERS, tuple(BODY_CLASSES.values()))


def decode_group_patch(payload: Mapping[str, Any]) -> dict:
    return _decode_patch(payload, _GROUP_DECODERS, (Group,))


def decode_field_patch(payload: Mapping[str, Any]) -> dict:
    return _decode_patch(payload, _FIELD_DECODERS, (SmallBodyField,))


def decode_disk_patch(payload: Mapping[str, Any]) -> dict:
    return _decode_patch(payload, _DISK_DECODERS, (ProtoplanetaryDisk,))


def decode_nebula_patch(payload: Mapping[str, Any]) -> dict:
    return _decode_patch(payload, _NEBULA_DECODERS, (NebulaRegion,))


def decode_ring_patch(payload: Mapping[str, Any]) -> dict:
    return _decode_patch(payload, _RING_DECODERS, (PlanetaryRing,))


# ── Snapshot ──────────────────────────────────────────────────────────

def snapshot_to_dict(state: UniverseState) -> dict:
    """Canonical JSON-ready dictionary for ``state``."""
    return {
        "version": SNAPSHOT_VERSION,
        "bodies": {bid: body_to_dict(b) for bid, b in state.bodies.items()},
        "rootBodyIds": list(state.root_body_ids),
        "groups": {gid: group_to_dict(g) for gid, g in state.groups.items()},
        "rootGroupIds": list(state.root_group_ids),
        "belts": {k: belt_to_dict(v) for k, v in state.belts.items()},
        "smallBodyFields": {k: small_body_field_to_dict(v) for k, v in state.small_body_fields.items()},
        "protoplanetaryDisks": {k: disk_to_dict(v) for k, v in state.protoplanetary_disks.items()},
        "nebulae": {k: nebula_to_dict(v) for k, v in state.nebulae.items()},
        "simulationTime": state.simulation_time,
    }


def snapshot_from_dict(data: Mapping[str, Any], *, strict: bool = False) -> UniverseState:
    """Rebuild a snapshot. With ``strict`` the forest structure is audited too."""
    if not isinstance(data, Mapping):
        raise SnapshotFormatError("snapshot must be an object")
    if "bodies" not in data:
        raise SnapshotFormatError("snapshot has no bodies map")

    try:
        bodies = {bid: body_from_dict({"id": bid, **b}) for bid, b in data["bodies"].items()}
        state = UniverseState(
            bodies=bodies,
            root_body_ids=_str_tuple(data.get("rootBodyIds", ())),
            groups={gid: group_from_dict({"id": gid, **g}) for gid, g in data.get("groups", {}).items()},
            root_group_ids=_str_tuple(data.get("rootGroupIds", ())),
            belts={k: belt_from_dict(v) for k, v in data.get("belts", {}).items()},
            small_body_fields={
                k: small_body_field_from_dict(v) for k, v in data.get("smallBodyFields", {}).items()
            },
            protoplanetary_disks={
                k: disk_from_dict(v) for k, v in data.get("protoplanetaryDisks", {}).items()
            },
            nebulae={k: nebula_from_dict(v) for k, v in data.get("nebulae", {}).items()},
            simulation_time=float(data.get("simulationTime", 0.0)),
        )
    except SnapshotFormatError:
        raise
    except (TypeError, ValueError, KeyError, AttributeError) as exc:
        raise SnapshotFormatError(f"malformed snapshot: {exc}") from exc

    if strict:
        problems = forest_violations(state)
        if problems:
            raise SnapshotFormatError("inconsistent snapshot: " + "; ".join(problems[:5]))
    return state


# ── File store ────────────────────────────────────────────────────────

def save_snapshot(state: UniverseState, path: Path | None = None) -> Path:
    """Write ``state`` as JSON and return the file path."""
    target = path or SAVE_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(snapshot_to_dict(state), indent=2), encoding="utf-8")
    logger.info("snapshot saved", path=str(target), bodies=len(state.bodies))
    return target


def load_snapshot(path: Path | None = None) -> UniverseState | None:
    """Read a snapshot from disk. Returns None if it is missing or unreadable."""
    target = path or SAVE_FILE
    if not target.exists():
        return None
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
        state = snapshot_from_dict(data, strict=True)
    except (ValueError, OSError, SnapshotFormatError) as exc:
        logger.warning("snapshot unreadable", path=str(target), error=str(exc))
        return None
    logger.info("snapshot loaded", path=str(target), bodies=len(state.bodies))
    return state


def has_save(path: Path | None = None) -> bool:
    """Check if a snapshot file exists."""
    return (path or SAVE_FILE).exists()


def delete_save(path: Path | None = None) -> None:
    """Delete the snapshot file if present."""
    target = path or SAVE_FILE
    if target.exists():
        target.unlink()
        logger.info("snapshot deleted", path=str(target))
