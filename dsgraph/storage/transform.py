"""
Value Transform
deepstream 값 형태 <-> 그래프 저장 형태.

    {"_v": 1, "_d": {"name": "x", "_rels": {...}}}
        <-> {"__ds": {"_v": 1}, "_props": {"name": "x"}, "_rels": {...}}

    {"_v": 1, "_d": ["a", "b"]}
        <-> {"__ds": {"_v": 1}, "__dsList": ["a", "b"]}

Both directions work on a deep copy of the input.
"""
import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from dsgraph.shared.error_framework import MalformedValueError

logger = logging.getLogger(__name__)

DATA_KEY = "_d"
RELS_KEY = "_rels"
META_KEY = "__ds"
LIST_KEY = "__dsList"
PROPS_KEY = "_props"

# 앵커 노드에만 있는 내부 속성 (읽을 때 제거)
ANCHOR_KEYS = ("_key", "_label")


def transform_value_for_storage(value: Mapping[str, Any]) -> Dict[str, Any]:
    """
    deepstream 형태를 저장 형태로 변환.

    Everything except ``_d`` becomes ``__ds`` metadata. An object payload is
    split into ``_props`` and ``_rels``; ``_rels`` is left out when the
    payload has none.

    Raises:
        MalformedValueError: value has no ``_d``, ``_d`` is not a list/object,
            or the metadata uses an anchor field (``_key``, ``_label``)
    """
    if not isinstance(value, Mapping) or DATA_KEY not in value:
        raise MalformedValueError(
            "Value has no '_d' payload",
            direction="for_storage",
            missing_marker=DATA_KEY,
        )

    reserved = [k for k in ANCHOR_KEYS if k in value]
    if reserved:
        raise MalformedValueError(
            f"Value uses reserved anchor field(s) {reserved}",
            direction="for_storage",
            missing_marker=None,
        )

    value = copy.deepcopy(dict(value))
    data = value.pop(DATA_KEY)

    if isinstance(data, list):
        return {LIST_KEY: data, META_KEY: value}

    if not isinstance(data, dict):
        raise MalformedValueError(
            f"'_d' must be a list or an object, got {type(data).__name__}",
            direction="for_storage",
            missing_marker=DATA_KEY,
        )

    result: Dict[str, Any] = {PROPS_KEY: data, META_KEY: value}
    if RELS_KEY in data:
        result[RELS_KEY] = data.pop(RELS_KEY)
    return result


def transform_value_from_storage(value: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    저장 형태를 deepstream 형태로 복원.

    Returns:
        The deepstream value, or None for an empty/absent input

    Raises:
        MalformedValueError: value has no ``__ds`` metadata
    """
    if not value:
        return None

    if META_KEY not in value:
        raise MalformedValueError(
            "Stored value has no '__ds' metadata",
            direction="from_storage",
            missing_marker=META_KEY,
        )

    value = copy.deepcopy(dict(value))
    data = value.pop(META_KEY) or {}

    if isinstance(value.get(LIST_KEY), list):
        data[DATA_KEY] = value[LIST_KEY]
    else:
        payload = value.get(PROPS_KEY) or {}
        if RELS_KEY in value:
            payload[RELS_KEY] = value[RELS_KEY]
        data[DATA_KEY] = payload

    return data


def decode_result_row(row: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Turn a GET result row into a storage value.

    The row carries ``__ds`` (anchor properties), ``_props`` (entity node
    properties) and the parallel lists ``_rel_keys`` / ``_rel_vals``.

    Returns:
        Storage value for transform_value_from_storage, or None if the row
        holds nothing
    """
    if not row:
        return None

    meta = {k: v for k, v in (row.get(META_KEY) or {}).items() if k not in ANCHOR_KEYS}
    props = dict(row.get(PROPS_KEY) or {})
    rel_keys: List[str] = list(row.get("_rel_keys") or [])
    rel_vals: List[Any] = list(row.get("_rel_vals") or [])

    if not meta and not props and not rel_keys:
        return None

    if len(rel_keys) != len(rel_vals):
        logger.warning(
            f"Relation keys/values length mismatch: {len(rel_keys)} != {len(rel_vals)}"
        )

    storage: Dict[str, Any] = {META_KEY: meta}
    if LIST_KEY in props:
        storage[LIST_KEY] = props.pop(LIST_KEY)
        return storage

    storage[PROPS_KEY] = props
    if rel_keys:
        storage[RELS_KEY] = {k: dict(v or {}) for k, v in zip(rel_keys, rel_vals)}
    return storage
