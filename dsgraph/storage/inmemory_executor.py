"""
In-Memory Graph Executor
Cypher 텍스트 대신 GraphQuery의 구조화된 필드를 해석한다.
테스트/개발용.
"""
import copy
from typing import Any, Dict, List, Tuple

from dsgraph.shared.error_framework import ConnectivityError
from dsgraph.storage.graph_executor import GraphExecutor
from dsgraph.storage.query_builder import Action, GraphQuery
from dsgraph.storage.transform import LIST_KEY, META_KEY, PROPS_KEY


class InMemoryGraphExecutor(GraphExecutor):
    """In-Memory 구현 (Dict 기반)"""

    def __init__(self, available: bool = True) -> None:
        # (label, id) -> {meta, schema, props, relations}
        self._entities: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.available = available
        self.executed: List[GraphQuery] = []
        self.closed = False

    def _check_available(self, operation: str) -> None:
        if not self.available:
            raise ConnectivityError(
                "In-memory graph is unavailable",
                uri="memory://",
                operation=operation,
            )

    async def verify_connectivity(self) -> None:
        self._check_available("verify")

    async def run(self, query: GraphQuery) -> List[Dict[str, Any]]:
        self._check_available("run")
        self.executed.append(query)

        key = (query.label, query.entity_id)
        if query.action == Action.SET:
            self._apply_set(key, query)
            return []
        if query.action == Action.GET:
            return self._read(key)

        self._entities.pop(key, None)
        return []

    def _apply_set(self, key: Tuple[str, str], query: GraphQuery) -> None:
        params = copy.deepcopy(query.parameters)
        entity = self._entities.setdefault(key, {
            "meta": {},
            "schema": [],
            "props": {},
            "relations": {},
        })

        entity["meta"].update(params.get(META_KEY) or {})
        entity["schema"] = list(params.get("schema") or [])

        if LIST_KEY in params:
            entity["props"] = {LIST_KEY: params[LIST_KEY]}
            return

        entity["props"].pop(LIST_KEY, None)
        entity["props"].update(params.get(PROPS_KEY) or {})
        for clause in query.relations:
            # 기존 관계 노드 props 병합 (MERGE + SET +=)
            entity["relations"].setdefault(clause.rel_type, {}).update(
                params.get(clause.parameter) or {}
            )

    def _read(self, key: Tuple[str, str]) -> List[Dict[str, Any]]:
        entity = self._entities.get(key)
        if entity is None:
            return []

        label, entity_id = key
        rel_keys = [r for r in entity["relations"] if r in entity["schema"]]
        value = {
            META_KEY: {**entity["meta"], "_key": entity_id, "_label": label},
            PROPS_KEY: dict(entity["props"]),
            "_rel_keys": rel_keys,
            "_rel_vals": [dict(entity["relations"][r]) for r in rel_keys],
        }
        return [{"value": copy.deepcopy(value)}]

    async def close(self) -> None:
        self.closed = True

    def count_entities(self) -> int:
        return len(self._entities)

    def clear(self) -> None:
        self._entities.clear()
        self.executed.clear()
