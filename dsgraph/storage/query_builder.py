"""
Query Synthesizer
세그먼트 (+ 저장 형태 값) -> Cypher 텍스트 + 바인딩 파라미터.

Graph layout for key ``USERS/123``:

    (ds:__DS {_key: "123", _label: "USERS"})-[:__ds {schema: [...]}]->(n:USERS)
    (n)-[:friends]->(:__REL {_v, _count})

User values only ever travel as parameters. Labels and relation types
cannot be parameterized in Cypher, so they are backtick-quoted.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from dsgraph.shared.error_framework import UnsupportedKeyError
from dsgraph.storage.transform import ANCHOR_KEYS, LIST_KEY, META_KEY, PROPS_KEY, RELS_KEY

logger = logging.getLogger(__name__)

ANCHOR_LABEL = "__DS"
ANCHOR_EDGE = "__ds"
RELATION_LABEL = "__REL"


class Action(Enum):
    """지원하는 세 가지 작업"""
    SET = "SET"
    GET = "GET"
    DELETE = "DELETE"


@dataclass(frozen=True)
class RelationClause:
    """One relation edge written by SET."""
    rel_type: str
    variable: str
    parameter: str


@dataclass
class GraphQuery:
    """
    Structured form of a synthesized query.

    ``clauses`` holds the Cypher lines in order; ``text`` joins them.
    Executors that cannot run Cypher (InMemoryGraphExecutor) work from the
    structured fields instead.
    """
    action: Action
    labels: Tuple[str, ...]
    entity_id: str
    clauses: List[str] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=dict)
    relations: List[RelationClause] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.clauses)

    @property
    def label(self) -> str:
        return ":".join(self.labels)


def quote_identifier(name: str) -> str:
    """Backtick-quote a label or relationship type."""
    return "`" + name.replace("`", "``") + "`"


def _entity_pattern(labels: Sequence[str]) -> str:
    label_str = "".join(f":{quote_identifier(label)}" for label in labels)
    return f"(n{label_str})"


def _split_segments(segments: Sequence[str], key: Optional[str]) -> Tuple[Tuple[str, ...], str]:
    """(labels, entity_id) 추출. 스키마 키는 라벨 문자열 자체가 id."""
    if not segments:
        raise UnsupportedKeyError(key or "", 0)
    if len(segments) > 2:
        raise UnsupportedKeyError(key or "/".join(segments), len(segments))

    label = segments[0]
    entity_id = segments[1] if len(segments) == 2 else label
    labels = tuple(part for part in label.split(":") if part)
    return labels, entity_id


class QueryBuilder:
    """Builds SET / GET / DELETE queries for two-segment keys."""

    def synthesize(
        self,
        action: Action,
        segments: Sequence[str],
        value: Optional[Mapping[str, Any]] = None,
        key: Optional[str] = None,
    ) -> GraphQuery:
        """
        Build the query for ``action`` on ``segments``.

        Args:
            action: SET, GET or DELETE
            segments: output of the key segmenter
            value: storage-shaped value (SET only)
            key: original key, used in error messages

        Raises:
            UnsupportedKeyError: more than two segments
        """
        action = Action(action)
        labels, entity_id = _split_segments(segments, key)

        query = GraphQuery(
            action=action,
            labels=labels,
            entity_id=entity_id,
            parameters={"id": entity_id, "label": ":".join(labels)},
        )

        if action == Action.SET:
            self._build_set(query, value or {})
        elif action == Action.GET:
            self._build_get(query)
        else:
            self._build_delete(query)

        logger.debug(f"Synthesized {action.value} query:\n{query.text}")
        return query

    def _anchor_match(self, query: GraphQuery) -> str:
        return (
            f"MATCH (ds:{ANCHOR_LABEL} {{_key: $id, _label: $label}})"
            f"-[ds_r:{ANCHOR_EDGE}]->{_entity_pattern(query.labels)}"
        )

    def _build_set(self, query: GraphQuery, value: Mapping[str, Any]) -> None:
        rels: Mapping[str, Any] = value.get(RELS_KEY) or {}

        query.clauses.extend([
            f"MERGE (ds:{ANCHOR_LABEL} {{_key: $id, _label: $label}})",
            f"MERGE (ds)-[ds_r:{ANCHOR_EDGE}]->{_entity_pattern(query.labels)}",
            "SET ds += $__ds",
            "SET ds_r.schema = $schema",
        ])
        query.parameters[META_KEY] = {
            k: v for k, v in (value.get(META_KEY) or {}).items() if k not in ANCHOR_KEYS
        }
        query.parameters["schema"] = list(rels.keys())

        if LIST_KEY in value:
            # 리스트는 노드 props 전체를 대체
            query.clauses.append("SET n = {__dsList: $__dsList}")
            query.parameters[LIST_KEY] = list(value[LIST_KEY])
            return

        query.clauses.extend([
            "REMOVE n.__dsList",
            "SET n += $_props",
        ])
        query.parameters[PROPS_KEY] = dict(value.get(PROPS_KEY) or {})

        # 관계마다 MERGE 한 쌍, 순서는 _rels 순서 그대로
        for i, (rel_type, descriptor) in enumerate(rels.items()):
            clause = RelationClause(
                rel_type=rel_type,
                variable=f"rel_{i}",
                parameter=f"rel_{i}",
            )
            query.relations.append(clause)
            query.clauses.extend([
                f"MERGE (n)-[:{quote_identifier(rel_type)}]->"
                f"({clause.variable}:{RELATION_LABEL})",
                f"SET {clause.variable} += ${clause.parameter}",
            ])
            query.parameters[clause.parameter] = dict(descriptor or {})

    def _build_get(self, query: GraphQuery) -> None:
        query.clauses.extend([
            self._anchor_match(query),
            "OPTIONAL MATCH (n)-[r]->(m)",
            "WHERE type(r) IN coalesce(ds_r.schema, [])",
            "WITH ds, n, collect(type(r)) AS rel_keys, collect(properties(m)) AS rel_vals",
            "RETURN { __ds: properties(ds),",
            "         _props: properties(n),",
            "         _rel_keys: rel_keys,",
            "         _rel_vals: rel_vals } AS value",
        ])

    def _build_delete(self, query: GraphQuery) -> None:
        query.clauses.extend([
            self._anchor_match(query),
            "OPTIONAL MATCH (n)-[r]->(m)",
            "WHERE type(r) IN coalesce(ds_r.schema, [])",
            "WITH ds, n, collect(m) AS related",
            "FOREACH (x IN related | DETACH DELETE x)",
            "DETACH DELETE n, ds",
        ])


_default_builder = QueryBuilder()


def synthesize(
    action: Action,
    segments: Sequence[str],
    value: Optional[Mapping[str, Any]] = None,
    key: Optional[str] = None,
) -> GraphQuery:
    """Module-level shortcut for QueryBuilder().synthesize."""
    return _default_builder.synthesize(action, segments, value, key=key)
