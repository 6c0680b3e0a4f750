# Storage Layer
from dsgraph.storage.graph_executor import GraphExecutor
from dsgraph.storage.inmemory_executor import InMemoryGraphExecutor
from dsgraph.storage.neo4j_executor import Neo4jGraphExecutor
from dsgraph.storage.key_segmenter import KeySegmenter, segment_key
from dsgraph.storage.query_builder import Action, GraphQuery, QueryBuilder, synthesize
from dsgraph.storage.transform import (
    transform_value_for_storage,
    transform_value_from_storage,
)

__all__ = [
    "GraphExecutor",
    "InMemoryGraphExecutor",
    "Neo4jGraphExecutor",
    "KeySegmenter",
    "segment_key",
    "Action",
    "GraphQuery",
    "QueryBuilder",
    "synthesize",
    "transform_value_for_storage",
    "transform_value_from_storage",
]
