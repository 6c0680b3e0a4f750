"""
dsgraph - deepstream storage connector for Neo4j.

Maps slash-delimited record keys and deepstream record values
({_v, _d: {..., _rels}}) onto graph nodes and relationships.
"""

PACKAGE_NAME = "dsgraph"
__version__ = "0.1.0"

from dsgraph.connector import ConnectorState, GraphStorageConnector  # noqa: E402

__all__ = [
    "PACKAGE_NAME",
    "__version__",
    "ConnectorState",
    "GraphStorageConnector",
]
