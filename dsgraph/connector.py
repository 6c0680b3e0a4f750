"""
Graph Storage Connector
deepstream 스토리지 커넥터 인터페이스 (get / set / delete) 를 그래프 DB 위에 구현.

Key Segmenter -> Query Synthesizer -> GraphExecutor -> Value Transform -> callback

Callbacks follow the deepstream convention: the first argument is the error
(None on success). ``get`` passes the value as second argument; a missing
entity is ``(None, None)``, never an error.

사용:
    connector = GraphStorageConnector({
        "connectionString": "bolt://localhost:7687",
        "userName": "neo4j",
        "password": "secret",
        "splitChar": "/",
    })
    connector.on("ready", on_ready)
    await connector.start()
    await connector.set("users/123", {"_v": 1, "_d": {"name": "John"}}, on_done)
"""
import logging
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from neo4j.exceptions import ServiceUnavailable, SessionExpired

from dsgraph import PACKAGE_NAME, __version__
from dsgraph.core.config import ConnectorOptions
from dsgraph.shared.error_framework import (
    ConfigError,
    ConnectivityError,
    InvalidKeyError,
    get_error_registry,
)
from dsgraph.shared.events import EventHandler, EventPublisher
from dsgraph.storage.graph_executor import GraphExecutor
from dsgraph.storage.key_segmenter import KeySegmenter
from dsgraph.storage.query_builder import Action, GraphQuery, QueryBuilder
from dsgraph.storage.transform import (
    decode_result_row,
    transform_value_for_storage,
    transform_value_from_storage,
)

logger = logging.getLogger(__name__)

Callback = Callable[..., None]

_CONNECTIVITY_ERRORS = (ConnectivityError, ServiceUnavailable, SessionExpired)


class ConnectorState(Enum):
    """연결 상태"""
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


def build_graph_executor(options: ConnectorOptions) -> GraphExecutor:
    """옵션의 backend에 맞는 GraphExecutor 생성"""
    if options.backend == "inmemory":
        from dsgraph.storage.inmemory_executor import InMemoryGraphExecutor
        logger.info("Using InMemory GraphExecutor")
        return InMemoryGraphExecutor()

    from dsgraph.storage.neo4j_executor import Neo4jGraphExecutor
    logger.info(f"Using Neo4j GraphExecutor: {options.connection_string}")
    try:
        return Neo4jGraphExecutor(
            uri=options.connection_string,
            user=options.user_name,
            password=options.password,
            database=options.database,
        )
    except ValueError as e:
        # 잘못된 URI 스킴 등은 드라이버 생성 시점에 실패
        raise ConfigError(
            f"Invalid setting 'connectionString': {e}",
            config_key="connectionString",
            cause=e,
        ) from e


class GraphStorageConnector:
    """Storage connector over a graph execution service."""

    def __init__(self, options: Mapping[str, Any], executor: Optional[GraphExecutor] = None):
        """
        Args:
            options: connectionString, userName/user, password, splitChar,
                defaultLabel, database, backend
            executor: explicit execution service (skips driver creation)

        Raises:
            ConfigError: a required setting is missing
        """
        self.is_ready = False
        self.state = ConnectorState.CONNECTING
        self.name = PACKAGE_NAME
        self.version = __version__

        self._options = ConnectorOptions.from_mapping(options)
        self._segmenter = KeySegmenter(
            split_char=self._options.split_char,
            default_label=self._options.default_label,
        )
        self._builder = QueryBuilder()
        self._events = EventPublisher()
        self._errors = get_error_registry()
        self._connection_lost = False

        self._executor = executor or build_graph_executor(self._options)

    @property
    def options(self) -> ConnectorOptions:
        return self._options

    @property
    def executor(self) -> GraphExecutor:
        return self._executor

    # =========================================================================
    # Events
    # =========================================================================

    def on(self, event: str, handler: EventHandler) -> None:
        self._events.on(event, handler)

    def off(self, event: str, handler: EventHandler) -> None:
        self._events.off(event, handler)

    def emit(self, event: str, payload: Optional[Any] = None) -> int:
        return self._events.emit(event, payload)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> bool:
        """
        Run the readiness probe once.

        Emits ``ready`` on success or ``error`` on failure; later calls are
        no-ops and return the current readiness.
        """
        if self.state != ConnectorState.CONNECTING:
            return self.is_ready

        try:
            await self._executor.verify_connectivity()
        except Exception as e:
            self.state = ConnectorState.FAILED
            error = self._as_connectivity_error(e, "verify")
            self._errors.record(error)
            self.emit("error", error)
            return False

        self.is_ready = True
        self.state = ConnectorState.READY
        logger.info(f"Connector ready: {self._options.connection_string}")
        self.emit("ready")
        return True

    async def close(self) -> None:
        await self._executor.close()

    async def __aenter__(self) -> "GraphStorageConnector":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Storage interface
    # =========================================================================

    async def set(self, key: str, value: Mapping[str, Any], callback: Optional[Callback] = None) -> None:
        """
        Upsert the entity at ``key`` with its relations.

        Raises:
            MalformedValueError: value has no ``_d`` payload
        """
        query = self._prepare(Action.SET, key, value)
        if isinstance(query, InvalidKeyError):
            return self._deliver(callback, query)

        try:
            await self._executor.run(query)
        except Exception as e:
            return self._deliver(callback, self._on_execution_error(e, "set", key))

        self._on_execution_success()
        return self._deliver(callback, None)

    async def get(self, key: str, callback: Optional[Callback] = None) -> Optional[dict]:
        """Read the entity at ``key``; returns None when it does not exist."""
        query = self._prepare(Action.GET, key)
        if isinstance(query, InvalidKeyError):
            return self._deliver(callback, query, None)

        try:
            rows = await self._executor.run(query)
        except Exception as e:
            return self._deliver(callback, self._on_execution_error(e, "get", key), None)

        self._on_execution_success()

        row = rows[0].get("value") if rows else None
        value = transform_value_from_storage(decode_result_row(row))
        return self._deliver(callback, None, value or None)

    async def delete(self, key: str, callback: Optional[Callback] = None) -> None:
        """Delete the entity at ``key`` and its directly related nodes."""
        query = self._prepare(Action.DELETE, key)
        if isinstance(query, InvalidKeyError):
            return self._deliver(callback, query)

        try:
            await self._executor.run(query)
        except Exception as e:
            return self._deliver(callback, self._on_execution_error(e, "delete", key))

        self._on_execution_success()
        return self._deliver(callback, None)

    # =========================================================================
    # Internals
    # =========================================================================

    def _prepare(self, action: Action, key: str, value: Optional[Mapping[str, Any]] = None):
        """Segment + synthesize. Returns the query, or the key error to report."""
        segments = self._segmenter.segment(key)
        if segments is None:
            error = InvalidKeyError(key, operation=action.value.lower())
            self._errors.record(error)
            return error

        storage_value = transform_value_for_storage(value) if action == Action.SET else None
        try:
            return self._builder.synthesize(action, segments, storage_value, key=key)
        except InvalidKeyError as e:
            self._errors.record(e)
            return e

    def _deliver(self, callback: Optional[Callback], error: Optional[BaseException], *results: Any):
        """Hand the outcome to the callback, or return/raise it without one."""
        if callback is not None:
            callback(error, *results)
        elif error is not None:
            raise error
        return results[0] if results else None

    def _on_execution_error(self, error: Exception, operation: str, key: str) -> Exception:
        logger.warning(f"{operation} failed for key {key}: {error}")
        self._errors.record(error)

        if isinstance(error, _CONNECTIVITY_ERRORS) and not self._connection_lost:
            self._connection_lost = True
            self.emit("error", self._as_connectivity_error(error, operation))

        return error

    def _on_execution_success(self) -> None:
        if self._connection_lost:
            logger.info("Backend connection restored")
        self._connection_lost = False

    def _as_connectivity_error(self, error: Exception, operation: str) -> ConnectivityError:
        if isinstance(error, ConnectivityError):
            return error
        return ConnectivityError(
            f"Graph backend unreachable: {error}",
            uri=self._options.connection_string,
            operation=operation,
            cause=error,
        )
