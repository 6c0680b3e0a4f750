"""GraphStorageConnector 테스트 (InMemory executor)"""
import asyncio
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from neo4j.exceptions import ServiceUnavailable

from dsgraph import GraphStorageConnector, ConnectorState
from dsgraph.shared.error_framework import (
    ConfigError,
    ConnectivityError,
    InvalidKeyError,
    MalformedValueError,
    UnsupportedKeyError,
)
from dsgraph.storage.inmemory_executor import InMemoryGraphExecutor

SETTINGS = {
    "connectionString": "bolt://localhost:7687",
    "userName": "neo4j",
    "password": "neo4j",
    "splitChar": "/",
}

USER_RECORD = {
    "_d": {
        "_rels": {
            "friends": {"_v": 0, "_count": 0},
            "groups": {"_v": 10, "_count": 0},
            "events": {"_v": 17, "_count": 0},
        },
        "firstname": "John",
        "lastname": "Smith",
    },
    "_v": 12,
}


class Recorder:
    """콜백 인자 기록"""

    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)


class FailingExecutor(InMemoryGraphExecutor):
    def __init__(self, error):
        super().__init__()
        self.error = error

    async def run(self, query):
        self.executed.append(query)
        raise self.error


def _connector(executor=None, **overrides):
    options = {**SETTINGS, **overrides}
    return GraphStorageConnector(options, executor=executor or InMemoryGraphExecutor())


class TestConstruction:
    def test_rejects_non_mapping_options(self):
        with pytest.raises(ConfigError):
            GraphStorageConnector("gibberish")

    @pytest.mark.parametrize("missing, name", [
        ("connectionString", "connectionString"),
        ("userName", "user"),
        ("password", "password"),
    ])
    def test_missing_required_setting(self, missing, name):
        options = {k: v for k, v in SETTINGS.items() if k != missing}
        with pytest.raises(ConfigError) as exc:
            GraphStorageConnector(options, executor=InMemoryGraphExecutor())
        assert str(exc.value) == f"Missing setting '{name}'"

    def test_empty_setting_counts_as_missing(self):
        with pytest.raises(ConfigError):
            GraphStorageConnector({**SETTINGS, "password": ""}, executor=InMemoryGraphExecutor())

    def test_user_alias(self):
        options = {k: v for k, v in SETTINGS.items() if k != "userName"}
        connector = GraphStorageConnector({**options, "user": "admin"}, executor=InMemoryGraphExecutor())
        assert connector.options.user_name == "admin"

    def test_defaults(self):
        connector = _connector()
        assert connector.options.default_label == "DS_SCHEMA"
        assert connector.is_ready is False
        assert connector.state == ConnectorState.CONNECTING

    def test_inmemory_backend_from_options(self):
        connector = GraphStorageConnector({**SETTINGS, "backend": "inmemory"})
        assert isinstance(connector.executor, InMemoryGraphExecutor)

    def test_implements_storage_interface(self):
        connector = _connector()
        assert isinstance(connector.name, str)
        assert isinstance(connector.version, str)
        for method in ("get", "set", "delete", "on", "emit", "start", "close"):
            assert callable(getattr(connector, method))


class TestLifecycle:
    def test_ready_emitted_once(self):
        connector = _connector()
        ready = Recorder()
        connector.on("ready", ready)

        assert asyncio.run(connector.start()) is True
        assert asyncio.run(connector.start()) is True

        assert ready.calls == [()]
        assert connector.is_ready is True
        assert connector.state == ConnectorState.READY

    def test_failed_probe_emits_error(self):
        connector = _connector(InMemoryGraphExecutor(available=False))
        ready, errors = Recorder(), Recorder()
        connector.on("ready", ready)
        connector.on("error", errors)

        assert asyncio.run(connector.start()) is False

        assert ready.calls == []
        assert len(errors.calls) == 1
        assert isinstance(errors.calls[0][0], ConnectivityError)
        assert connector.state == ConnectorState.FAILED
        assert connector.is_ready is False

    def test_async_context_manager(self):
        executor = InMemoryGraphExecutor()

        async def scenario():
            async with _connector(executor) as connector:
                assert connector.is_ready

        asyncio.run(scenario())
        assert executor.closed


class TestInvalidKeys:
    @pytest.mark.parametrize("operation", ["set", "get", "delete"])
    def test_refuses_invalid_key_without_io(self, operation):
        executor = InMemoryGraphExecutor()
        connector = _connector(executor)
        done = Recorder()

        if operation == "set":
            asyncio.run(connector.set("/a/b/c", {}, done))
        else:
            asyncio.run(getattr(connector, operation)("/a/b/c", done))

        error = done.calls[0][0]
        assert isinstance(error, InvalidKeyError)
        assert str(error) == "Invalid key /a/b/c"
        assert executor.executed == []

    def test_get_invalid_key_passes_null_value(self):
        connector = _connector()
        done = Recorder()
        asyncio.run(connector.get("DS_SCHEMA/x", done))
        assert done.calls[0][1] is None

    def test_relation_path_rejected(self):
        executor = InMemoryGraphExecutor()
        connector = _connector(executor)
        done = Recorder()

        asyncio.run(connector.get("users/123/friends", done))

        assert isinstance(done.calls[0][0], UnsupportedKeyError)
        assert executor.executed == []

    def test_unset_split_char_rejects_everything(self):
        options = {k: v for k, v in SETTINGS.items() if k != "splitChar"}
        connector = GraphStorageConnector(options, executor=InMemoryGraphExecutor())
        done = Recorder()
        asyncio.run(connector.get("users/1", done))
        assert isinstance(done.calls[0][0], InvalidKeyError)


class TestStorageOperations:
    def setup_method(self):
        self.executor = InMemoryGraphExecutor()
        self.connector = _connector(self.executor)
        asyncio.run(self.connector.start())

    def test_retrieves_non_existing_node(self):
        done = Recorder()
        asyncio.run(self.connector.get("USERS/123", done))
        assert done.calls == [(None, None)]

    def test_set_then_get(self):
        set_done, get_done = Recorder(), Recorder()

        asyncio.run(self.connector.set("USERS/123", USER_RECORD, set_done))
        asyncio.run(self.connector.get("USERS/123", get_done))

        assert set_done.calls == [(None,)]
        assert get_done.calls == [(None, USER_RECORD)]

    def test_key_case_normalized(self):
        asyncio.run(self.connector.set("users/123", USER_RECORD))
        assert asyncio.run(self.connector.get("USERS/123")) == USER_RECORD

    def test_list_record(self):
        record = {"_v": 4, "_d": ["a", "b", "c"]}
        asyncio.run(self.connector.set("lists/abc", record))
        assert asyncio.run(self.connector.get("lists/abc")) == record

    def test_update_in_place(self):
        asyncio.run(self.connector.set("USERS/1", {"_v": 1, "_d": {"name": "a"}}))
        asyncio.run(self.connector.set("USERS/1", {"_v": 2, "_d": {"name": "b"}}))
        assert asyncio.run(self.connector.get("USERS/1")) == {"_v": 2, "_d": {"name": "b"}}
        assert self.executor.count_entities() == 1

    def test_delete(self):
        asyncio.run(self.connector.set("USERS/123", USER_RECORD))
        done = Recorder()

        asyncio.run(self.connector.delete("USERS/123", done))

        assert done.calls == [(None,)]
        assert asyncio.run(self.connector.get("USERS/123")) is None

    def test_schema_key(self):
        record = {"_v": 1, "_d": {"firstname": "string"}}
        asyncio.run(self.connector.set("users", record))
        assert asyncio.run(self.connector.get("users")) == record

    def test_malformed_value_raises(self):
        with pytest.raises(MalformedValueError):
            asyncio.run(self.connector.set("USERS/1", {"_v": 1}, Recorder()))

    def test_list_overwritten_by_object(self):
        asyncio.run(self.connector.set("USERS/1", {"_v": 1, "_d": ["a", "b"]}))
        asyncio.run(self.connector.set("USERS/1", USER_RECORD))
        assert asyncio.run(self.connector.get("USERS/1")) == USER_RECORD

    def test_object_overwritten_by_list(self):
        asyncio.run(self.connector.set("USERS/1", USER_RECORD))
        record = {"_v": 13, "_d": ["x"]}
        asyncio.run(self.connector.set("USERS/1", record))
        assert asyncio.run(self.connector.get("USERS/1")) == record

    def test_overwrite_with_fewer_relations(self):
        asyncio.run(self.connector.set("USERS/123", USER_RECORD))
        record = {
            "_v": 13,
            "_d": {
                "_rels": {"groups": {"_v": 11, "_count": 1}},
                "firstname": "John",
                "lastname": "Smith",
            },
        }
        asyncio.run(self.connector.set("USERS/123", record))
        assert asyncio.run(self.connector.get("USERS/123")) == record

    def test_reserved_anchor_field_rejected(self):
        with pytest.raises(MalformedValueError):
            asyncio.run(self.connector.set("USERS/1", {"_v": 1, "_key": "2", "_d": {}}))
        assert self.executor.count_entities() == 0

    def test_returned_value_is_a_copy(self):
        asyncio.run(self.connector.set("USERS/123", USER_RECORD))
        value = asyncio.run(self.connector.get("USERS/123"))
        value["_d"]["_rels"]["friends"]["_count"] = 5
        assert asyncio.run(self.connector.get("USERS/123")) == USER_RECORD


class TestExecutionErrors:
    def test_error_passed_to_callback(self):
        backend_error = RuntimeError("syntax error")
        connector = _connector(FailingExecutor(backend_error))
        set_done, get_done, delete_done = Recorder(), Recorder(), Recorder()

        asyncio.run(connector.set("USERS/1", {"_v": 1, "_d": {}}, set_done))
        asyncio.run(connector.get("USERS/1", get_done))
        asyncio.run(connector.delete("USERS/1", delete_done))

        assert set_done.calls == [(backend_error,)]
        assert get_done.calls == [(backend_error, None)]
        assert delete_done.calls == [(backend_error,)]

    def test_error_raised_without_callback(self):
        connector = _connector(FailingExecutor(RuntimeError("boom")))
        with pytest.raises(RuntimeError):
            asyncio.run(connector.get("USERS/1"))

    def test_invalid_key_raised_without_callback(self):
        with pytest.raises(InvalidKeyError):
            asyncio.run(_connector().delete("/x"))

    def test_not_retried(self):
        executor = FailingExecutor(RuntimeError("boom"))
        connector = _connector(executor)
        asyncio.run(connector.get("USERS/1", Recorder()))
        assert len(executor.executed) == 1

    def test_connection_loss_emits_error_once(self):
        lost = ServiceUnavailable("connection refused")
        connector = _connector(FailingExecutor(lost))
        errors, done = Recorder(), Recorder()
        connector.on("error", errors)

        asyncio.run(connector.get("USERS/1", done))
        asyncio.run(connector.get("USERS/2", done))

        assert done.calls == [(lost, None), (lost, None)]
        assert len(errors.calls) == 1
        assert isinstance(errors.calls[0][0], ConnectivityError)
        assert errors.calls[0][0].cause is lost

    def test_ordinary_failure_does_not_emit_error(self):
        connector = _connector(FailingExecutor(RuntimeError("constraint")))
        errors = Recorder()
        connector.on("error", errors)
        asyncio.run(connector.set("USERS/1", {"_v": 1, "_d": {}}, Recorder()))
        assert errors.calls == []
