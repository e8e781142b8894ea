"""
Step definitions for the durable registry store feature.

Each "invocation" below opens its own store, registry and composer and closes
them again, so nothing but the database file links a registration to the
composition that reads it.
"""

import sqlite3
import threading

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from fieldgroups.kernel import errors
from fieldgroups.kernel.composer import Composer
from fieldgroups.kernel.registry import RegistryWriter
from fieldgroups.kernel.store import MemoryStateStore, SqliteStateStore, open_store

# Load scenarios from feature file
scenarios("../features/store.feature")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_context():
    """Shared context for passing data between steps."""
    return {"db_path": None, "result": None, "error": None, "expected": {}, "stores": []}


# =============================================================================
# Given Steps
# =============================================================================


@given("a registry database file")
def registry_database(test_context, temp_db):
    # Create the schema up front so parallel writers only race on rows.
    SqliteStateStore(temp_db).close()
    test_context["db_path"] = temp_db


@given(parsers.parse('"{key}" is registered with fields "{fields}" in one invocation'))
def register_in_invocation(test_context, make_record, key: str, fields: str):
    store = SqliteStateStore(test_context["db_path"])
    try:
        RegistryWriter(store).register(key, make_record(f"Group_{key}", fields))
    finally:
        store.close()


@given("a file that is not a registry database")
def not_a_database(test_context, temp_db):
    with open(temp_db, "w") as f:
        f.write("this is not a database\n" * 64)
    test_context["db_path"] = temp_db


@given("two memory stores")
def two_memory_stores(test_context):
    test_context["stores"] = [MemoryStateStore(), MemoryStateStore()]


# =============================================================================
# When Steps
# =============================================================================


@when(parsers.parse('a new invocation composes a target "{name}" with fields "{fields}" using "{key}"'))
def compose_in_new_invocation(test_context, make_record, name: str, fields: str, key: str):
    store = SqliteStateStore(test_context["db_path"])
    try:
        test_context["result"] = Composer(store).compose(make_record(name, fields), [key])
    finally:
        store.close()


@when(parsers.parse('I read "{key}" from the store'))
def read_key(test_context, key: str):
    with SqliteStateStore(test_context["db_path"]) as store:
        try:
            test_context["result"] = store.read(key)
        except errors.StoreError as exc:
            test_context["error"] = exc


@when(parsers.parse('I write "{first}" then "{second}" under "{key}"'))
def write_twice(test_context, first: str, second: str, key: str):
    with SqliteStateStore(test_context["db_path"]) as store:
        store.write(key, first)
    with SqliteStateStore(test_context["db_path"]) as store:
        store.write(key, second)


@when(parsers.parse("{writers:d} writers each store {count:d} distinct keys in parallel"))
def parallel_writers(test_context, writers: int, count: int):
    db_path = test_context["db_path"]
    failures = []

    def worker(index: int) -> None:
        store = SqliteStateStore(db_path)
        try:
            for n in range(count):
                store.write(f"writer{index}.key{n}", f"value-{index}-{n}")
        except errors.StoreError as exc:
            failures.append(exc)
        finally:
            store.close()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(writers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert failures == []
    test_context["expected"] = {
        f"writer{i}.key{n}": f"value-{i}-{n}" for i in range(writers) for n in range(count)
    }


@when(parsers.parse('I write "{value}" under "{key}" in the first memory store'))
def write_first_memory(test_context, value: str, key: str):
    test_context["stores"][0].write(key, value)


@when("I try to open the store at that file")
def try_open_bad_file(test_context, monkeypatch):
    opened = []
    real_connect = sqlite3.connect

    def recording_connect(*args, **kwargs):
        conn = real_connect(*args, **kwargs)
        opened.append(conn)
        return conn

    monkeypatch.setattr(sqlite3, "connect", recording_connect)
    try:
        SqliteStateStore(test_context["db_path"])
    except errors.StoreError as exc:
        test_context["error"] = exc
    test_context["connections"] = opened


@when(parsers.parse('I open the store at "{path}"'))
def open_at(test_context, path: str):
    test_context["result"] = open_store(path)


# =============================================================================
# Then Steps
# =============================================================================


@then(parsers.parse('the composed fields are "{fields}"'))
def composed_fields(test_context, describe_fields, fields: str):
    assert describe_fields(test_context["result"]) == fields


@then(parsers.parse('the read fails with "{kind}"'))
def read_fails(test_context, kind: str):
    error = test_context["error"]
    assert isinstance(error, getattr(errors, kind)), f"Got {error!r}"
    assert isinstance(error, errors.StoreReadFailure)


@then(parsers.parse('reading "{key}" gives "{value}"'))
def reading_gives(test_context, key: str, value: str):
    with SqliteStateStore(test_context["db_path"]) as store:
        assert store.read(key) == value


@then(parsers.parse('the store lists keys "{keys}"'))
def store_lists(test_context, keys: str):
    with SqliteStateStore(test_context["db_path"]) as store:
        assert store.keys() == [k.strip() for k in keys.split(",")]


@then("every key reads back its own value")
def every_key_reads_back(test_context):
    expected = test_context["expected"]
    with SqliteStateStore(test_context["db_path"]) as store:
        assert len(store.keys()) == len(expected)
        for key, value in expected.items():
            assert store.read(key) == value


@then(parsers.parse('the second memory store has no value for "{key}"'))
def second_memory_empty(test_context, key: str):
    with pytest.raises(errors.NotFound):
        test_context["stores"][1].read(key)


@then("the opened store is a memory store")
def opened_memory(test_context):
    assert isinstance(test_context["result"], MemoryStateStore)


@then(parsers.parse('opening fails with "{kind}"'))
def opening_fails(test_context, kind: str):
    error = test_context["error"]
    assert isinstance(error, getattr(errors, kind)), f"Got {error!r}"
    assert error.key is None


@then("the connection made while opening is closed")
def connection_closed(test_context):
    assert len(test_context["connections"]) == 1
    with pytest.raises(sqlite3.ProgrammingError):
        test_context["connections"][0].execute("SELECT 1")
