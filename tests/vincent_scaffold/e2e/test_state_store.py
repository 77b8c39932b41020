import json

import pytest

from vincent_scaffold.e2e.store import STATE_VERSION, PersistentStateStore, empty_document
from vincent_scaffold.exceptions import StateSaveError, VincentScaffoldError


@pytest.mark.asyncio
async def test_missing_file_loads_empty_document(state_path):
    store = PersistentStateStore(state_path)
    assert await store.load() == {"version": STATE_VERSION, "testFiles": {}}


@pytest.mark.asyncio
async def test_version_mismatch_loads_empty_document(state_path, caplog):
    state_path.write_text(json.dumps({"version": "1.0.0", "testFiles": {"a.py": {}}}))
    store = PersistentStateStore(state_path)
    with caplog.at_level("WARNING"):
        document = await store.load()
    assert document == empty_document()
    assert any(r.getMessage() == "e2e.state.version_mismatch" for r in caplog.records)


@pytest.mark.asyncio
async def test_invalid_json_loads_empty_document(state_path):
    state_path.write_text("{not json")
    assert await PersistentStateStore(state_path).load() == empty_document()


@pytest.mark.asyncio
async def test_save_then_load_round_trip(state_path):
    store = PersistentStateStore(state_path)
    document = empty_document()
    document["testFiles"]["a.py"] = {"accounts": {"datil": {}}}
    await store.save(document)

    raw = state_path.read_text()
    assert raw.startswith('{\n  "version"')
    assert await store.load() == document
    assert [p.name for p in state_path.parent.iterdir()] == [state_path.name]


@pytest.mark.asyncio
async def test_save_failure_raises_state_save_error(tmp_path):
    target = tmp_path / "state-dir"
    target.mkdir()
    (target / "child").write_text("x")
    store = PersistentStateStore(target)

    with pytest.raises(StateSaveError) as info:
        await store.save(empty_document())
    assert isinstance(info.value, VincentScaffoldError)
    assert isinstance(info.value, OSError)
    assert (target / "child").read_text() == "x"


def test_default_path_is_in_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert PersistentStateStore().path == tmp_path / ".e2e-state.json"
