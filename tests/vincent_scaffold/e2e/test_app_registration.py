import json

import pytest

from vincent_scaffold.e2e.config_hash import compute_config_hash
from vincent_scaffold.e2e.models import AppRegistration, AppVersionRecord

DELEGATEE = "0x00000000000000000000000000000000000000d1"
ABILITIES = ["QmAbilityA", "QmAbilityB"]
POLICIES = [["QmP1", "QmP2"], []]


class _StubRegistry:
    """Counts injected chain calls and hands out app ids and versions."""

    def __init__(self, app_id=42):
        self.app_id = app_id
        self.next_version = 1
        self.register_calls = 0
        self.next_version_calls = []

    async def register(self):
        self.register_calls += 1
        return AppRegistration(app_id=self.app_id, app_version=1)

    async def register_next(self, app_id):
        self.next_version_calls.append(app_id)
        self.next_version += 1
        return AppRegistration(app_id=app_id, app_version=self.next_version)


async def _register(manager, registry, abilities=ABILITIES, policies=POLICIES, **params):
    manager.set_configuration_from_cids(abilities, policies)
    return await manager.get_or_register_app(
        DELEGATEE,
        registry.register,
        registry.register_next,
        abilities,
        policies,
        params.get("names"),
        params.get("types"),
        params.get("values"),
    )


def _saved(path):
    return json.loads(path.read_text())["testFiles"]["test-e2e.py"]


@pytest.mark.asyncio
async def test_fresh_registration_persists_app_and_version(make_manager, state_path):
    registry = _StubRegistry(app_id=42)
    manager = await make_manager()
    result = await _register(manager, registry, ["QmA"], [["QmP"]])

    assert (result.app_id, result.app_version) == (42, 1)
    assert result.is_new is True
    assert result.is_new_version is False

    saved = _saved(state_path)
    config_hash = compute_config_hash(["QmA"], [["QmP"]])
    assert "42-1" in saved["appVersions"]
    assert saved["appVersions"]["42-1"]["abilityIpfsCids"] == ["QmA"]
    assert saved["configurations"][config_hash]["state"]["vincentApp"]["appId"] == 42

    again = await _register(await make_manager(), registry, ["QmA"], [["QmP"]])
    assert registry.register_calls == 1
    assert (again.app_id, again.app_version, again.is_new, again.is_new_version) == (42, 1, False, False)


@pytest.mark.asyncio
async def test_second_identical_call_issues_no_chain_operation(make_manager):
    registry = _StubRegistry()
    manager = await make_manager()
    await _register(manager, registry)
    result = await _register(manager, registry)

    assert registry.register_calls == 1
    assert registry.next_version_calls == []
    assert result.is_new is False
    assert result.is_new_version is False


@pytest.mark.asyncio
async def test_ability_order_does_not_matter(make_manager):
    registry = _StubRegistry()
    manager = await make_manager()
    await _register(manager, registry, ["QmA", "QmB"], [["P1"], ["P2"]])
    result = await _register(manager, registry, ["QmB", "QmA"], [["P1"], ["P2"]])

    assert registry.register_calls == 1
    assert registry.next_version_calls == []
    assert result.app_version == 1


@pytest.mark.asyncio
async def test_policy_order_change_registers_next_version(make_manager, state_path):
    registry = _StubRegistry()
    manager = await make_manager()
    await _register(manager, registry, ["QmA"], [["P1", "P2"]])
    result = await _register(manager, registry, ["QmA"], [["P2", "P1"]])

    assert registry.next_version_calls == [42]
    assert result.is_new is False
    assert result.is_new_version is True
    assert result.app_version == 2
    saved = _saved(state_path)
    assert saved["appVersions"]["42-2"]["abilityPolicyCids"] == [["P2", "P1"]]


@pytest.mark.asyncio
async def test_app_from_other_configuration_is_reused(make_manager, state_path):
    registry = _StubRegistry()
    manager = await make_manager()
    await _register(manager, registry, ["QmA"], [["P1"]])
    result = await _register(await make_manager(), registry, ["QmA", "QmB"], [["P1"], []])

    assert registry.register_calls == 1
    assert registry.next_version_calls == [42]
    assert result.app_id == 42
    assert result.is_new_version is True

    saved = _saved(state_path)
    current = saved["configurations"][compute_config_hash(["QmA", "QmB"], [["P1"], []])]
    assert current["state"]["vincentApp"]["appId"] == 42
    assert current["state"]["vincentApp"]["appVersion"] == 2


@pytest.mark.asyncio
async def test_switching_back_reuses_cached_version(make_manager):
    registry = _StubRegistry()
    manager = await make_manager()
    await _register(manager, registry, ["QmA"], [["P1"]])
    await _register(manager, registry, ["QmA"], [["P2"]])
    result = await _register(manager, registry, ["QmA"], [["P1"]])

    assert registry.next_version_calls == [42]
    assert result.app_version == 1
    assert result.is_new_version is False


@pytest.mark.asyncio
async def test_other_configuration_parameters_are_not_copied(make_manager, state_path):
    registry = _StubRegistry()
    manager = await make_manager()
    await _register(manager, registry, ["QmA"], [["P1"]], values=[["5"]])
    await _register(manager, registry, ["QmA", "QmB"], [["P1"], []])

    saved = _saved(state_path)
    current = saved["configurations"][compute_config_hash(["QmA", "QmB"], [["P1"], []])]
    assert "abilityPolicyParameterValues" not in current["state"]["vincentApp"]


@pytest.mark.asyncio
async def test_different_delegatee_registers_new_app(make_manager):
    registry = _StubRegistry()
    manager = await make_manager()
    await _register(manager, registry, ["QmA"], [["P1"]])

    other = _StubRegistry(app_id=43)
    result = await manager.get_or_register_app(
        "0x00000000000000000000000000000000000000d2", other.register, other.register_next, ["QmA"], [["P1"]]
    )
    assert other.register_calls == 1
    assert result.app_id == 43


@pytest.mark.asyncio
async def test_string_and_int_ids_compare_equal(make_manager, state_path):
    registry = _StubRegistry(app_id="42")
    manager = await make_manager()
    await _register(manager, registry, ["QmA"], [["P1"]])
    await _register(manager, registry, ["QmA"], [["P2"]])
    result = await _register(manager, registry, ["QmA"], [["P1"]])
    assert str(result.app_id) == "42"
    assert result.app_version == 1


@pytest.mark.asyncio
async def test_failed_registration_saves_nothing(make_manager, state_path):
    async def failing_register():
        raise RuntimeError("reverted")

    async def unused_next(app_id):
        raise AssertionError("not expected")

    manager = await make_manager()
    with pytest.raises(RuntimeError, match="reverted"):
        await manager.get_or_register_app(DELEGATEE, failing_register, unused_next, ["QmA"], [["P1"]])
    assert not state_path.exists()
    assert manager.current_configuration().app is None


@pytest.mark.asyncio
async def test_failed_next_version_keeps_previous_state(make_manager, state_path):
    registry = _StubRegistry()
    manager = await make_manager()
    await _register(manager, registry, ["QmA"], [["P1"]])
    before = state_path.read_text()

    async def failing_next(app_id):
        raise RuntimeError("event missing")

    with pytest.raises(RuntimeError):
        await manager.get_or_register_app(DELEGATEE, registry.register, failing_next, ["QmA"], [["P9"]])
    assert state_path.read_text() == before


@pytest.mark.asyncio
async def test_update_parameter_values(make_manager, state_path):
    registry = _StubRegistry()
    manager = await make_manager()
    await _register(manager, registry, ["QmA"], [["P1"]], names=[["max"]], types=[[2]])

    assert await manager.update_app_parameter_values(42, [["5"]]) is True
    assert await manager.update_app_parameter_values(7, [["5"]]) is False

    saved = _saved(state_path)
    assert saved["appVersions"]["42-1"]["state"]["vincentApp"]["abilityPolicyParameterValues"] == [["5"]]
    assert manager.current_configuration().app.parameter_values == [["5"]]


def _edit_saved(path, edit):
    document = json.loads(path.read_text())
    edit(document["testFiles"]["test-e2e.py"])
    path.write_text(json.dumps(document))


@pytest.mark.asyncio
async def test_version_entry_without_app_state_is_skipped(make_manager, state_path):
    registry = _StubRegistry()
    await _register(await make_manager(), registry, ["QmA"], [["P1"]])
    await _register(await make_manager(), registry, ["QmA"], [["P2"]])

    def strip(saved):
        del saved["appVersions"]["42-1"]["state"]
        del saved["configurations"][compute_config_hash(["QmA"], [["P1"]])]["state"]["vincentApp"]

    _edit_saved(state_path, strip)
    result = await _register(await make_manager(), registry, ["QmA"], [["P1"]])

    assert registry.register_calls == 1
    assert registry.next_version_calls == [42, 42]
    assert result.is_new_version is True
    assert result.app_version == 3


@pytest.mark.asyncio
async def test_update_parameter_values_tolerates_incomplete_version(make_manager, state_path):
    registry = _StubRegistry()
    await _register(await make_manager(), registry, ["QmA"], [["P1"]])
    _edit_saved(state_path, lambda saved: saved["appVersions"]["42-1"].pop("state"))

    manager = await make_manager()
    manager.set_configuration_from_cids(["QmA"], [["P1"]])
    assert await manager.update_app_parameter_values(42, [["5"]]) is True
    assert manager.current_configuration().app.parameter_values == [["5"]]


def test_version_record_requires_app_state():
    with pytest.raises(ValueError, match="42-1 has no vincentApp state"):
        AppVersionRecord.from_dict({"appId": 42, "appVersion": 1, "state": {}})
