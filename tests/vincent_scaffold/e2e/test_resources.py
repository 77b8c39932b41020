import json
from datetime import datetime, timezone

import pytest

from vincent_scaffold.e2e.models import CapacityCreditInfo, PKPInfo
from vincent_scaffold.e2e.resources import EXPIRY_SAFETY_MARGIN, capacity_credit_expiry, is_still_valid

PKP = PKPInfo(token_id="1234", public_key="0x04ab", eth_address="0x00000000000000000000000000000000000000aa")


class _MintCounter:
    def __init__(self, value):
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.value


def _credit(minted_at: str = "2024-01-01T12:00:00.000Z", days: int = 2) -> CapacityCreditInfo:
    return CapacityCreditInfo(
        capacity_token_id_str="77",
        capacity_token_id="77",
        requests_per_kilosecond=10,
        days_until_utc_midnight_expiration=days,
        minted_at_utc=minted_at,
    )


def _stored_credit(expires_at: str) -> dict:
    return {
        "capacityTokenIdStr": "55",
        "capacityTokenId": "55",
        "requestsPerKilosecond": 10,
        "daysUntilUTCMidnightExpiration": 1,
        "mintedAtUtc": "2023-12-31T00:00:00.000Z",
        "network": "datil",
        "expiresAt": expires_at,
    }


def _write_state(path, test_file=None, **shared):
    document = {"version": "2.0.0", "testFiles": test_file or {}}
    document.update(shared)
    path.write_text(json.dumps(document))


def test_capacity_credit_expiry_is_utc_midnight():
    assert capacity_credit_expiry("2024-01-01T15:30:00.000Z", 2) == datetime(2024, 1, 3, tzinfo=timezone.utc)


def test_validity_requires_safety_margin():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert EXPIRY_SAFETY_MARGIN.total_seconds() == 24 * 3600
    assert is_still_valid("2024-01-02T01:00:00.000Z", now)
    assert not is_still_valid("2024-01-01T23:00:00.000Z", now)


@pytest.mark.asyncio
async def test_pkp_is_minted_once_then_reused(make_manager, state_path):
    mint = _MintCounter(PKP)
    first = await (await make_manager()).get_or_mint_pkp(mint)
    second = await (await make_manager()).get_or_mint_pkp(mint)

    assert first.is_new is True
    assert second.is_new is False
    assert second.pkp == PKP
    assert mint.calls == 1
    stored = json.loads(state_path.read_text())["testFiles"]["test-e2e.py"]["pkps"]["datil"]
    assert stored["tokenId"] == "1234"
    assert stored["network"] == "datil"


@pytest.mark.asyncio
async def test_pkp_on_other_network_is_not_reused(make_manager):
    mint = _MintCounter(PKP)
    await (await make_manager(network="datil")).get_or_mint_pkp(mint)
    result = await (await make_manager(network="datil-test")).get_or_mint_pkp(mint)
    assert result.is_new is True
    assert mint.calls == 2


@pytest.mark.asyncio
async def test_expiring_pkp_is_reminted(make_manager, state_path):
    stale = {**PKP.to_dict(), "createdAt": "", "network": "datil", "expiresAt": "2024-01-02T11:00:00.000Z"}
    _write_state(state_path, {"test-e2e.py": {"pkps": {"datil": stale}}})
    mint = _MintCounter(PKPInfo("999", "0x04cd", "0x00000000000000000000000000000000000000bb"))

    result = await (await make_manager()).get_or_mint_pkp(mint)
    assert result.is_new is True
    assert result.pkp.token_id == "999"


@pytest.mark.asyncio
async def test_legacy_shared_pkp_is_migrated(make_manager, state_path):
    legacy = {**PKP.to_dict(), "createdAt": "2023-01-01T00:00:00.000Z", "network": "datil"}
    _write_state(state_path, sharedPkps={"datil": legacy})
    mint = _MintCounter(PKP)

    result = await (await make_manager()).get_or_mint_pkp(mint)
    assert result.is_new is False
    assert mint.calls == 0
    saved = json.loads(state_path.read_text())
    assert saved["testFiles"]["test-e2e.py"]["pkps"]["datil"] == legacy


@pytest.mark.asyncio
async def test_mint_failure_propagates_without_saving(make_manager, state_path):
    async def failing_mint():
        raise RuntimeError("rpc down")

    manager = await make_manager()
    with pytest.raises(RuntimeError, match="rpc down"):
        await manager.get_or_mint_pkp(failing_mint)
    assert not state_path.exists()


@pytest.mark.asyncio
async def test_new_capacity_credit_records_expiry(make_manager, state_path):
    mint = _MintCounter(_credit())
    result = await (await make_manager()).get_or_mint_capacity_credits(mint)

    assert result.is_new is True
    stored = json.loads(state_path.read_text())["testFiles"]["test-e2e.py"]["capacityCredits"]["datil"]
    assert stored["expiresAt"] == "2024-01-03T00:00:00.000Z"
    assert stored["capacityTokenIdStr"] == "77"


@pytest.mark.asyncio
async def test_capacity_credit_expiring_in_25_hours_is_reused(make_manager, state_path):
    _write_state(state_path, {"test-e2e.py": {"capacityCredits": {"datil": _stored_credit("2024-01-02T13:00:00.000Z")}}})
    mint = _MintCounter(_credit())

    result = await (await make_manager()).get_or_mint_capacity_credits(mint)
    assert result.is_new is False
    assert result.capacity_credits.capacity_token_id_str == "55"
    assert mint.calls == 0


@pytest.mark.asyncio
async def test_capacity_credit_expiring_in_23_hours_is_reminted(make_manager, state_path):
    _write_state(state_path, {"test-e2e.py": {"capacityCredits": {"datil": _stored_credit("2024-01-02T11:00:00.000Z")}}})
    mint = _MintCounter(_credit())

    result = await (await make_manager()).get_or_mint_capacity_credits(mint)
    assert result.is_new is True
    assert mint.calls == 1


@pytest.mark.asyncio
async def test_cached_credit_goes_stale_as_time_passes(make_manager, clock):
    mint = _MintCounter(_credit())
    await (await make_manager()).get_or_mint_capacity_credits(mint)

    clock.advance(hours=1)
    assert (await (await make_manager()).get_or_mint_capacity_credits(mint)).is_new is False
    clock.advance(hours=12)
    assert (await (await make_manager()).get_or_mint_capacity_credits(mint)).is_new is True


@pytest.mark.asyncio
async def test_valid_legacy_capacity_credit_is_migrated(make_manager, state_path):
    credit = _stored_credit("2024-01-05T00:00:00.000Z")
    _write_state(state_path, sharedCapacityCredits={"datil": credit})
    mint = _MintCounter(_credit())

    result = await (await make_manager()).get_or_mint_capacity_credits(mint)
    assert result.is_new is False
    saved = json.loads(state_path.read_text())
    assert saved["testFiles"]["test-e2e.py"]["capacityCredits"]["datil"] == credit
