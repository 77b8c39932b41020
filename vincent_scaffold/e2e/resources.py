"""Reuse-or-mint cache for PKPs and capacity credits."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from .models import (
    CapacityCreditInfo,
    CapacityCreditRecord,
    CapacityCreditResult,
    Found,
    Lookup,
    NotFound,
    PKPInfo,
    PKPRecord,
    PKPResult,
    format_timestamp,
    parse_timestamp,
)
from .session import StateSession

__all__ = [
    "EXPIRY_SAFETY_MARGIN",
    "ResourceCache",
    "capacity_credit_expiry",
    "is_still_valid",
]

logger = logging.getLogger(__name__)

# A cached resource must outlive the current run by at least this much.
EXPIRY_SAFETY_MARGIN = timedelta(hours=24)

MintPKP = Callable[[], Awaitable[PKPInfo]]
MintCapacityCredit = Callable[[], Awaitable[CapacityCreditInfo]]


def capacity_credit_expiry(minted_at_utc: str, days_until_utc_midnight_expiration: int) -> datetime:
    """UTC midnight ``days`` days after the mint date."""
    minted = parse_timestamp(minted_at_utc).astimezone(timezone.utc)
    midnight = datetime(minted.year, minted.month, minted.day, tzinfo=timezone.utc)
    return midnight + timedelta(days=days_until_utc_midnight_expiration)


def is_still_valid(expires_at: str, now: datetime) -> bool:
    return parse_timestamp(expires_at) > now + EXPIRY_SAFETY_MARGIN


class ResourceCache:
    def __init__(self, session: StateSession) -> None:
        self.session = session

    # -- PKP -------------------------------------------------------------

    def _valid_pkp(self, data: Optional[dict]) -> Optional[PKPRecord]:
        if not data or data.get("network") != self.session.network:
            return None
        record = PKPRecord.from_dict(data)
        if record.expires_at and not is_still_valid(record.expires_at, self.session.now()):
            logger.warning(
                "e2e.pkp.stale",
                extra={"token_id": record.token_id, "expires_at": record.expires_at},
            )
            return None
        return record

    def lookup_pkp(self) -> Lookup[PKPRecord]:
        record = self._valid_pkp(self.session.test_file()["pkps"].get(self.session.network))
        if record is not None:
            return Found(record)
        return NotFound(f"no PKP for {self.session.test_file_name} on {self.session.network}")

    async def get_or_mint_pkp(self, mint_fn: MintPKP) -> PKPResult:
        found = self.lookup_pkp()
        if isinstance(found, Found):
            logger.info("e2e.pkp.reused", extra={"eth_address": found.record.eth_address})
            return PKPResult(found.record.info, is_new=False)

        legacy = self._valid_pkp(self.session.legacy("sharedPkps"))
        if legacy is not None:
            self.session.test_file()["pkps"][self.session.network] = legacy.to_dict()
            await self.session.save()
            logger.info("e2e.pkp.migrated", extra={"eth_address": legacy.eth_address})
            return PKPResult(legacy.info, is_new=False)

        logger.info("e2e.pkp.minting", extra={"test_file": self.session.test_file_name})
        info = await mint_fn()
        record = PKPRecord(
            token_id=str(info.token_id),
            public_key=info.public_key,
            eth_address=info.eth_address,
            created_at=self.session.timestamp(),
            network=self.session.network,
        )
        self.session.test_file()["pkps"][self.session.network] = record.to_dict()
        await self.session.save()
        logger.info("e2e.pkp.minted", extra={"eth_address": record.eth_address})
        return PKPResult(info, is_new=True)

    # -- capacity credits ------------------------------------------------

    def _valid_credit(self, data: Optional[dict]) -> Optional[CapacityCreditRecord]:
        if not data or data.get("network") != self.session.network or not data.get("expiresAt"):
            return None
        record = CapacityCreditRecord.from_dict(data)
        if not is_still_valid(record.expires_at, self.session.now()):
            logger.warning(
                "e2e.capacity_credit.stale",
                extra={
                    "token_id": record.capacity_token_id_str,
                    "expires_at": record.expires_at,
                    "now": self.session.timestamp(),
                },
            )
            return None
        return record

    def lookup_capacity_credits(self) -> Lookup[CapacityCreditRecord]:
        record = self._valid_credit(self.session.test_file()["capacityCredits"].get(self.session.network))
        if record is not None:
            return Found(record)
        return NotFound(f"no valid capacity credits for {self.session.test_file_name}")

    async def get_or_mint_capacity_credits(self, mint_fn: MintCapacityCredit) -> CapacityCreditResult:
        found = self.lookup_capacity_credits()
        if isinstance(found, Found):
            logger.info(
                "e2e.capacity_credit.reused",
                extra={"token_id": found.record.capacity_token_id_str, "expires_at": found.record.expires_at},
            )
            return CapacityCreditResult(found.record.info, is_new=False)

        legacy = self._valid_credit(self.session.legacy("sharedCapacityCredits"))
        if legacy is not None:
            self.session.test_file()["capacityCredits"][self.session.network] = legacy.to_dict()
            await self.session.save()
            logger.info("e2e.capacity_credit.migrated", extra={"token_id": legacy.capacity_token_id_str})
            return CapacityCreditResult(legacy.info, is_new=False)

        logger.info("e2e.capacity_credit.minting", extra={"test_file": self.session.test_file_name})
        info = await mint_fn()
        expires_at = capacity_credit_expiry(info.minted_at_utc, info.days_until_utc_midnight_expiration)
        record = CapacityCreditRecord(
            capacity_token_id_str=info.capacity_token_id_str,
            capacity_token_id=info.capacity_token_id,
            requests_per_kilosecond=info.requests_per_kilosecond,
            days_until_utc_midnight_expiration=info.days_until_utc_midnight_expiration,
            minted_at_utc=info.minted_at_utc,
            network=self.session.network,
            expires_at=format_timestamp(expires_at),
        )
        self.session.test_file()["capacityCredits"][self.session.network] = record.to_dict()
        await self.session.save()
        logger.info(
            "e2e.capacity_credit.minted",
            extra={"token_id": record.capacity_token_id_str, "expires_at": record.expires_at},
        )
        return CapacityCreditResult(info, is_new=True)
