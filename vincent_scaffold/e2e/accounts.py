from __future__ import annotations

import logging
from typing import List, Optional

from eth_account import Account

from .models import ACCOUNT_ROLES, AccountRecord, AccountResult, AccountRole, Found, Lookup, NotFound
from .session import StateSession

__all__ = ["AccountCache", "derive_address", "generate_private_key"]

logger = logging.getLogger(__name__)


def generate_private_key() -> str:
    return "0x" + bytes(Account.create().key).hex()


def derive_address(private_key: str) -> str:
    return Account.from_key(private_key).address


class AccountCache:
    """Test accounts keyed by (test file, network, role)."""

    def __init__(self, session: StateSession) -> None:
        self.session = session

    def _slot(self) -> dict:
        return self.session.test_file()["accounts"].setdefault(self.session.network, {})

    def lookup(self, role: AccountRole) -> Lookup[AccountRecord]:
        stored = self._slot().get(role)
        if stored and stored.get("network") == self.session.network:
            return Found(AccountRecord.from_dict(stored))
        return NotFound(f"no {role} account for {self.session.test_file_name}")

    async def get_or_generate_account(
        self,
        role: AccountRole,
        external_key: Optional[str] = None,
    ) -> AccountResult:
        if role not in ACCOUNT_ROLES:
            raise ValueError(f"Unknown account role: {role}")

        if external_key:
            # Externally supplied keys are never written to the state file.
            return AccountResult(external_key, derive_address(external_key), is_new=False)

        found = self.lookup(role)
        if isinstance(found, Found):
            logger.info(
                "e2e.account.reused",
                extra={"role": role, "address": found.record.address, "test_file": self.session.test_file_name},
            )
            return AccountResult(found.record.private_key, found.record.address, is_new=False)

        legacy = (self.session.legacy("sharedAccounts") or {}).get(role)
        if legacy and legacy.get("network") == self.session.network:
            record = AccountRecord.from_dict(legacy)
            self._slot()[role] = record.to_dict()
            await self.session.save()
            logger.info(
                "e2e.account.migrated",
                extra={"role": role, "address": record.address, "test_file": self.session.test_file_name},
            )
            return AccountResult(record.private_key, record.address, is_new=False)

        private_key = generate_private_key()
        record = AccountRecord(
            private_key=private_key,
            address=derive_address(private_key),
            created_at=self.session.timestamp(),
            network=self.session.network,
        )
        self._slot()[role] = record.to_dict()
        await self.session.save()
        logger.info(
            "e2e.account.generated",
            extra={"role": role, "address": record.address, "test_file": self.session.test_file_name},
        )
        return AccountResult(record.private_key, record.address, is_new=True)

    def generated_accounts(self) -> List[str]:
        """Return ``"<role>: <address>"`` for every known account on this network."""
        legacy = self.session.legacy("sharedAccounts") or {}
        per_file = self.session.test_file()["accounts"].get(self.session.network) or {}
        merged = {**legacy, **per_file}
        return [f"{role}: {account['address']}" for role, account in merged.items() if account]
