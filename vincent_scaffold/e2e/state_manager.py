"""Facade bundling the e2e state caches for a single test run."""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Sequence

from .accounts import AccountCache
from .apps import AppRegistrationReconciler, RegisterApp, RegisterNextVersion
from .config_hash import compute_config_hash
from .models import (
    AccountResult,
    AccountRole,
    AppRegistrationResult,
    CapacityCreditResult,
    ConfigurationRecord,
    Identifier,
    PermissionRecord,
    PKPResult,
    utc_now,
)
from .permissions import PermissionReconciler
from .resources import MintCapacityCredit, MintPKP, ResourceCache
from .session import DEFAULT_CONFIG_HASH, Clock, StateSession
from .store import PersistentStateStore

__all__ = ["StateManager"]

logger = logging.getLogger(__name__)


class StateManager:
    """Entry point used by e2e scripts.

    Example::

        manager = await StateManager.create("datil")
        manager.set_configuration_from_cids(ability_cids, policy_cids)
        result = await manager.get_or_register_app(delegatee, register, register_next, ability_cids, policy_cids)
    """

    def __init__(
        self,
        network: str,
        *,
        test_file_name: Optional[str] = None,
        ability_ids: Optional[Sequence[str]] = None,
        policy_ids: Optional[Sequence[Sequence[str]]] = None,
        state_path: str | os.PathLike[str] | None = None,
        store: Optional[PersistentStateStore] = None,
        clock: Clock = utc_now,
    ) -> None:
        config_hash = DEFAULT_CONFIG_HASH
        if ability_ids is not None and policy_ids is not None:
            config_hash = compute_config_hash(ability_ids, policy_ids)
        self.session = StateSession(
            store or PersistentStateStore(state_path),
            network,
            test_file_name=test_file_name,
            config_hash=config_hash,
            clock=clock,
        )
        self.accounts = AccountCache(self.session)
        self.resources = ResourceCache(self.session)
        self.apps = AppRegistrationReconciler(self.session)
        self.permissions = PermissionReconciler(self.session)
        logger.info(
            "e2e.state_manager.initialized",
            extra={"test_file": self.session.test_file_name, "config_hash": config_hash, "network": network},
        )

    @classmethod
    async def create(cls, network: str, **kwargs) -> StateManager:
        manager = cls(network, **kwargs)
        await manager.load()
        return manager

    @property
    def network(self) -> str:
        return self.session.network

    @property
    def test_file_name(self) -> str:
        return self.session.test_file_name

    @property
    def config_hash(self) -> str:
        return self.session.config_hash

    @property
    def document(self) -> dict:
        return self.session.document

    async def load(self) -> None:
        await self.session.load()

    async def save(self) -> None:
        await self.session.save()

    def set_configuration_from_cids(self, ability_ids: Sequence[str], policy_ids: Sequence[Sequence[str]]) -> str:
        return self.session.set_configuration(ability_ids, policy_ids)

    def current_configuration(self) -> ConfigurationRecord:
        return ConfigurationRecord.from_dict(self.session.current_configuration())

    async def get_or_generate_account(self, role: AccountRole, external_key: Optional[str] = None) -> AccountResult:
        return await self.accounts.get_or_generate_account(role, external_key)

    def generated_accounts(self) -> List[str]:
        return self.accounts.generated_accounts()

    async def get_or_mint_pkp(self, mint_fn: MintPKP) -> PKPResult:
        return await self.resources.get_or_mint_pkp(mint_fn)

    async def get_or_mint_capacity_credits(self, mint_fn: MintCapacityCredit) -> CapacityCreditResult:
        return await self.resources.get_or_mint_capacity_credits(mint_fn)

    async def get_or_register_app(
        self,
        delegatee_address: str,
        register_fn: RegisterApp,
        register_next_version_fn: RegisterNextVersion,
        ability_ids: Sequence[str],
        policy_ids: Sequence[Sequence[str]],
        parameter_names: Optional[List[List[str]]] = None,
        parameter_types: Optional[List[List[int]]] = None,
        parameter_values: Optional[List[List[str]]] = None,
    ) -> AppRegistrationResult:
        return await self.apps.get_or_register_app(
            delegatee_address,
            register_fn,
            register_next_version_fn,
            ability_ids,
            policy_ids,
            parameter_names,
            parameter_types,
            parameter_values,
        )

    async def update_app_parameter_values(self, app_id: Identifier, parameter_values: List[List[str]]) -> bool:
        return await self.apps.update_app_parameter_values(app_id, parameter_values)

    def is_permitted(self, pkp_token_id: str, app_id: Identifier, app_version: Identifier) -> bool:
        return self.permissions.is_permitted(pkp_token_id, app_id, app_version)

    async def record_permission(self, pkp_token_id: str, app_id: Identifier, app_version: Identifier) -> PermissionRecord:
        return await self.permissions.record_permission(pkp_token_id, app_id, app_version)
