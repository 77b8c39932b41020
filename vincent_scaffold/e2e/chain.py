"""State-aware wrapper around an injected Vincent contract client.

Transaction signing, ABI encoding and receipt parsing belong to the contract
client; this module decides whether a call is needed at all and records the
outcome in the e2e state.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Protocol

from vincent_scaffold.exceptions import ChainEventError

from .models import AppRegistration, AppRegistrationResult, Identifier
from .params import PolicyParameter, convert_policy_parameters
from .state_manager import StateManager

__all__ = [
    "APP_ID_RANGE",
    "MOCK_APP_METADATA",
    "DeploymentStatus",
    "AppVersionAbilities",
    "RegisterAppRequest",
    "RegisterAppCall",
    "RegisterNextVersionCall",
    "NextVersionResult",
    "TransactionResult",
    "PermitAppVersionRequest",
    "PermitAppVersionCall",
    "PermitAppVersionResult",
    "ValidateAbilityRequest",
    "AbilityValidation",
    "ContractClient",
    "ChainClient",
    "generate_random_app_id",
]

logger = logging.getLogger(__name__)

APP_ID_RANGE = (10_000_000_000, 100_000_000_000)

MOCK_APP_METADATA: Dict[str, Any] = {
    "name": "E2E Test App",
    "description": "E2E Test Application for Vincent Ability Testing",
    "authorized_redirect_uris": ["https://testing.vincent.com"],
}


class DeploymentStatus(IntEnum):
    DEV = 0
    STAGING = 1
    PRODUCTION = 2

    @classmethod
    def from_name(cls, name: str) -> DeploymentStatus:
        try:
            return cls[name.upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown deployment status: {name}") from exc


def generate_random_app_id() -> int:
    low, high = APP_ID_RANGE
    return random.randrange(low, high)


@dataclass(frozen=True)
class AppVersionAbilities:
    ability_ids: List[str]
    policy_ids: List[List[str]]


@dataclass(frozen=True)
class RegisterAppRequest:
    ability_ids: List[str]
    policy_ids: List[List[str]]
    parameter_names: Optional[List[List[str]]] = None
    parameter_types: Optional[List[List[int]]] = None
    parameter_values: Optional[List[List[str]]] = None


@dataclass(frozen=True)
class RegisterAppCall:
    app_id: int
    delegatee_addresses: List[str]
    abilities: AppVersionAbilities
    deployment_status: DeploymentStatus
    metadata: Dict[str, Any] = field(default_factory=lambda: dict(MOCK_APP_METADATA))


@dataclass(frozen=True)
class RegisterNextVersionCall:
    app_id: Identifier
    abilities: AppVersionAbilities


@dataclass(frozen=True)
class TransactionResult:
    tx_hash: str


@dataclass(frozen=True)
class NextVersionResult:
    tx_hash: str
    new_app_version: Optional[int]


@dataclass(frozen=True)
class PermitAppVersionRequest:
    pkp_token_id: str
    app_id: Identifier
    app_version: Identifier
    ability_ids: List[str]
    policy_ids: List[List[str]]
    parameter_names: List[List[str]] = field(default_factory=list)
    parameter_types: List[List[int]] = field(default_factory=list)
    parameter_values: List[List[str]] = field(default_factory=list)


@dataclass(frozen=True)
class PermitAppVersionCall:
    pkp_token_id: str
    app_id: Identifier
    app_version: Identifier
    ability_ids: List[str]
    policy_ids: List[List[str]]
    parameters: List[List[List[PolicyParameter]]]


@dataclass(frozen=True)
class PermitAppVersionResult:
    tx_hash: Optional[str]
    skipped: bool = False


@dataclass(frozen=True)
class ValidateAbilityRequest:
    delegatee_address: str
    pkp_token_id: str
    ability_id: str


@dataclass(frozen=True)
class AbilityValidation:
    is_permitted: bool
    app_id: str
    app_version: str
    policies: List[Dict[str, Any]] = field(default_factory=list)


class ContractClient(Protocol):
    async def register_app(self, call: RegisterAppCall) -> TransactionResult:
        ...

    async def register_next_version(self, call: RegisterNextVersionCall) -> NextVersionResult:
        ...

    async def permit_app_version(self, call: PermitAppVersionCall) -> TransactionResult:
        ...

    async def validate_ability_execution(self, request: ValidateAbilityRequest) -> AbilityValidation:
        ...


class ChainClient:
    def __init__(
        self,
        state: StateManager,
        contracts: ContractClient,
        delegatee_address: str,
        *,
        deployment_status: DeploymentStatus = DeploymentStatus.DEV,
        app_id_factory: Callable[[], int] = generate_random_app_id,
    ) -> None:
        self.state = state
        self.contracts = contracts
        self.delegatee_address = delegatee_address
        self.deployment_status = deployment_status
        self.app_id_factory = app_id_factory

    async def register_app(self, request: RegisterAppRequest) -> AppRegistrationResult:
        """Register the app for ``request`` unless the state already has it."""
        self.state.set_configuration_from_cids(request.ability_ids, request.policy_ids)
        abilities = AppVersionAbilities(list(request.ability_ids), [list(p) for p in request.policy_ids])

        async def register() -> AppRegistration:
            app_id = self.app_id_factory()
            tx = await self.contracts.register_app(
                RegisterAppCall(
                    app_id=app_id,
                    delegatee_addresses=[self.delegatee_address],
                    abilities=abilities,
                    deployment_status=self.deployment_status,
                )
            )
            logger.info("e2e.chain.app_registered", extra={"app_id": app_id, "tx_hash": tx.tx_hash})
            return AppRegistration(app_id=app_id, app_version=1)

        async def register_next(app_id: Identifier) -> AppRegistration:
            tx = await self.contracts.register_next_version(RegisterNextVersionCall(app_id=app_id, abilities=abilities))
            if tx.new_app_version is None:
                raise ChainEventError(f"NewAppVersionRegistered event missing for app {app_id} (tx {tx.tx_hash})")
            logger.info(
                "e2e.chain.app_version_registered",
                extra={"app_id": app_id, "app_version": tx.new_app_version, "tx_hash": tx.tx_hash},
            )
            return AppRegistration(app_id=app_id, app_version=tx.new_app_version)

        return await self.state.get_or_register_app(
            self.delegatee_address,
            register,
            register_next,
            request.ability_ids,
            request.policy_ids,
            request.parameter_names,
            request.parameter_types,
            request.parameter_values,
        )

    async def permit_app_version(self, request: PermitAppVersionRequest) -> PermitAppVersionResult:
        if self.state.is_permitted(request.pkp_token_id, request.app_id, request.app_version):
            logger.info(
                "e2e.chain.permit_skipped",
                extra={"pkp_token_id": request.pkp_token_id, "app_id": request.app_id, "app_version": request.app_version},
            )
            return PermitAppVersionResult(tx_hash=None, skipped=True)

        parameters = convert_policy_parameters(
            request.ability_ids,
            request.policy_ids,
            request.parameter_names,
            request.parameter_types,
            request.parameter_values,
        )
        tx = await self.contracts.permit_app_version(
            PermitAppVersionCall(
                pkp_token_id=request.pkp_token_id,
                app_id=request.app_id,
                app_version=request.app_version,
                ability_ids=list(request.ability_ids),
                policy_ids=[list(p) for p in request.policy_ids],
                parameters=parameters,
            )
        )
        await self.state.record_permission(request.pkp_token_id, request.app_id, request.app_version)
        if request.parameter_values:
            await self.state.update_app_parameter_values(request.app_id, [list(v) for v in request.parameter_values])
        logger.info(
            "e2e.chain.app_version_permitted",
            extra={"pkp_token_id": request.pkp_token_id, "app_id": request.app_id, "tx_hash": tx.tx_hash},
        )
        return PermitAppVersionResult(tx_hash=tx.tx_hash)

    async def validate_ability_execution(self, request: ValidateAbilityRequest) -> AbilityValidation:
        validation = await self.contracts.validate_ability_execution(request)
        logger.info(
            "e2e.chain.ability_validated",
            extra={
                "is_permitted": validation.is_permitted,
                "app_id": validation.app_id,
                "app_version": validation.app_version,
            },
        )
        return AbilityValidation(
            is_permitted=validation.is_permitted,
            app_id=str(validation.app_id),
            app_version=str(validation.app_version),
            policies=list(validation.policies),
        )
