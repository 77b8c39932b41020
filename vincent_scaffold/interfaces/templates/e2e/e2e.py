"""End-to-end run for the Vincent abilities and policies in this project.

Run with ``npm run vincent:e2e`` (or ``python vincent-e2e/e2e.py``). Accounts,
the PKP, the app registration and its permissions are cached in
``.e2e-state.json`` so repeated runs only send the transactions that are
still missing. ``npm run vincent:reset`` drops the cache.

Fill in ``ChronicleFunder``, ``VincentContracts`` and the two mint functions
with your web3 and Lit clients of choice; everything else is handled by
``vincent_scaffold.e2e``.
"""

from __future__ import annotations

import asyncio
import logging

from vincent_scaffold.e2e import (
    ChainClient,
    PermitAppVersionRequest,
    RegisterAppRequest,
    ValidateAbilityRequest,
    create_app_config,
    init,
)
from vincent_scaffold.e2e.accounts import derive_address
from vincent_scaffold.e2e.chain import (
    AbilityValidation,
    NextVersionResult,
    PermitAppVersionCall,
    RegisterAppCall,
    RegisterNextVersionCall,
    TransactionResult,
)
from vincent_scaffold.e2e.models import CapacityCreditInfo, PKPInfo
from vincent_scaffold.e2e.setup import AccountSetup
from vincent_scaffold.foundation.env import E2EEnvironment

NETWORK = "datil"

# IPFS CIDs of the deployed packages: vincent-{ability,policy}-metadata.json
HELLO_WORLD_ABILITY = "<hello-world ability ipfsCid>"
GREETING_LIMIT_POLICY = "<greeting-limit policy ipfsCid>"

PERMISSION_DATA = {
    HELLO_WORLD_ABILITY: {
        GREETING_LIMIT_POLICY: {"maxGreetings": "5", "timeWindowHours": "24"},
    },
}


class ChronicleFunder:
    """Sends test tokens from TEST_FUNDER_PRIVATE_KEY on Chronicle Yellowstone."""

    def __init__(self, env: E2EEnvironment) -> None:
        self.env = env
        self.address = derive_address(env.funder_private_key)

    async def get_balance(self, address: str) -> int:
        raise NotImplementedError("query the balance through env.yellowstone_rpc_url")

    async def send(self, to: str, value: int) -> str:
        raise NotImplementedError("send value wei to `to` and return the transaction hash")


class VincentContracts:
    """Calls the Vincent diamond at VINCENT_ADDRESS."""

    def __init__(self, env: E2EEnvironment, accounts) -> None:
        self.env = env
        self.accounts = accounts

    async def register_app(self, call: RegisterAppCall) -> TransactionResult:
        raise NotImplementedError

    async def register_next_version(self, call: RegisterNextVersionCall) -> NextVersionResult:
        raise NotImplementedError

    async def permit_app_version(self, call: PermitAppVersionCall) -> TransactionResult:
        raise NotImplementedError

    async def validate_ability_execution(self, request: ValidateAbilityRequest) -> AbilityValidation:
        raise NotImplementedError


async def mint_capacity_credits(delegatee: AccountSetup) -> CapacityCreditInfo:
    raise NotImplementedError("mint capacity credits paid by delegatee.private_key")


async def mint_pkp(owner: AccountSetup, ability_and_policy_ids: list[str]) -> PKPInfo:
    raise NotImplementedError("mint a PKP owned by owner.private_key and permit ability_and_policy_ids on it")


async def main() -> None:
    env = E2EEnvironment.from_env()
    setup = await init(
        NETWORK,
        env=env,
        funder=ChronicleFunder(env),
        contracts_factory=lambda accounts: VincentContracts(env, accounts),
        mint_capacity_credits=mint_capacity_credits,
        mint_pkp=mint_pkp,
    )
    chain: ChainClient = setup.chain_client

    app_config = create_app_config(PERMISSION_DATA, debug=True)
    pkp = await setup.mint_agent_wallet_pkp([HELLO_WORLD_ABILITY, GREETING_LIMIT_POLICY])
    registration = await chain.register_app(
        RegisterAppRequest(ability_ids=app_config.ability_ids, policy_ids=app_config.policy_ids)
    )

    await chain.permit_app_version(
        PermitAppVersionRequest(
            pkp_token_id=pkp.pkp.token_id,
            app_id=registration.app_id,
            app_version=registration.app_version,
            ability_ids=app_config.ability_ids,
            policy_ids=app_config.policy_ids,
            parameter_names=[["maxGreetings", "timeWindowHours"]],
            parameter_types=[[2, 2]],
            parameter_values=[["5", "24"]],
        )
    )

    validation = await chain.validate_ability_execution(
        ValidateAbilityRequest(
            delegatee_address=setup.accounts.app_delegatee.address,
            pkp_token_id=pkp.pkp.token_id,
            ability_id=HELLO_WORLD_ABILITY,
        )
    )
    print(f"hello-world permitted: {validation.is_permitted}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
