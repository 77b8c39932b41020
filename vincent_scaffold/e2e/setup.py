"""Account provisioning and funding for e2e runs.

Balances and transfers go through an injected :class:`Funder`, so this module
only decides who needs funding and wires the state manager to the chain client.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from vincent_scaffold.exceptions import FundingError
from vincent_scaffold.foundation.env import E2EEnvironment

from .chain import ChainClient, ContractClient, DeploymentStatus
from .models import (
    AccountResult,
    AccountRole,
    CapacityCreditInfo,
    CapacityCreditResult,
    PKPInfo,
    PKPResult,
    utc_now,
)
from .session import Clock
from .state_manager import StateManager

__all__ = [
    "WEI_PER_ETHER",
    "DEFAULT_FUND_AMOUNT",
    "MIN_FUNDER_BALANCE",
    "Funder",
    "AccountSetup",
    "InitAccounts",
    "InitResult",
    "MintCapacityCreditsFor",
    "MintPKPFor",
    "parse_ether",
    "format_ether",
    "needs_funding",
    "setup_account",
    "fund_pkp_if_needed",
    "check_funder_balance",
    "init",
]

logger = logging.getLogger(__name__)

WEI_PER_ETHER = 10**18


def parse_ether(amount: str) -> int:
    return int(Decimal(amount) * WEI_PER_ETHER)


def format_ether(wei: int) -> str:
    return format(Decimal(wei) / WEI_PER_ETHER, "f")


DEFAULT_FUND_AMOUNT = parse_ether("0.01")
MIN_FUNDER_BALANCE = parse_ether("1")


class Funder(Protocol):
    address: str

    async def get_balance(self, address: str) -> int:
        ...

    async def send(self, to: str, value: int) -> str:
        """Transfer ``value`` wei to ``to`` and wait for inclusion; return the tx hash."""
        ...


@dataclass(frozen=True)
class AccountSetup:
    role: AccountRole
    account: AccountResult
    balance: int
    funding_tx: Optional[str] = None

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def private_key(self) -> str:
        return self.account.private_key


def needs_funding(is_new: bool, balance: int, fund_amount: int) -> tuple[bool, str]:
    if is_new and balance == 0:
        return True, "new account"
    if balance < fund_amount:
        return True, "insufficient balance"
    return False, ""


async def setup_account(
    state: StateManager,
    role: AccountRole,
    funder: Funder,
    *,
    external_key: Optional[str] = None,
    fund_amount: int = DEFAULT_FUND_AMOUNT,
) -> AccountSetup:
    account = await state.get_or_generate_account(role, external_key)
    balance = await funder.get_balance(account.address)
    logger.info(
        "e2e.setup.account",
        extra={"role": role, "address": account.address, "is_new": account.is_new, "balance": format_ether(balance)},
    )

    fund, reason = needs_funding(account.is_new, balance, fund_amount)
    if not fund:
        return AccountSetup(role, account, balance)

    tx_hash = await funder.send(account.address, fund_amount)
    logger.info(
        "e2e.setup.account_funded",
        extra={"role": role, "reason": reason, "amount": format_ether(fund_amount), "tx_hash": tx_hash},
    )
    return AccountSetup(role, account, balance + fund_amount, tx_hash)


async def fund_pkp_if_needed(
    pkp_address: str,
    is_new: bool,
    funder: Funder,
    fund_amount: int = DEFAULT_FUND_AMOUNT,
) -> Optional[str]:
    """Fund a freshly minted PKP that holds nothing yet."""
    balance = await funder.get_balance(pkp_address)
    logger.info(
        "e2e.setup.pkp_balance",
        extra={"eth_address": pkp_address, "is_new": is_new, "balance": format_ether(balance)},
    )
    if not (is_new and balance == 0):
        return None
    tx_hash = await funder.send(pkp_address, fund_amount)
    logger.info("e2e.setup.pkp_funded", extra={"eth_address": pkp_address, "tx_hash": tx_hash})
    return tx_hash


async def check_funder_balance(funder: Funder, minimum: int = MIN_FUNDER_BALANCE) -> int:
    balance = await funder.get_balance(funder.address)
    logger.info("e2e.setup.funder", extra={"address": funder.address, "balance": format_ether(balance)})
    if balance < minimum:
        raise FundingError(
            f"Funder {funder.address} holds {format_ether(balance)}, at least {format_ether(minimum)} is required"
        )
    return balance


@dataclass(frozen=True)
class InitAccounts:
    app_manager: AccountSetup
    app_delegatee: AccountSetup
    agent_wallet_pkp_owner: AccountSetup


ContractsFactory = Callable[[InitAccounts], ContractClient]
# Receives the delegatee account that pays for the credits.
MintCapacityCreditsFor = Callable[[AccountSetup], Awaitable[CapacityCreditInfo]]
# Receives the PKP owner account and the ability and policy ids to permit on the PKP.
MintPKPFor = Callable[[AccountSetup, Sequence[str]], Awaitable[PKPInfo]]


@dataclass(frozen=True)
class InitResult:
    state: StateManager
    accounts: InitAccounts
    chain_client: ChainClient
    capacity_credits: CapacityCreditResult
    funder: Funder
    mint_pkp: MintPKPFor
    fund_amount: int = DEFAULT_FUND_AMOUNT

    async def mint_agent_wallet_pkp(self, ability_and_policy_ids: Sequence[str] = ()) -> PKPResult:
        """Reuse or mint the agent wallet PKP and fund it when it is new."""
        owner = self.accounts.agent_wallet_pkp_owner
        ids = list(ability_and_policy_ids)

        async def mint() -> PKPInfo:
            return await self.mint_pkp(owner, ids)

        result = await self.state.get_or_mint_pkp(mint)
        await fund_pkp_if_needed(result.pkp.eth_address, result.is_new, self.funder, self.fund_amount)
        await self.state.save()
        return result


async def init(
    network: str,
    *,
    env: E2EEnvironment,
    funder: Funder,
    contracts_factory: ContractsFactory,
    mint_capacity_credits: MintCapacityCreditsFor,
    mint_pkp: MintPKPFor,
    fund_amount: str = "0.01",
    deployment_status: str = "dev",
    state_path: str | os.PathLike[str] | None = None,
    test_file_name: Optional[str] = None,
    clock: Clock = utc_now,
) -> InitResult:
    """Load state, provision the test accounts and delegatee credits, and build a chain client."""
    amount = parse_ether(fund_amount)
    status = DeploymentStatus.from_name(deployment_status)

    state = await StateManager.create(network, state_path=state_path, test_file_name=test_file_name, clock=clock)
    await check_funder_balance(funder)

    app_manager = await setup_account(
        state, "appManager", funder, external_key=env.app_manager_private_key, fund_amount=amount
    )
    agent_owner = await setup_account(
        state, "agentWalletPkpOwner", funder, external_key=env.agent_wallet_pkp_owner_private_key, fund_amount=amount
    )
    delegatee = await setup_account(
        state, "appDelegatee", funder, external_key=env.app_delegatee_private_key, fund_amount=amount
    )
    accounts = InitAccounts(app_manager=app_manager, app_delegatee=delegatee, agent_wallet_pkp_owner=agent_owner)

    async def mint_delegatee_credits() -> CapacityCreditInfo:
        return await mint_capacity_credits(delegatee)

    delegatee_credits = await state.get_or_mint_capacity_credits(mint_delegatee_credits)
    logger.info(
        "e2e.setup.delegatee_capacity_credits",
        extra={"token_id": delegatee_credits.capacity_credits.capacity_token_id_str, "is_new": delegatee_credits.is_new},
    )

    chain_client = ChainClient(
        state,
        contracts_factory(accounts),
        delegatee.address,
        deployment_status=status,
    )
    await state.save()
    logger.info(
        "e2e.setup.initialized",
        extra={"network": network, "test_file": state.test_file_name, "accounts": state.generated_accounts()},
    )
    return InitResult(
        state=state,
        accounts=accounts,
        chain_client=chain_client,
        capacity_credits=delegatee_credits,
        funder=funder,
        mint_pkp=mint_pkp,
        fund_amount=amount,
    )
