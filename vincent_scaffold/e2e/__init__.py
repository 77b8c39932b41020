"""Idempotent e2e state for Vincent abilities and policies."""

from __future__ import annotations

from .app_config import AppConfig, create_app_config
from .chain import (
    ChainClient,
    ContractClient,
    DeploymentStatus,
    PermitAppVersionRequest,
    RegisterAppRequest,
    ValidateAbilityRequest,
)
from .config_hash import compute_config_hash
from .models import (
    AppRegistration,
    CapacityCreditInfo,
    Found,
    NotFound,
    PKPInfo,
)
from .params import ParameterType, convert_policy_parameters
from .setup import fund_pkp_if_needed, init, needs_funding, setup_account
from .state_manager import StateManager
from .store import PersistentStateStore

__all__ = [
    "AppConfig",
    "AppRegistration",
    "CapacityCreditInfo",
    "ChainClient",
    "ContractClient",
    "DeploymentStatus",
    "Found",
    "NotFound",
    "ParameterType",
    "PermitAppVersionRequest",
    "PersistentStateStore",
    "PKPInfo",
    "RegisterAppRequest",
    "StateManager",
    "ValidateAbilityRequest",
    "compute_config_hash",
    "convert_policy_parameters",
    "create_app_config",
    "fund_pkp_if_needed",
    "init",
    "needs_funding",
    "setup_account",
]
