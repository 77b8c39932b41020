"""Records persisted in the e2e state document.

The document keeps the camelCase layout shared with the JavaScript harness;
each record converts to and from that layout with ``to_dict``/``from_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

__all__ = [
    "AccountRole",
    "ACCOUNT_ROLES",
    "Identifier",
    "AccountRecord",
    "AccountResult",
    "PKPInfo",
    "PKPRecord",
    "PKPResult",
    "CapacityCreditInfo",
    "CapacityCreditRecord",
    "CapacityCreditResult",
    "AppRecord",
    "AppVersionRecord",
    "AppRegistration",
    "AppRegistrationResult",
    "PermissionRecord",
    "ConfigurationRecord",
    "Found",
    "NotFound",
    "Lookup",
    "app_version_key",
    "same_id",
    "format_timestamp",
    "parse_timestamp",
    "utc_now",
]

AccountRole = str
ACCOUNT_ROLES = ("appManager", "appDelegatee", "agentWalletPkpOwner")

# Chain ids come back as ints; older state files stored them as strings.
Identifier = Union[int, str]

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render ``moment`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def same_id(left: Identifier | None, right: Identifier | None) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)


def app_version_key(app_id: Identifier, app_version: Identifier) -> str:
    return f"{app_id}-{app_version}"


@dataclass(frozen=True)
class Found(Generic[T]):
    record: T


@dataclass(frozen=True)
class NotFound:
    reason: str = ""


Lookup = Union[Found[T], NotFound]


@dataclass(frozen=True)
class AccountRecord:
    private_key: str
    address: str
    created_at: str
    network: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AccountRecord:
        return cls(
            private_key=data["privateKey"],
            address=data["address"],
            created_at=data.get("createdAt", ""),
            network=data.get("network", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "privateKey": self.private_key,
            "address": self.address,
            "createdAt": self.created_at,
            "network": self.network,
        }


@dataclass(frozen=True)
class AccountResult:
    private_key: str
    address: str
    is_new: bool


@dataclass(frozen=True)
class PKPInfo:
    token_id: str
    public_key: str
    eth_address: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tokenId": self.token_id,
            "publicKey": self.public_key,
            "ethAddress": self.eth_address,
        }


@dataclass(frozen=True)
class PKPRecord:
    token_id: str
    public_key: str
    eth_address: str
    created_at: str
    network: str
    expires_at: Optional[str] = None

    @property
    def info(self) -> PKPInfo:
        return PKPInfo(self.token_id, self.public_key, self.eth_address)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PKPRecord:
        return cls(
            token_id=str(data["tokenId"]),
            public_key=data["publicKey"],
            eth_address=data["ethAddress"],
            created_at=data.get("createdAt", ""),
            network=data.get("network", ""),
            expires_at=data.get("expiresAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            **self.info.to_dict(),
            "createdAt": self.created_at,
            "network": self.network,
        }
        if self.expires_at is not None:
            payload["expiresAt"] = self.expires_at
        return payload


@dataclass(frozen=True)
class PKPResult:
    pkp: PKPInfo
    is_new: bool


@dataclass(frozen=True)
class CapacityCreditInfo:
    capacity_token_id_str: str
    capacity_token_id: str
    requests_per_kilosecond: int
    days_until_utc_midnight_expiration: int
    minted_at_utc: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capacityTokenIdStr": self.capacity_token_id_str,
            "capacityTokenId": self.capacity_token_id,
            "requestsPerKilosecond": self.requests_per_kilosecond,
            "daysUntilUTCMidnightExpiration": self.days_until_utc_midnight_expiration,
            "mintedAtUtc": self.minted_at_utc,
        }


@dataclass(frozen=True)
class CapacityCreditRecord:
    capacity_token_id_str: str
    capacity_token_id: str
    requests_per_kilosecond: int
    days_until_utc_midnight_expiration: int
    minted_at_utc: str
    network: str
    expires_at: str

    @property
    def info(self) -> CapacityCreditInfo:
        return CapacityCreditInfo(
            capacity_token_id_str=self.capacity_token_id_str,
            capacity_token_id=self.capacity_token_id,
            requests_per_kilosecond=self.requests_per_kilosecond,
            days_until_utc_midnight_expiration=self.days_until_utc_midnight_expiration,
            minted_at_utc=self.minted_at_utc,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CapacityCreditRecord:
        return cls(
            capacity_token_id_str=str(data["capacityTokenIdStr"]),
            capacity_token_id=str(data.get("capacityTokenId", data["capacityTokenIdStr"])),
            requests_per_kilosecond=int(data.get("requestsPerKilosecond", 0)),
            days_until_utc_midnight_expiration=int(data.get("daysUntilUTCMidnightExpiration", 0)),
            minted_at_utc=data.get("mintedAtUtc", ""),
            network=data.get("network", ""),
            expires_at=data["expiresAt"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {**self.info.to_dict(), "network": self.network, "expiresAt": self.expires_at}


@dataclass(frozen=True)
class CapacityCreditResult:
    capacity_credits: CapacityCreditInfo
    is_new: bool


@dataclass
class AppRecord:
    """A registered app as cached for one configuration or app version."""

    app_id: Identifier
    app_version: Identifier
    delegatee_address: str
    network: str
    created_at: str
    ability_ids: List[str] = field(default_factory=list)
    policy_ids: List[List[str]] = field(default_factory=list)
    parameter_names: Optional[List[List[str]]] = None
    parameter_types: Optional[List[List[int]]] = None
    parameter_values: Optional[List[List[str]]] = None

    def matches_identifiers(self, ability_ids: List[str], policy_ids: List[List[str]]) -> bool:
        return sorted(self.ability_ids) == sorted(ability_ids) and self.policy_ids == policy_ids

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AppRecord:
        return cls(
            app_id=data["appId"],
            app_version=data["appVersion"],
            delegatee_address=data.get("delegateeAddress", ""),
            network=data.get("network", ""),
            created_at=data.get("createdAt", ""),
            ability_ids=list(data.get("abilityIpfsCids") or []),
            policy_ids=[list(p) for p in data.get("abilityPolicies") or []],
            parameter_names=data.get("abilityPolicyParameterNames"),
            parameter_types=data.get("abilityPolicyParameterTypes"),
            parameter_values=data.get("abilityPolicyParameterValues"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "appId": self.app_id,
            "appVersion": self.app_version,
            "createdAt": self.created_at,
            "network": self.network,
            "delegateeAddress": self.delegatee_address,
            "abilityIpfsCids": list(self.ability_ids),
            "abilityPolicies": [list(p) for p in self.policy_ids],
        }
        optional = {
            "abilityPolicyParameterNames": self.parameter_names,
            "abilityPolicyParameterTypes": self.parameter_types,
            "abilityPolicyParameterValues": self.parameter_values,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        return payload


@dataclass(frozen=True)
class PermissionRecord:
    pkp_token_id: str
    app_id: Identifier
    app_version: Identifier
    permitted_at: str
    network: str

    def matches(self, pkp_token_id: str, app_id: Identifier, app_version: Identifier, network: str) -> bool:
        return (
            str(self.pkp_token_id) == str(pkp_token_id)
            and same_id(self.app_id, app_id)
            and same_id(self.app_version, app_version)
            and self.network == network
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PermissionRecord:
        return cls(
            pkp_token_id=str(data["pkpTokenId"]),
            app_id=data["appId"],
            app_version=data["appVersion"],
            permitted_at=data.get("permittedAt", ""),
            network=data.get("network", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pkpTokenId": self.pkp_token_id,
            "appId": self.app_id,
            "appVersion": self.app_version,
            "permittedAt": self.permitted_at,
            "network": self.network,
        }


@dataclass
class AppVersionRecord:
    app_id: Identifier
    app_version: Identifier
    ability_ids: List[str]
    policy_ids: List[List[str]]
    last_used: str
    network: str
    app: AppRecord
    permissions: List[PermissionRecord] = field(default_factory=list)

    @property
    def key(self) -> str:
        return app_version_key(self.app_id, self.app_version)

    def matches_identifiers(self, ability_ids: List[str], policy_ids: List[List[str]]) -> bool:
        # Ability order is irrelevant; nested policy order is significant.
        return sorted(self.ability_ids) == sorted(ability_ids) and self.policy_ids == policy_ids

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AppVersionRecord:
        state = data.get("state") or {}
        app = state.get("vincentApp")
        if not app:
            raise ValueError(f"app version {data.get('appId')}-{data.get('appVersion')} has no vincentApp state")
        return cls(
            app_id=data["appId"],
            app_version=data["appVersion"],
            ability_ids=list(data.get("abilityIpfsCids") or []),
            policy_ids=[list(p) for p in data.get("abilityPolicyCids") or []],
            last_used=data.get("lastUsed", ""),
            network=data.get("network", ""),
            app=AppRecord.from_dict(app),
            permissions=[PermissionRecord.from_dict(p) for p in state.get("pkpAppPermissions") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appId": self.app_id,
            "appVersion": self.app_version,
            "abilityIpfsCids": list(self.ability_ids),
            "abilityPolicyCids": [list(p) for p in self.policy_ids],
            "lastUsed": self.last_used,
            "network": self.network,
            "state": {
                "vincentApp": self.app.to_dict(),
                "pkpAppPermissions": [p.to_dict() for p in self.permissions],
            },
        }


@dataclass
class ConfigurationRecord:
    config_hash: str
    ability_ids: List[str]
    policy_ids: List[List[str]]
    last_used: str
    network: str
    app: Optional[AppRecord] = None
    permissions: List[PermissionRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ConfigurationRecord:
        state = data.get("state") or {}
        app = state.get("vincentApp")
        return cls(
            config_hash=data["configHash"],
            ability_ids=list(data.get("abilityIpfsCids") or []),
            policy_ids=[list(p) for p in data.get("abilityPolicyCids") or []],
            last_used=data.get("lastUsed", ""),
            network=data.get("network", ""),
            app=AppRecord.from_dict(app) if app else None,
            permissions=[PermissionRecord.from_dict(p) for p in state.get("pkpAppPermissions") or []],
        )


@dataclass(frozen=True)
class AppRegistration:
    """Outcome of an on-chain app (or app version) registration."""

    app_id: Identifier
    app_version: Identifier


@dataclass(frozen=True)
class AppRegistrationResult:
    app_id: Identifier
    app_version: Identifier
    is_new: bool
    is_new_version: bool
    ability_ids: List[str]
    policy_ids: List[List[str]]
    parameter_names: Optional[List[List[str]]] = None
    parameter_types: Optional[List[List[int]]] = None
    parameter_values: Optional[List[List[str]]] = None
