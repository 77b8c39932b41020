"""Environment settings for e2e runs.

Values come from the process environment after ``.env`` is loaded with
python-dotenv. Optional test keys fall back to accounts generated and cached
in the e2e state file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vincent_scaffold.exceptions import EnvironmentConfigError

__all__ = ["E2EEnvironment", "DEFAULT_YELLOWSTONE_RPC_URL", "DEFAULT_BASE_RPC_URL"]

logger = logging.getLogger(__name__)

DEFAULT_YELLOWSTONE_RPC_URL = "https://yellowstone-rpc.litprotocol.com/"
DEFAULT_BASE_RPC_URL = "https://base.llamarpc.com"

_PREVIEW_LIMIT = 128
_PREVIEW_KEEP = 47
_SECRET_FIELDS = frozenset(
    {
        "pinata_jwt",
        "app_manager_private_key",
        "app_delegatee_private_key",
        "agent_wallet_pkp_owner_private_key",
        "funder_private_key",
    }
)


class E2EEnvironment(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    vincent_address: str = Field(alias="VINCENT_ADDRESS", description="Vincent contract address")
    pinata_jwt: str = Field(
        alias="PINATA_JWT",
        min_length=1,
        description="Pinata JWT used to pin abilities and policies to IPFS.",
    )
    app_manager_private_key: Optional[str] = Field(
        default=None,
        alias="TEST_APP_MANAGER_PRIVATE_KEY",
        min_length=64,
        description="Manages the Vincent app instance (generated when absent).",
    )
    app_delegatee_private_key: Optional[str] = Field(
        default=None,
        alias="TEST_APP_DELEGATEE_PRIVATE_KEY",
        min_length=64,
        description="Delegatee receiving delegations from the app (generated when absent).",
    )
    agent_wallet_pkp_owner_private_key: Optional[str] = Field(
        default=None,
        alias="TEST_AGENT_WALLET_PKP_OWNER_PRIVATE_KEY",
        min_length=64,
        description="Owner of the agent wallet PKP (generated when absent).",
    )
    funder_private_key: str = Field(
        alias="TEST_FUNDER_PRIVATE_KEY",
        min_length=64,
        description="Funds every test account.",
    )
    yellowstone_rpc_url: str = Field(default=DEFAULT_YELLOWSTONE_RPC_URL, alias="YELLOWSTONE_RPC_URL")
    base_rpc_url: str = Field(default=DEFAULT_BASE_RPC_URL, alias="BASE_RPC_URL")

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> E2EEnvironment:
        """Validate ``values``; raise :class:`EnvironmentConfigError` listing every issue."""
        known = {field.alias for field in cls.model_fields.values() if field.alias}
        # Empty strings count as unset, as they do for optional keys in shells.
        data = {key: value for key, value in values.items() if key in known and value != ""}
        for warning in cls.optional_warnings(data):
            logger.warning("e2e.env.optional_missing", extra={"detail": warning})
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            issues = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            ]
            logger.error("e2e.env.invalid", extra={"issues": issues})
            raise EnvironmentConfigError(issues) from exc

    @classmethod
    def from_env(cls, dotenv_path: str | os.PathLike[str] | None = None) -> E2EEnvironment:
        load_dotenv(Path(dotenv_path) if dotenv_path else None)
        return cls.from_mapping(os.environ)

    @classmethod
    def optional_warnings(cls, values: Mapping[str, str]) -> list[str]:
        warnings = []
        for field in cls.model_fields.values():
            if field.is_required() or field.default is not None:
                continue
            if not values.get(field.alias or ""):
                warnings.append(f'Optional env "{field.alias}" is missing. {field.description or ""}'.strip())
        return warnings

    def summary(self) -> dict[str, str]:
        """Alias -> preview mapping; secrets are masked and long values truncated."""
        preview: dict[str, str] = {}
        for name, field in type(self).model_fields.items():
            value = getattr(self, name)
            if value and name in _SECRET_FIELDS:
                value = f"{value[:6]}..."
            elif value and len(value) > _PREVIEW_LIMIT:
                value = f"{value[:_PREVIEW_KEEP]}..."
            preview[field.alias or name] = value or "[not set]"
        return preview
