from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

__all__ = ["AppConfig", "PermissionData", "create_app_config"]

logger = logging.getLogger(__name__)

# {ability_cid: {policy_cid: {parameter_name: value}}}
PermissionData = Mapping[str, Mapping[str, Mapping[str, Any]]]


@dataclass(frozen=True)
class AppConfig:
    ability_ids: List[str]
    policy_ids: List[List[str]]
    permission_data: Dict[str, Dict[str, Dict[str, Any]]]

    @property
    def all_ids(self) -> List[str]:
        """Ability ids followed by every policy id, as PKP auth methods expect."""
        ids = list(self.ability_ids)
        for policies in self.policy_ids:
            ids.extend(policies)
        return ids

    def describe(self, cid_to_name: Optional[Mapping[str, str]] = None) -> str:
        names = cid_to_name or {}
        lines = ["Configuration summary:", "-" * 40]
        for index, ability in enumerate(self.ability_ids, start=1):
            lines.append(f"Ability {index}: {names.get(ability, 'Unknown Ability')} ({ability[:8]}...)")
            policies = self.policy_ids[index - 1]
            if not policies:
                lines.append("   Policies: None")
                continue
            lines.append("   Policies:")
            for policy in policies:
                lines.append(f"      - {names.get(policy, 'Unknown Policy')} ({policy[:8]}...)")
                params = self.permission_data[ability][policy]
                if params:
                    lines.append("      Parameters:")
                    lines.extend(f"        - {name}: {value}" for name, value in params.items())
        lines.append("-" * 40)
        return "\n".join(lines)


def create_app_config(
    permission_data: PermissionData,
    *,
    debug: bool = False,
    cid_to_name: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Derive ability and per-ability policy ids from ``permission_data``.

    Ordering follows the mapping's insertion order.
    """
    data = {ability: {policy: dict(params or {}) for policy, params in policies.items()} for ability, policies in permission_data.items()}
    config = AppConfig(
        ability_ids=list(data),
        policy_ids=[list(policies) for policies in data.values()],
        permission_data=data,
    )
    if debug:
        logger.info("%s", config.describe(cid_to_name))
    return config
