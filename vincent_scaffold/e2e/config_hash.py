from __future__ import annotations

import hashlib
from typing import Iterable, Sequence

__all__ = ["compute_config_hash", "CONFIG_HASH_LENGTH"]

CONFIG_HASH_LENGTH = 8


def compute_config_hash(
    ability_ids: Iterable[str],
    policy_ids_per_ability: Iterable[Sequence[str]],
) -> str:
    """Return the short content hash identifying an ability/policy configuration.

    Every identifier is pooled, sorted and concatenated, so the result does not
    depend on the order of abilities or of policies inside an ability.
    """
    identifiers = list(ability_ids)
    for policies in policy_ids_per_ability:
        identifiers.extend(policies)
    digest = hashlib.sha256("".join(sorted(identifiers)).encode("utf-8")).hexdigest()
    return digest[:CONFIG_HASH_LENGTH]
