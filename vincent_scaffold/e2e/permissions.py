from __future__ import annotations

import logging
from typing import List

from .models import Identifier, PermissionRecord
from .session import StateSession

__all__ = ["PermissionReconciler"]

logger = logging.getLogger(__name__)


class PermissionReconciler:
    """Tracks which PKPs were permitted for which app versions."""

    def __init__(self, session: StateSession) -> None:
        self.session = session

    def _entries(self) -> List[dict]:
        state = self.session.current_configuration()["state"]
        return state.setdefault("pkpAppPermissions", [])

    def permissions(self) -> List[PermissionRecord]:
        return [PermissionRecord.from_dict(p) for p in self._entries()]

    def is_permitted(self, pkp_token_id: str, app_id: Identifier, app_version: Identifier) -> bool:
        network = self.session.network
        for record in self.permissions():
            if record.matches(pkp_token_id, app_id, app_version, network):
                logger.info(
                    "e2e.permission.exists",
                    extra={"pkp_token_id": pkp_token_id, "app_id": app_id, "app_version": app_version},
                )
                return True
        return False

    async def record_permission(self, pkp_token_id: str, app_id: Identifier, app_version: Identifier) -> PermissionRecord:
        network = self.session.network
        record = PermissionRecord(
            pkp_token_id=str(pkp_token_id),
            app_id=app_id,
            app_version=app_version,
            permitted_at=self.session.timestamp(),
            network=network,
        )
        entries = self._entries()
        for index, existing in enumerate(entries):
            if PermissionRecord.from_dict(existing).matches(pkp_token_id, app_id, app_version, network):
                entries[index] = record.to_dict()
                break
        else:
            entries.append(record.to_dict())
        await self.session.save()
        logger.info(
            "e2e.permission.recorded",
            extra={"pkp_token_id": pkp_token_id, "app_id": app_id, "app_version": app_version},
        )
        return record
