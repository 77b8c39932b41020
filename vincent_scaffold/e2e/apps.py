"""Idempotent app registration against the cached state.

A delegatee owns at most one app on chain, so an app registered under any
configuration of the test file is reused. Different ability/policy sets map
to app versions of that app; a new version is only registered when no cached
version carries the requested identifiers.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from .models import (
    AppRecord,
    AppRegistration,
    AppRegistrationResult,
    AppVersionRecord,
    Found,
    Identifier,
    Lookup,
    NotFound,
    app_version_key,
    same_id,
)
from .session import StateSession

__all__ = ["AppRegistrationReconciler", "RegisterApp", "RegisterNextVersion"]

logger = logging.getLogger(__name__)

RegisterApp = Callable[[], Awaitable[AppRegistration]]
RegisterNextVersion = Callable[[Identifier], Awaitable[AppRegistration]]


class AppRegistrationReconciler:
    def __init__(self, session: StateSession) -> None:
        self.session = session

    def _current_app(self, delegatee_address: str) -> Optional[AppRecord]:
        data = self.session.current_configuration()["state"].get("vincentApp")
        if not data:
            return None
        app = AppRecord.from_dict(data)
        if app.network == self.session.network and app.delegatee_address == delegatee_address:
            return app
        return None

    def find_app_in_other_configurations(self, delegatee_address: str) -> Lookup[AppRecord]:
        for config_hash, config in self.session.configurations().items():
            if config_hash == self.session.config_hash:
                continue
            data = (config.get("state") or {}).get("vincentApp")
            if not data:
                continue
            app = AppRecord.from_dict(data)
            if app.network == self.session.network and app.delegatee_address == delegatee_address:
                return Found(app)
        return NotFound(f"no app for delegatee {delegatee_address}")

    def find_matching_version(
        self,
        app_id: Identifier,
        ability_ids: Sequence[str],
        policy_ids: Sequence[Sequence[str]],
    ) -> Lookup[AppVersionRecord]:
        abilities = list(ability_ids)
        policies = [list(p) for p in policy_ids]
        for key, data in self.session.app_versions().items():
            if not same_id(data.get("appId"), app_id) or data.get("network") != self.session.network:
                continue
            if not (data.get("state") or {}).get("vincentApp"):
                logger.warning("e2e.app.version_incomplete", extra={"app_version_key": key})
                continue
            version = AppVersionRecord.from_dict(data)
            if version.matches_identifiers(abilities, policies):
                logger.info("e2e.app.version_matched", extra={"app_version_key": key})
                return Found(version)
        return NotFound(f"no cached version of app {app_id} with these identifiers")

    def _store_version(self, app: AppRecord) -> None:
        record = AppVersionRecord(
            app_id=app.app_id,
            app_version=app.app_version,
            ability_ids=list(app.ability_ids),
            policy_ids=[list(p) for p in app.policy_ids],
            last_used=self.session.timestamp(),
            network=self.session.network,
            app=app,
        )
        self.session.app_versions()[record.key] = record.to_dict()

    def _store_current(self, app: AppRecord) -> None:
        self.session.current_configuration()["state"]["vincentApp"] = app.to_dict()

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
        abilities = list(ability_ids)
        policies = [list(p) for p in policy_ids]

        def snapshot(app_id: Identifier, app_version: Identifier) -> AppRecord:
            return AppRecord(
                app_id=app_id,
                app_version=app_version,
                delegatee_address=delegatee_address,
                network=self.session.network,
                created_at=self.session.timestamp(),
                ability_ids=list(abilities),
                policy_ids=[list(p) for p in policies],
                parameter_names=parameter_names,
                parameter_types=parameter_types,
                parameter_values=parameter_values,
            )

        def result(app_id: Identifier, app_version: Identifier, is_new: bool, is_new_version: bool) -> AppRegistrationResult:
            return AppRegistrationResult(
                app_id=app_id,
                app_version=app_version,
                is_new=is_new,
                is_new_version=is_new_version,
                ability_ids=abilities,
                policy_ids=policies,
                parameter_names=parameter_names,
                parameter_types=parameter_types,
                parameter_values=parameter_values,
            )

        current = self._current_app(delegatee_address)
        if current is not None and current.matches_identifiers(abilities, policies):
            logger.info(
                "e2e.app.reused",
                extra={"app_id": current.app_id, "app_version": current.app_version, "config_hash": self.session.config_hash},
            )
            return result(current.app_id, current.app_version, False, False)

        known_app_id: Optional[Identifier] = current.app_id if current is not None else None
        if known_app_id is None:
            other = self.find_app_in_other_configurations(delegatee_address)
            if isinstance(other, Found):
                # The current slot is rewritten below with this configuration's
                # identifiers and parameters, never the other slot's.
                known_app_id = other.record.app_id
                logger.info(
                    "e2e.app.found_in_other_configuration",
                    extra={"app_id": known_app_id, "config_hash": self.session.config_hash},
                )

        if known_app_id is None:
            logger.info("e2e.app.registering", extra={"delegatee": delegatee_address})
            registration = await register_fn()
            app = snapshot(registration.app_id, registration.app_version)
            self._store_version(app)
            self._store_current(app)
            await self.session.save()
            logger.info(
                "e2e.app.registered",
                extra={"app_id": app.app_id, "app_version": app.app_version},
            )
            return result(app.app_id, app.app_version, True, False)

        match = self.find_matching_version(known_app_id, abilities, policies)
        if isinstance(match, Found):
            app_version = match.record.app_version
            self._store_current(snapshot(known_app_id, app_version))
            await self.session.save()
            return result(known_app_id, app_version, False, False)

        logger.info("e2e.app.registering_version", extra={"app_id": known_app_id})
        registration = await register_next_version_fn(known_app_id)
        app = snapshot(known_app_id, registration.app_version)
        self._store_version(app)
        self._store_current(app)
        await self.session.save()
        logger.info(
            "e2e.app.version_registered",
            extra={"app_id": app.app_id, "app_version": app.app_version, "key": app_version_key(app.app_id, app.app_version)},
        )
        return result(known_app_id, registration.app_version, False, True)

    async def update_app_parameter_values(self, app_id: Identifier, parameter_values: List[List[str]]) -> bool:
        """Attach permitted parameter values to the current configuration's app."""
        state = self.session.current_configuration()["state"]
        data = state.get("vincentApp")
        if not data or not same_id(data.get("appId"), app_id):
            return False
        data["abilityPolicyParameterValues"] = parameter_values
        key = app_version_key(data["appId"], data["appVersion"])
        version_app = (self.session.app_versions().get(key, {}).get("state") or {}).get("vincentApp")
        if version_app:
            version_app["abilityPolicyParameterValues"] = parameter_values
        await self.session.save()
        logger.info("e2e.app.parameter_values_updated", extra={"app_id": app_id})
        return True
