"""Public API surface for the vincent-scaffold package."""

from __future__ import annotations

import importlib
from typing import Any, Mapping

__all__ = [
    # e2e state
    "StateManager",
    "PersistentStateStore",
    "ChainClient",
    "AppConfig",
    "create_app_config",
    "compute_config_hash",
    "convert_policy_parameters",
    "init",
    # configuration
    "ProjectConfig",
    "E2EEnvironment",
    # exceptions
    "VincentScaffoldError",
    "EnvironmentConfigError",
    "StateSaveError",
    # primary namespace entrypoints
    "e2e",
    "foundation",
    "interfaces",
]

_MODULE_MAP: Mapping[str, str] = {
    "e2e": "vincent_scaffold.e2e",
    "foundation": "vincent_scaffold.foundation",
    "interfaces": "vincent_scaffold.interfaces",
}

_ATTR_MAP: Mapping[str, tuple[str, str | None]] = {
    # e2e state
    "StateManager": ("vincent_scaffold.e2e.state_manager", "StateManager"),
    "PersistentStateStore": ("vincent_scaffold.e2e.store", "PersistentStateStore"),
    "ChainClient": ("vincent_scaffold.e2e.chain", "ChainClient"),
    "AppConfig": ("vincent_scaffold.e2e.app_config", "AppConfig"),
    "create_app_config": ("vincent_scaffold.e2e.app_config", "create_app_config"),
    "compute_config_hash": ("vincent_scaffold.e2e.config_hash", "compute_config_hash"),
    "convert_policy_parameters": ("vincent_scaffold.e2e.params", "convert_policy_parameters"),
    "init": ("vincent_scaffold.e2e.setup", "init"),
    # Configuration
    "ProjectConfig": ("vincent_scaffold.foundation.project_config", "ProjectConfig"),
    "E2EEnvironment": ("vincent_scaffold.foundation.env", "E2EEnvironment"),
    # Exceptions
    "VincentScaffoldError": ("vincent_scaffold.exceptions", "VincentScaffoldError"),
    "EnvironmentConfigError": ("vincent_scaffold.exceptions", "EnvironmentConfigError"),
    "StateSaveError": ("vincent_scaffold.exceptions", "StateSaveError"),
}


def __getattr__(name: str) -> Any:
    if name in _MODULE_MAP:
        module = importlib.import_module(_MODULE_MAP[name])
        globals()[name] = module
        return module

    target = _ATTR_MAP.get(name)
    if target is None:
        raise AttributeError(name)
    module_path, attr = target
    module = importlib.import_module(module_path)
    value = module if attr is None else getattr(module, attr)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(__all__))
