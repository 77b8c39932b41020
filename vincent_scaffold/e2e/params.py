"""Policy parameter typing and the per-ability to per-policy reshaping.

Parameters are supplied per ability as flat lists (names, type ids, raw string
values). Contracts expect them nested ``[ability][policy][parameter]``; the
conversion here is pure and leaves ABI byte encoding to the contract client.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Sequence

from vincent_scaffold.exceptions import UnsupportedParameterTypeError

__all__ = [
    "ParameterType",
    "ABI_TYPES",
    "PolicyParameter",
    "abi_type_for",
    "coerce_parameter_value",
    "convert_policy_parameters",
]


class ParameterType(IntEnum):
    INT256 = 0
    INT256_ARRAY = 1
    UINT256 = 2
    UINT256_ARRAY = 3
    BOOL = 4
    BOOL_ARRAY = 5
    ADDRESS = 6
    ADDRESS_ARRAY = 7
    STRING = 8
    STRING_ARRAY = 9
    BYTES = 10
    BYTES_ARRAY = 11


ABI_TYPES: Dict[ParameterType, str] = {
    ParameterType.INT256: "int256",
    ParameterType.INT256_ARRAY: "int256[]",
    ParameterType.UINT256: "uint256",
    ParameterType.UINT256_ARRAY: "uint256[]",
    ParameterType.BOOL: "bool",
    ParameterType.BOOL_ARRAY: "bool[]",
    ParameterType.ADDRESS: "address",
    ParameterType.ADDRESS_ARRAY: "address[]",
    ParameterType.STRING: "string",
    ParameterType.STRING_ARRAY: "string[]",
    ParameterType.BYTES: "bytes",
    ParameterType.BYTES_ARRAY: "bytes[]",
}


def _as_bool(value: Any) -> bool:
    return str(value).lower() == "true"


def _as_int(value: Any) -> int:
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith(("0x", "-0x")):
            return int(text, 16)
        return int(text)
    return int(value)


def _array_of(convert: Callable[[Any], Any]) -> Callable[[str], List[Any]]:
    def parse(raw: str) -> List[Any]:
        return [convert(item) for item in json.loads(raw)]

    return parse


def _identity(value: Any) -> Any:
    return value


_COERCERS: Dict[ParameterType, Callable[[str], Any]] = {
    ParameterType.INT256: _as_int,
    ParameterType.INT256_ARRAY: _array_of(_as_int),
    ParameterType.UINT256: _as_int,
    ParameterType.UINT256_ARRAY: _array_of(_as_int),
    ParameterType.BOOL: _as_bool,
    ParameterType.BOOL_ARRAY: _array_of(_as_bool),
    ParameterType.ADDRESS: _identity,
    ParameterType.ADDRESS_ARRAY: _array_of(_identity),
    ParameterType.STRING: _identity,
    ParameterType.STRING_ARRAY: _array_of(_identity),
    ParameterType.BYTES: _identity,
    ParameterType.BYTES_ARRAY: _array_of(_identity),
}


def _parameter_type(param_type: int) -> ParameterType:
    try:
        return ParameterType(param_type)
    except ValueError as exc:
        raise UnsupportedParameterTypeError(param_type) from exc


def abi_type_for(param_type: int) -> str:
    return ABI_TYPES[_parameter_type(param_type)]


def coerce_parameter_value(param_type: int, raw: str) -> Any:
    """Convert a raw string value into the Python value for its ABI type.

    Array types are given as JSON arrays, integers accept decimal or ``0x``
    text and booleans compare case-insensitively against ``"true"``.
    """
    return _COERCERS[_parameter_type(param_type)](raw)


@dataclass(frozen=True)
class PolicyParameter:
    name: str
    param_type: ParameterType
    abi_type: str
    raw_value: str
    value: Any


def convert_policy_parameters(
    ability_ids: Sequence[str],
    policy_ids: Sequence[Sequence[str]],
    parameter_names: Sequence[Sequence[str]],
    parameter_types: Sequence[Sequence[int]],
    parameter_values: Optional[Sequence[Sequence[str]]] = None,
) -> List[List[List[PolicyParameter]]]:
    """Reshape per-ability parameter lists into ``[ability][policy][parameter]``.

    A policy receives its ability's full parameter list when the ability has a
    value entry at that policy's index; otherwise the policy has no parameters.
    Without ``parameter_values`` every policy is left empty.
    """
    nested: List[List[List[PolicyParameter]]] = []
    for ability_index in range(len(ability_ids)):
        policies = policy_ids[ability_index] if ability_index < len(policy_ids) else []
        names = parameter_names[ability_index] if ability_index < len(parameter_names) else []
        types = parameter_types[ability_index] if ability_index < len(parameter_types) else []
        values: Sequence[str] = ()
        if parameter_values is not None and ability_index < len(parameter_values):
            values = parameter_values[ability_index]

        ability_params: List[List[PolicyParameter]] = []
        for policy_index in range(len(policies)):
            policy_params: List[PolicyParameter] = []
            if policy_index < len(values):
                for param_index, raw in enumerate(values):
                    ptype = _parameter_type(types[param_index])
                    policy_params.append(
                        PolicyParameter(
                            name=names[param_index],
                            param_type=ptype,
                            abi_type=ABI_TYPES[ptype],
                            raw_value=raw,
                            value=coerce_parameter_value(ptype, raw),
                        )
                    )
            ability_params.append(policy_params)
        nested.append(ability_params)
    return nested
