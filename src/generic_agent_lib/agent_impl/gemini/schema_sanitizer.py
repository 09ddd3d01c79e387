"""
Adapt generic tool parameter schemas to the subset accepted by the Gemini API.

Gemini rejects ``additionalProperties`` and ``required`` entries that name
undeclared properties. Tool schemas from the registry are otherwise passed
through unchanged.
"""

from functools import singledispatch
from typing import Any, Dict, Set, cast

_UNSUPPORTED_KEYS = ("additionalProperties",)


def sanitize(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Performs all necessary, recursive sanitization steps on a tool schema.

    Args:
        schema: The tool parameter schema to sanitize.

    Returns:
        A sanitized copy ready for a ``FunctionDeclaration``.
    """
    return cast(Dict[str, Any], _recursive_sanitize(schema, set()))


@singledispatch
def _recursive_sanitize(schema: Any, seen: Set[int]) -> Any:
    return schema


@_recursive_sanitize.register(dict)
def _(schema: dict, seen: Set[int]) -> dict:
    obj_id = id(schema)
    if obj_id in seen:
        return schema
    seen.add(obj_id)

    level = _ensure_required_params(schema)

    result = {}
    for key, value in level.items():
        if key in _UNSUPPORTED_KEYS:
            continue
        if key == "properties" and isinstance(value, dict):
            # Keys of "properties" are parameter names, not schema keywords.
            result[key] = {name: _recursive_sanitize(sub, seen) for name, sub in value.items()}
        else:
            result[key] = _recursive_sanitize(value, seen)

    seen.remove(obj_id)
    return result


@_recursive_sanitize.register(list)
def _(schema: list, seen: Set[int]) -> list:
    obj_id = id(schema)
    if obj_id in seen:
        return schema
    seen.add(obj_id)

    result = [_recursive_sanitize(item, seen) for item in schema]

    seen.remove(obj_id)
    return result


def _ensure_required_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drops ``required`` entries that are not declared in ``properties``.

    Order of the remaining entries is kept. An empty ``required`` is removed.
    """
    if "required" not in params or "properties" not in params:
        return params

    _params = params.copy()
    defined = set(_params["properties"].keys())
    valid_required = [name for name in _params["required"] if name in defined]

    if valid_required:
        _params["required"] = valid_required
    else:
        _params.pop("required", None)

    return _params
