"""JSON-schema helpers for tool parameters and structured output."""

from typing import Any, Dict, Set, Type

import jsonref  # type: ignore
from pydantic import BaseModel

from ...exceptions import ToolValidationError
from ...logger import get_logger

logger = get_logger(__name__)

_METADATA_KEYS = ("$defs", "$schema", "$id", "title", "definitions")


class SchemaValidator:
    """
    Helper class for validating and sanitizing JSON schemas sent to model vendors.
    """

    @classmethod
    def schema_from_model(cls, model: Type[BaseModel]) -> Dict[str, Any]:
        """Build a self-contained JSON schema from a pydantic model.

        The schema is checked for recursion, its ``$ref``s are inlined and the
        result is sanitized.

        Args:
            model: The pydantic model describing the arguments or output.

        Returns:
            A plain JSON schema dictionary without references.

        Raises:
            ToolValidationError: If the model is recursive.
        """
        raw_schema = model.model_json_schema()
        cls.assert_no_recursive_refs(raw_schema)
        # proxies=False returns plain dicts instead of JsonRef objects
        resolved = jsonref.replace_refs(raw_schema, proxies=False)
        return cls.sanitize_schema(resolved)

    @staticmethod
    def assert_no_recursive_refs(schema: Dict[str, Any]) -> None:
        """
        Walks the ``$ref`` graph of a schema and rejects cycles.

        Args:
            schema: The JSON schema to check.

        Raises:
            ToolValidationError: If a recursive reference is found.
        """
        defs = schema.get("$defs", {}) or schema.get("definitions", {})

        def check(node: Any, path: Set[str]) -> None:
            if isinstance(node, dict):
                ref = node.get("$ref")
                if isinstance(ref, str):
                    if ref in path:
                        msg = (
                            f"Recursive structure detected: {ref}. "
                            "Recursive structures are not allowed in tool inputs. "
                            "Use parent_id, lists, or a workflow loop instead."
                        )
                        logger.error(msg)
                        raise ToolValidationError(msg)

                    # e.g. #/$defs/MyModel
                    def_name = ref.rsplit("/", 1)[-1]
                    if ref.startswith("#") and def_name in defs:
                        check(defs[def_name], path | {ref})
                    return

                for value in node.values():
                    check(value, path)
            elif isinstance(node, list):
                for item in node:
                    check(item, path)

        check(schema, set())

    @classmethod
    def sanitize_schema(cls, schema: Any) -> Any:
        """
        Cleans up a schema for vendor compatibility.

        Drops metadata keys, collapses ``Optional`` unions (``anyOf`` with a
        single non-null member) and sets ``additionalProperties: false`` on
        objects that do not declare it.

        Args:
            schema: The JSON schema to sanitize.

        Returns:
            The sanitized copy. The input is not modified.
        """
        if isinstance(schema, list):
            return [cls.sanitize_schema(item) for item in schema]
        if not isinstance(schema, dict):
            return schema

        new_schema = {k: v for k, v in schema.items() if k not in _METADATA_KEYS}

        any_of = new_schema.get("anyOf")
        if isinstance(any_of, list):
            non_null = [x for x in any_of if not (isinstance(x, dict) and x.get("type") == "null")]
            if len(non_null) == 1 and isinstance(non_null[0], dict):
                merged = {k: v for k, v in new_schema.items() if k != "anyOf"}
                merged.update(non_null[0])
                # The parent's description wins over the member's.
                if "description" in new_schema:
                    merged["description"] = new_schema["description"]
                return cls.sanitize_schema(merged)

        if new_schema.get("type") == "object" and "additionalProperties" not in new_schema:
            new_schema["additionalProperties"] = False

        sanitized: Dict[str, Any] = {}
        for key, value in new_schema.items():
            if key == "properties" and isinstance(value, dict):
                # Property names are user data, a property may be called "title".
                sanitized[key] = {name: cls.sanitize_schema(sub) for name, sub in value.items()}
            else:
                sanitized[key] = cls.sanitize_schema(value)
        return sanitized
