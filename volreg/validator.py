"""
Configuration Validator
-----------------------
Strict schema validation of configuration dictionaries against the config
dataclasses.

The engine should refuse to start when the YAML carries a key the code does not
know about; otherwise a misspelt parameter is silently replaced by its default.
"""

from dataclasses import fields, is_dataclass
from typing import Dict, Type, Any, Set, cast, get_type_hints


def validate_keys(
    raw_config: Dict[str, Any], data_class: Type[Any], path: str = ""
) -> None:
    """
    Recursively validates that all keys in a raw configuration dictionary exist
    as fields in the target Dataclass schema.

    Args:
        raw_config: The raw configuration dictionary (usually loaded from YAML).
        data_class: The Dataclass type definition to validate against.
        path: Dot-notation path of the current section, used in error messages.

    Raises:
        ValueError: If 'raw_config' contains keys that are not present in 'data_class'.
    """
    allowed_fields: Set[str] = {f.name for f in fields(data_class)}

    unknown_keys = set(raw_config.keys()) - allowed_fields

    if unknown_keys:
        error_path = path if path else "root"
        raise ValueError(
            f"Config Error: Unknown keys detected at '{error_path}': {sorted(unknown_keys)}. "
            f"Allowed keys: {sorted(allowed_fields)}"
        )

    # annotations may be postponed strings; resolve them to real types
    hints = get_type_hints(data_class)

    for f in fields(data_class):
        value = raw_config.get(f.name)
        field_type = hints.get(f.name, f.type)

        if is_dataclass(field_type) and isinstance(value, dict):
            new_path = f"{path}.{f.name}" if path else f.name
            validate_keys(value, cast(Type[Any], field_type), path=new_path)
