# src/async_docstore/base/utils.py
import logging
import math
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Tuple

logger = logging.getLogger(__name__)

# Marks a field path that does not resolve, as opposed to a stored None.
MISSING = object()


def prepare_for_storage(data: Any) -> Any:
    """
    Recursively convert Pydantic models, dataclasses and collections into
    plain values a document store accepts.

    Handles:
    - Pydantic BaseModel instances (dumped by alias)
    - Python dataclasses
    - Dictionaries (processing values recursively)
    - Lists, tuples and sets (stored as lists)
    - Pydantic URL types (converted to strings)

    Args:
        data: The data to convert

    Returns:
        The converted data, ready for storage
    """
    if data is None:
        return None

    if is_dataclass(data) and not isinstance(data, type):
        return prepare_for_storage(asdict(data))

    if hasattr(data, "model_dump") and callable(getattr(data, "model_dump")):
        try:
            return prepare_for_storage(data.model_dump(mode="json", by_alias=True))
        except Exception as e:
            logger.debug(f"Error using model_dump(mode='json', by_alias=True): {e}")
            return prepare_for_storage(data.model_dump(by_alias=True))

    if isinstance(data, dict):
        return {k: prepare_for_storage(v) for k, v in data.items()}

    # Document stores have no tuple or set type
    if isinstance(data, (list, tuple, set)):
        return [prepare_for_storage(item) for item in data]

    if hasattr(data, "__class__") and data.__class__.__module__ == "pydantic.networks":
        return str(data)

    return data


def is_falsy(value: Any) -> bool:
    """
    Falsiness as used by the filter normalizer: None, False, zero, the empty
    string and NaN. Empty lists and dicts are NOT falsy here.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)):
        return value == 0 or (isinstance(value, float) and math.isnan(value))
    return False


def compact(values: Any) -> list:
    """Return a list of the elements of `values` that are not falsy."""
    return [v for v in values if not is_falsy(v)]


def get_nested_value(document: Dict[str, Any], field_path: str) -> Any:
    """
    Get a value from a nested field using dot notation.
    Returns MISSING when any part of the path does not exist.
    """
    parts = field_path.split(".")
    curr: Any = document
    for part in parts:
        if not isinstance(curr, dict) or part not in curr:
            return MISSING
        curr = curr[part]
    return curr


def set_nested_value(document: Dict[str, Any], field_path: str, value: Any) -> None:
    """
    Set a value at a nested field using dot notation, creating intermediate
    maps and replacing non-map intermediates.
    """
    parts = field_path.split(".")
    curr = document
    for part in parts[:-1]:
        if not isinstance(curr.get(part), dict):
            curr[part] = {}
        curr = curr[part]
    curr[parts[-1]] = value


def split_document_path(path: str) -> Tuple[str, str]:
    """Split a 'collection/document_id' path into its two parts."""
    parts = [p for p in path.split("/") if p]
    if len(parts) != 2:
        raise ValueError(
            f"Document path must have the form 'collection/id', got {path!r}"
        )
    return parts[0], parts[1]
