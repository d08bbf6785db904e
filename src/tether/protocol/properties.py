"""Property bags: dynamically-typed values exchanged with providers.

A property bag maps property names to JSON-compatible values. The protocol
layer moves bags between engine and provider without interpreting them;
providers that want a typed view convert explicitly with :func:`to_model`
and :func:`from_model`.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, TypeVar, Union

from pydantic import BaseModel

from tether.core.errors import PropertyError

PropertyValue = Union[
    None, bool, int, float, str, list["PropertyValue"], dict[str, "PropertyValue"]
]
PropertyMap = dict[str, PropertyValue]

M = TypeVar("M", bound=BaseModel)


def copy_properties(bag: Mapping[str, Any] | None) -> PropertyMap:
    """Return a validated deep copy of ``bag``.

    Every mapping and list in the result is freshly allocated, so the copy
    shares no mutable state with the original. Tuples are copied as lists.
    """
    if bag is None:
        return {}
    if not isinstance(bag, Mapping):
        raise PropertyError(f"property bag must be a mapping, got {type(bag).__name__}")
    return {_check_key(key, ""): _copy_value(value, str(key)) for key, value in bag.items()}


def validate_properties(bag: Mapping[str, Any] | None) -> None:
    """Raise :class:`PropertyError` if ``bag`` cannot be sent over the wire."""
    copy_properties(bag)


def _check_key(key: Any, path: str) -> str:
    if not isinstance(key, str):
        where = f" under '{path}'" if path else ""
        raise PropertyError(f"property names must be strings, got {key!r}{where}")
    return key


def _copy_value(value: Any, path: str) -> PropertyValue:
    if value is None or isinstance(value, (bool, str, int)):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise PropertyError(f"property '{path}' is not a finite number", {"property": path})
        return value
    if isinstance(value, Mapping):
        return {
            _check_key(key, path): _copy_value(item, f"{path}.{key}")
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_copy_value(item, f"{path}[{index}]") for index, item in enumerate(value)]
    raise PropertyError(
        f"property '{path}' has unsupported type {type(value).__name__}",
        {"property": path},
    )


def property_diff(olds: Mapping[str, Any], news: Mapping[str, Any]) -> set[str]:
    """Names of top-level properties that were added, removed or changed.

    Values are compared by kind as well as value, so ``True`` and ``1`` differ.
    """
    changed = {key for key in news if key not in olds or not _same_value(olds[key], news[key])}
    changed.update(key for key in olds if key not in news)
    return changed


def _same_value(old: Any, new: Any) -> bool:
    if isinstance(old, bool) or isinstance(new, bool):
        return isinstance(old, bool) and isinstance(new, bool) and old is new
    if isinstance(old, Mapping) and isinstance(new, Mapping):
        return old.keys() == new.keys() and all(_same_value(old[k], new[k]) for k in old)
    if isinstance(old, (list, tuple)) and isinstance(new, (list, tuple)):
        return len(old) == len(new) and all(map(_same_value, old, new))
    if isinstance(old, (Mapping, list, tuple)) or isinstance(new, (Mapping, list, tuple)):
        return False
    return old == new


def to_model(model_cls: type[M], bag: Mapping[str, Any] | None) -> M:
    """Convert a property bag into a provider-specific pydantic model.

    Raises ``pydantic.ValidationError``; see
    :func:`tether.protocol.messages.failures_from_validation_error`.
    """
    return model_cls.model_validate(dict(bag or {}))


def from_model(model: BaseModel) -> PropertyMap:
    """Convert a provider-specific pydantic model back into a property bag."""
    return copy_properties(model.model_dump(mode="json", by_alias=True, exclude_none=True))
