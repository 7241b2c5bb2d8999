"""Substitution of created-data fields into scenario text.

A placeholder names a field path, a type name and a scenario id:

    {id person "Ivan"}
    {address.street персоны "Иван"}

Each one is replaced with the value found at the field path on the data
previously created under that type and id.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from scenariodata.errors import ErrorContext, PlaceholderError

PLACEHOLDER_PATTERN = re.compile(r'\{([\w.]+)\s+([^}]+)\s+"([^}"]+)"\}')


def read_property_path(data: Any, path: str) -> Any:
    """Read a dotted path where each segment is a mapping key or an attribute.

    Raises:
        PlaceholderError: If a segment cannot be resolved.
    """
    value = data
    for segment in path.split("."):
        if isinstance(value, Mapping):
            if segment not in value:
                raise PlaceholderError(
                    message=f"Cannot read {segment!r} of path {path!r}: no such key",
                    path=path,
                )
            value = value[segment]
        elif hasattr(value, segment):
            value = getattr(value, segment)
        else:
            raise PlaceholderError(
                message=(
                    f"Cannot read {segment!r} of path {path!r}: "
                    f"{type(value).__name__} has no such attribute"
                ),
                path=path,
            )
    return value


def fill_data_placeholders(text: str, resolve: Callable[[str, str], Any]) -> str:
    """Replace every placeholder in text.

    Args:
        text: Text with placeholders.
        resolve: Callable returning the data for (type name, scenario id).

    Returns:
        The text with placeholders replaced by field values.
    """

    def replacement(match: re.Match[str]) -> str:
        field_path, type_name, data_id = match.groups()
        type_name = type_name.strip()
        try:
            value = read_property_path(resolve(type_name, data_id), field_path)
        except PlaceholderError as e:
            e.context = ErrorContext(data_type=type_name, data_id=data_id, extra=e.context.extra)
            raise
        return str(value)

    return PLACEHOLDER_PATTERN.sub(replacement, text)
