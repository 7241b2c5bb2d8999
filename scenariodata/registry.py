"""Registry of test data created during a scenario.

Two maps are kept per test:
- recently created: type name -> last data registered for that type
- previously created: type name -> scenario id -> data

A scenario refers to data either by id ("the person "Ivan"") or implicitly
("the person", meaning the one created last).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from scenariodata.errors import (
    DuplicateRegistrationError,
    ErrorContext,
    NothingCreatedError,
    UnknownDataIdError,
)

logger = logging.getLogger(__name__)


def split_types(types: str | Iterable[str]) -> list[str]:
    """Split a comma-separated type list, trimming blanks.

    The concrete type comes first, abstract types after it.
    """
    if isinstance(types, str):
        types = types.split(",")
    return [name.strip() for name in types if name and name.strip()]


def is_anonymous(data_id: Any) -> bool:
    return data_id is None or data_id == ""


class CreatedDataRegistry:
    """Bookkeeping for recently and previously created data."""

    def __init__(self) -> None:
        self._recently_created: dict[str, Any] = {}
        self._previously_created: dict[str, dict[Any, Any]] = {}

    def register(self, types: str | Iterable[str], data_id: Any, data: Any) -> Any:
        """Register created data under one or more types.

        Args:
            types: Type name, comma-separated type names or a list of them.
            data_id: Scenario id of the data. Anonymous data (None or "")
                is only recorded as recently created.
            data: The data itself.

        Returns:
            The registered data.

        Raises:
            DuplicateRegistrationError: If any of the types already holds
                data under this id. Nothing is registered in that case.
        """
        type_names = split_types(types)

        if not is_anonymous(data_id):
            for type_name in type_names:
                if data_id in self._previously_created.get(type_name, {}):
                    raise DuplicateRegistrationError(
                        context=ErrorContext(data_type=type_name, data_id=str(data_id))
                    )

        for type_name in type_names:
            if not is_anonymous(data_id):
                self._previously_created.setdefault(type_name, {})[data_id] = data
            self._recently_created[type_name] = data

        logger.debug(f"Registered {type(data).__name__} as {type_names} with id {data_id!r}")
        return data

    def has_previously_created(self, type_name: str, data_id: Any) -> bool:
        return data_id in self._previously_created.get(type_name, {})

    def get_previously_created(self, type_name: str, data_id: Any) -> Any:
        if not self.has_previously_created(type_name, data_id):
            raise UnknownDataIdError(
                context=ErrorContext(data_type=type_name, data_id=str(data_id))
            )
        return self._previously_created[type_name][data_id]

    def has_recently_created(self, type_name: str) -> bool:
        return type_name in self._recently_created

    def get_recently_created(self, type_name: str) -> Any:
        if not self.has_recently_created(type_name):
            raise NothingCreatedError(context=ErrorContext(data_type=type_name))
        return self._recently_created[type_name]

    def replace(self, old: Any, new: Any) -> int:
        """Swap every registration of old for new, keeping types and ids.

        Returns:
            Number of replaced entries.
        """
        replaced = 0
        for type_name, data in self._recently_created.items():
            if data is old:
                self._recently_created[type_name] = new
                replaced += 1
        for items in self._previously_created.values():
            for data_id, data in items.items():
                if data is old:
                    items[data_id] = new
                    replaced += 1
        return replaced

    def types(self) -> list[str]:
        """List every type that holds registered data."""
        return list(self._recently_created.keys())

    def ids(self, type_name: str) -> list[Any]:
        """List scenario ids registered for a type, in registration order."""
        return list(self._previously_created.get(type_name, {}).keys())

    def clear(self) -> None:
        self._recently_created.clear()
        self._previously_created.clear()

    def __len__(self) -> int:
        return sum(len(items) for items in self._previously_created.values())
