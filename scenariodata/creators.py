"""Data creator modules.

A data creator module knows how to create one kind of test data. It declares
the type names scenarios use for that data (the first one is the normalized
name, the others are aliases) and the mapped class the data is stored as.
DataCreation collects the modules, binds itself to each of them and calls
their creators from get_or_create().

Example:
    >>> class PersonCreator(DataCreatorModule):
    ...     name_variants = ["person", "persons", "персоны"]
    ...     data_class = Person
    ...
    ...     def create(self, data_id, name=None):
    ...         person = Person(name=name or data_id)
    ...         self.data_creation.persist_and_register_created(
    ...             self.registered_types(), data_id, person
    ...         )
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from scenariodata.errors import ConfigurationError, ErrorContext
from scenariodata.factories import EntityFactory

if TYPE_CHECKING:
    from scenariodata.module import DataCreation

logger = logging.getLogger(__name__)


class CreatorRegistry:
    """Registry of concrete data creator module classes."""

    _creators: dict[str, type[DataCreatorModule]] = {}

    @classmethod
    def register(cls, creator_class: type[DataCreatorModule]) -> None:
        cls._creators[creator_class.__name__] = creator_class

    @classmethod
    def get(cls, name: str) -> type[DataCreatorModule] | None:
        return cls._creators.get(name)

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._creators.pop(name, None)

    @classmethod
    def clear(cls) -> None:
        cls._creators.clear()

    @classmethod
    def list_creators(cls) -> list[str]:
        return list(cls._creators.keys())

    @classmethod
    def instantiate_all(cls) -> list[DataCreatorModule]:
        return [creator_class() for creator_class in cls._creators.values()]


class DataCreatorModule(ABC):
    """Abstract base class for data creator modules.

    Class Attributes:
        name_variants: Type names for this data; the first is the normalized one.
        data_class: Mapped class the created data is persisted as.
        abstract_types: Extra types the created data is registered under.
        auto_register: Whether concrete subclasses join CreatorRegistry.
    """

    name_variants: ClassVar[list[str]] = []
    data_class: ClassVar[type | None] = None
    abstract_types: ClassVar[list[str]] = []
    auto_register: ClassVar[bool] = True

    def __init__(self) -> None:
        self._data_creation: DataCreation | None = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if (
            cls.name_variants
            and cls.auto_register
            and not getattr(cls.create, "__isabstractmethod__", False)
        ):
            CreatorRegistry.register(cls)

    @property
    def data_creation(self) -> DataCreation:
        if self._data_creation is None:
            raise RuntimeError(f"{type(self).__name__} is not bound to a DataCreation instance")
        return self._data_creation

    def bind(self, data_creation: DataCreation) -> None:
        self._data_creation = data_creation

    def get_name_variants(self) -> list[str]:
        return list(self.name_variants)

    def get_normalized_name(self) -> str:
        if not self.name_variants:
            raise ValueError(f"{type(self).__name__} declares no name variants")
        return self.name_variants[0]

    def get_data_class(self) -> type | None:
        return self.data_class

    def get_data_creator(self) -> Callable[..., Any]:
        return self.create

    def registered_types(self) -> str:
        """Types the created data is registered under, concrete type first."""
        return ", ".join([self.get_normalized_name(), *self.abstract_types])

    @abstractmethod
    def create(self, data_id: Any, *params: Any, **kwargs: Any) -> Any:
        """Create data and register it under the given scenario id."""


class EntityCreatorModule(DataCreatorModule):
    """Creator module that builds entities with an EntityFactory.

    Field overrides are taken from keyword arguments or from a single
    mapping passed positionally.
    """

    factory: ClassVar[type[EntityFactory] | None] = None
    id_field: ClassVar[str | None] = None

    def get_data_class(self) -> type | None:
        if self.data_class is None and self.factory is not None:
            return self.factory._model
        return self.data_class

    def create(self, data_id: Any, *params: Any, **kwargs: Any) -> Any:
        overrides: dict[str, Any] = {}
        for param in params:
            if not isinstance(param, Mapping):
                raise TypeError(
                    f"{type(self).__name__}.create() expects mappings of field values, "
                    f"got {type(param).__name__}"
                )
            overrides.update(param)
        overrides.update(kwargs)

        if self.id_field and data_id and self.id_field not in overrides:
            overrides[self.id_field] = data_id

        entity = self.build(**overrides)
        logger.debug(f"{type(self).__name__} built {entity!r} for id {data_id!r}")
        self.data_creation.persist_and_register_created(self.registered_types(), data_id, entity)
        return entity

    def build(self, **overrides: Any) -> Any:
        if self.factory is None:
            raise ConfigurationError(
                message=f"{type(self).__name__} declares no factory to build entities with",
                context=ErrorContext(data_type=self.get_normalized_name()),
            )
        return self.factory.build(**overrides)
