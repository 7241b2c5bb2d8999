"""Creation and verification of test data for scenarios backed by SQLAlchemy.

DataCreation keeps a registry of the data a scenario created and exposes
repository checks over the wrapped session.

Reads that must reflect the database (see_in_repository,
get_item_from_repository, ...) first detach the queried class from the
session. Otherwise a persistent instance found in the identity map would be
returned as is, and since test data is usually created before the code under
test runs, that cached state may differ from what is stored.

Example:
    >>> data_creation = DataCreation(session, modules=[PersonCreator()])
    >>> data_creation.before_test()
    >>> ivan = data_creation.get_or_create("person", "Ivan")
    >>> data_creation.see_item_in_repository("person", {"name": "Ivan"})
    >>> data_creation.fill_data_placeholders('/persons/{id person "Ivan"}')
    '/persons/1'
    >>> data_creation.after_test()
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from scenariodata.config import DataCreationConfig
from scenariodata.creators import DataCreatorModule
from scenariodata.errors import (
    CreatorConflictError,
    CreatorNotFoundError,
    ErrorContext,
    InvalidQueryError,
    RepositoryAssertionError,
    UnknownTypeNameError,
)
from scenariodata.orm import EntityManager, build_association_query, describe, root_alias
from scenariodata.placeholders import fill_data_placeholders
from scenariodata.registry import CreatedDataRegistry, is_anonymous

logger = logging.getLogger(__name__)


class DataCreation:
    """Registry of created test data bound to a SQLAlchemy session.

    Attributes:
        session: Session shared with the code under test.
        config: Behaviour switches (cleanup, refresh on persist, query alias).
        em: EntityManager wrapping the session.
        registry: Recently and previously created data.
    """

    def __init__(
        self,
        session: Session,
        modules: Iterable[Any] | None = None,
        config: DataCreationConfig | None = None,
    ) -> None:
        self.session = session
        self.config = config or DataCreationConfig()
        self.em = EntityManager(session)
        self.registry = CreatedDataRegistry()

        self._creators: dict[str, Any] = {}
        self._data_classes: dict[str, type | None] = {}
        self._normalize_type_name_map: dict[str, str] = {}

        if modules is not None:
            self.initialize(modules)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, modules: Iterable[Any]) -> None:
        """Collect data creator modules.

        Objects that are not DataCreatorModule instances are skipped.

        Raises:
            CreatorConflictError: If two modules claim the same type name.
        """
        for module in modules:
            if not isinstance(module, DataCreatorModule):
                logger.debug(f"Skipping {type(module).__name__}: not a data creator module")
                continue

            type_names = module.get_name_variants()
            normal_type_name = module.get_normalized_name()
            for type_name in type_names:
                owner = self._normalize_type_name_map.get(type_name)
                if owner is not None and owner != normal_type_name:
                    raise CreatorConflictError(
                        message=(
                            f"Type name {type_name!r} is claimed by both {owner!r} "
                            f"and {normal_type_name!r}"
                        ),
                        context=ErrorContext(data_type=type_name),
                    )

            module.bind(self)
            self._creators[normal_type_name] = module.get_data_creator()
            self._data_classes[normal_type_name] = module.get_data_class()
            for type_name in type_names:
                self._normalize_type_name_map[type_name] = normal_type_name

            logger.debug(f"Registered data creator {type(module).__name__} for {type_names}")

    def before_test(self) -> None:
        """Open the transaction a cleanup-enabled test runs in."""
        self.registry.clear()
        if self.config.cleanup and not self.session.in_transaction():
            self.session.begin()

    def after_test(self) -> None:
        """Forget created data and end the test's transaction."""
        logger.info(f"Test finished with {len(self.registry)} registered data item(s)")
        self.registry.clear()
        if self.config.cleanup:
            self.session.rollback()
        else:
            self.session.commit()
        self.session.expunge_all()

    # ------------------------------------------------------------------
    # Type names
    # ------------------------------------------------------------------

    @property
    def type_names(self) -> list[str]:
        return list(self._normalize_type_name_map.keys())

    def get_normalized_type_name(self, type_name: str) -> str:
        if type_name not in self._normalize_type_name_map:
            raise UnknownTypeNameError(
                message=(
                    f"Attempt to normalize unknown type {type_name!r}. The alias may be "
                    f"missing from the data creator module of this data"
                ),
                context=ErrorContext(data_type=type_name),
            )
        return self._normalize_type_name_map[type_name]

    def get_data_class(self, type_name: str) -> type:
        normal_type_name = self.get_normalized_type_name(type_name)
        data_class = self._data_classes.get(normal_type_name)
        if data_class is None:
            raise CreatorNotFoundError(
                message=f"Data creator for {normal_type_name!r} declares no data class",
                context=ErrorContext(data_type=normal_type_name),
            )
        return data_class

    # ------------------------------------------------------------------
    # Creation and registration
    # ------------------------------------------------------------------

    def get_or_create(self, type_name: str, data_id: Any, *params: Any, **kwargs: Any) -> Any:
        """Get previously created data or create it with the type's creator.

        Args:
            type_name: Type of data, any of the creator's name variants.
            data_id: Scenario id of the data. When empty, the recently
                created data of the type is returned (and created if none).
            *params: Further positional arguments for the creator.
            **kwargs: Keyword arguments for the creator.

        Raises:
            CreatorNotFoundError: If no creator handles the type.
        """
        normal_type_name = self._normalize_type_name_map.get(type_name)
        if normal_type_name is None or normal_type_name not in self._creators:
            raise CreatorNotFoundError(
                message=f'No method found to create data of type "{type_name}"',
                context=ErrorContext(data_type=type_name, data_id=_str_or_none(data_id)),
            )

        anonymous = is_anonymous(data_id)
        if (not anonymous and not self.registry.has_previously_created(normal_type_name, data_id)) or (
            anonymous and not self.registry.has_recently_created(normal_type_name)
        ):
            logger.debug(f"Creating {normal_type_name} {data_id!r}")
            self._creators[normal_type_name](data_id, *params, **kwargs)

        if anonymous:
            return self.get_recently_created(normal_type_name)
        return self.get_previously_created(normal_type_name, data_id)

    def persist_and_register_created(
        self,
        types: str | Iterable[str],
        data_id: Any,
        entity: Any,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        """Persist an entity and register it.

        Args:
            types: Type of the data or comma-separated types, concrete first.
            data_id: Scenario id of the data.
            entity: Entity to persist.
            data: Attribute values set on the entity before persisting.
        """
        self.em.persist(entity, data)
        if self.config.refresh_on_persist:
            # The same session serves the code under test; reloading checks
            # the values survive the round trip through their column types.
            self.em.refresh(entity)
        return self.register_previously_created(types, data_id, entity)

    def register_previously_created(self, types: str | Iterable[str], data_id: Any, data: Any) -> Any:
        """Register created data.

        Raises:
            DuplicateRegistrationError: If data of one of the types was
                already registered under this id.
        """
        return self.registry.register(types, data_id, data)

    def has_previously_created(self, type_name: str, data_id: Any) -> bool:
        return self.registry.has_previously_created(type_name, data_id)

    def get_previously_created(self, type_name: str, data_id: Any) -> Any:
        """Get previously created data by scenario id.

        Raises:
            UnknownDataIdError: If nothing is registered under this id.
        """
        return self._attached(self.registry.get_previously_created(type_name, data_id))

    def has_recently_created(self, type_name: str) -> bool:
        return self.registry.has_recently_created(type_name)

    def get_recently_created(self, type_name: str) -> Any:
        """Get the data of a type that was registered last.

        Raises:
            NothingCreatedError: If no data of the type was registered.
        """
        return self._attached(self.registry.get_recently_created(type_name))

    def fill_data_placeholders(self, text: str) -> str:
        """Replace placeholders like `{id person "Ivan"}` with field values."""
        return fill_data_placeholders(
            text,
            lambda type_name, data_id: self.get_previously_created(
                self.get_normalized_type_name(type_name), data_id
            ),
        )

    # ------------------------------------------------------------------
    # Repository checks
    # ------------------------------------------------------------------

    def see_item_in_repository(self, type_name: str, params: Mapping[str, Any]) -> None:
        self.see_in_repository(self.get_data_class(type_name), params)

    def dont_see_item_in_repository(self, type_name: str, params: Mapping[str, Any]) -> None:
        self.dont_see_in_repository(self.get_data_class(type_name), params)

    def see_in_repository(self, entity_class: type, params: Mapping[str, Any] | None = None) -> None:
        """Assert that an entity matching params is stored.

        Raises:
            RepositoryAssertionError: If no stored entity matches.
        """
        params = params or {}
        if not self._proceed_see_in_repository(entity_class, params):
            raise RepositoryAssertionError(
                message=f"{entity_class.__name__} with {_dump(params)} not found in repository",
                context=ErrorContext(entity_class=entity_class.__name__),
            )

    def dont_see_in_repository(
        self, entity_class: type, params: Mapping[str, Any] | None = None
    ) -> None:
        """Assert that no entity matching params is stored.

        Raises:
            RepositoryAssertionError: If a stored entity matches.
        """
        params = params or {}
        if self._proceed_see_in_repository(entity_class, params):
            raise RepositoryAssertionError(
                message=f"{entity_class.__name__} with {_dump(params)} unexpectedly found in repository",
                context=ErrorContext(entity_class=entity_class.__name__),
            )

    def grab_entity_from_repository(self, entity_class: type, params: Mapping[str, Any]) -> Any:
        """Fetch the single stored entity matching params.

        Raises:
            sqlalchemy.exc.NoResultFound: If nothing matches.
            sqlalchemy.exc.MultipleResultsFound: If more than one entity matches.
        """
        stmt = self._entity_query(entity_class, params)
        return self.session.scalars(stmt).unique().one()

    def grab_entities_from_repository(
        self, entity_class: type, params: Mapping[str, Any] | None = None
    ) -> list[Any]:
        stmt = self._entity_query(entity_class, params or {})
        return list(self.session.scalars(stmt).unique().all())

    def grab_field_from_repository(
        self, entity_class: type, field: str, params: Mapping[str, Any]
    ) -> Any:
        """Fetch a single column value of the stored entity matching params."""
        return self.session.execute(self._field_query(entity_class, field, params)).scalar_one()

    def get_item_field_from_repository(self, type_name: str, data_id: Any, field: str) -> Any:
        """Read one field of registered data straight from the database.

        Useful when a stored value needs a check more elaborate than
        equality, e.g. the length of a JSON array column.
        """
        entity_class = self.get_data_class(type_name)
        entity = self._registered_entity(type_name, data_id)
        return self.grab_field_from_repository(
            entity_class, field, self.get_identifier_params(entity)
        )

    def get_item_from_repository(self, type_name: str, data_id: Any) -> Any:
        """Load registered data again from the database."""
        entity_class = self.get_data_class(type_name)
        entity = self._registered_entity(type_name, data_id)
        return self.grab_entity_from_repository(entity_class, self.get_identifier_params(entity))

    def get_identifier_params(self, entity: Any) -> dict[str, Any]:
        return self.em.identifier_values(entity)

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def persist_entity(self, entity: Any, data: Mapping[str, Any] | None = None) -> Any:
        return self.em.persist(entity, data)

    def flush_to_database(self) -> None:
        self.em.flush()

    def refresh_entity(self, entity: Any) -> None:
        self.em.refresh(entity)

    def clear_entity_manager(self) -> None:
        self.em.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _attached(self, data: Any) -> Any:
        attached = self.em.ensure_in_identity_map(data)
        if attached is not data:
            # Later lookups return the instance the session manages.
            self.registry.replace(data, attached)
        return attached

    def _registered_entity(self, type_name: str, data_id: Any) -> Any:
        normal_type_name = self.get_normalized_type_name(type_name)
        if is_anonymous(data_id):
            return self.get_recently_created(normal_type_name)
        return self.get_previously_created(normal_type_name, data_id)

    def _proceed_see_in_repository(self, entity_class: type, params: Mapping[str, Any]) -> bool:
        stmt = self._entity_query(entity_class, params)
        return self.session.execute(stmt.limit(1)).first() is not None

    def _entity_query(self, entity_class: type, params: Mapping[str, Any]) -> Any:
        self.em.class_metadata(entity_class)
        self.em.clear_class(entity_class)
        alias = root_alias(entity_class, self.config.query_alias)
        stmt = build_association_query(select(alias), entity_class, alias, params)
        self._debug(stmt)
        return stmt.execution_options(populate_existing=True)

    def _field_query(self, entity_class: type, field: str, params: Mapping[str, Any]) -> Any:
        mapper = self.em.class_metadata(entity_class)
        if field not in mapper.column_attrs:
            raise InvalidQueryError(
                message=f"{entity_class.__name__} has no mapped column {field!r}",
                context=ErrorContext(entity_class=entity_class.__name__),
            )
        self.em.clear_class(entity_class)
        alias = root_alias(entity_class, self.config.query_alias)
        stmt = build_association_query(select(getattr(alias, field)), entity_class, alias, params)
        self._debug(stmt)
        return stmt

    def _debug(self, stmt: Any) -> None:
        if self.config.log_queries:
            logger.debug(describe(stmt))


def _dump(params: Mapping[str, Any]) -> str:
    return json.dumps(params, default=str, ensure_ascii=False)


def _str_or_none(value: Any) -> str | None:
    return None if value is None else str(value)
