"""Unit-of-work adapter over a SQLAlchemy session.

Entities are often created before the code under test runs, so anything
cached in the session's identity map may not match the database. Reads that
must see the database state expunge the class from the session first
(clear_class) and re-attach registered entities on access
(ensure_in_identity_map).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import exc as sa_exc
from sqlalchemy import inspect
from sqlalchemy.orm import InstanceState, Mapper, Session, make_transient_to_detached
from sqlalchemy.orm.exc import UnmappedClassError

from scenariodata.errors import ErrorContext, InvalidQueryError, MappingError

logger = logging.getLogger(__name__)


def instance_state(entity: Any) -> InstanceState | None:
    """Return the ORM state of a mapped instance, None for anything else."""
    if isinstance(entity, type):
        return None
    state = inspect(entity, raiseerr=False)
    if isinstance(state, InstanceState):
        return state
    return None


class EntityManager:
    """Thin wrapper exposing the session operations test data needs."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def class_metadata(self, entity_class: type) -> Mapper:
        """Get the mapper of a class.

        Raises:
            MappingError: If the class is not mapped.
        """
        try:
            mapper = inspect(entity_class)
        except (sa_exc.NoInspectionAvailable, UnmappedClassError) as e:
            raise MappingError(
                context=ErrorContext(entity_class=getattr(entity_class, "__name__", str(entity_class))),
                cause=e,
            ) from e
        if not isinstance(mapper, Mapper):
            raise MappingError(
                context=ErrorContext(entity_class=getattr(entity_class, "__name__", str(entity_class)))
            )
        return mapper

    def persist(self, entity: Any, data: Mapping[str, Any] | None = None) -> Any:
        """Set data on the entity, add it to the session and flush."""
        mapper = self.class_metadata(type(entity))
        for key, value in (data or {}).items():
            if key not in mapper.all_orm_descriptors and not hasattr(entity, key):
                raise InvalidQueryError(
                    message=f"{mapper.class_.__name__} has no attribute {key!r}",
                    context=ErrorContext(entity_class=mapper.class_.__name__),
                )
            setattr(entity, key, value)
        self.session.add(entity)
        self.session.flush()
        return entity

    def flush(self) -> None:
        self.session.flush()

    def refresh(self, entity: Any) -> None:
        self.session.refresh(entity)

    def clear(self) -> None:
        self.session.expunge_all()

    def clear_class(self, entity_class: type) -> int:
        """Detach every identity-map instance of a class and its subclasses.

        Returns:
            Number of detached instances.
        """
        detached = 0
        for obj in list(self.session.identity_map.values()):
            if isinstance(obj, entity_class) and obj in self.session:
                self.session.expunge(obj)
                detached += 1
        if detached:
            logger.debug(f"Detached {detached} cached {entity_class.__name__} instance(s)")
        return detached

    def identifier_values(self, entity: Any) -> dict[str, Any]:
        """Primary key values of an entity, keyed by attribute name."""
        mapper = self.class_metadata(type(entity))
        values = mapper.primary_key_from_instance(entity)
        return {
            mapper.get_property_by_column(column).key: value
            for column, value in zip(mapper.primary_key, values)
        }

    def is_in_identity_map(self, entity: Any) -> bool:
        state = instance_state(entity)
        if state is None:
            return False
        if entity in self.session:
            return True
        return state.key is not None and state.key in self.session.identity_map

    def ensure_in_identity_map(self, entity: Any) -> Any:
        """Attach a registered entity to the session and reload it.

        If the session already holds another instance with the same
        identity, that managed instance is returned instead. Objects that
        are not mapped are returned unchanged.
        """
        state = instance_state(entity)
        if state is None or entity in self.session:
            return entity

        if state.transient:
            if any(value is None for value in self.identifier_values(entity).values()):
                raise MappingError(
                    message="Cannot attach an entity without identifier values",
                    context=ErrorContext(entity_class=type(entity).__name__),
                )
            make_transient_to_detached(entity)

        if state.key in self.session.identity_map:
            managed = self.session.identity_map[state.key]
            logger.debug(f"Using the managed {type(entity).__name__} {state.identity}")
            return managed

        self.session.add(entity)
        self.session.refresh(entity)
        logger.debug(f"Re-attached {type(entity).__name__} {state.identity}")
        return entity
