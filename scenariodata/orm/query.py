"""Search statements built from nested parameter mappings.

Parameters map attribute names to expected values. A nested mapping under a
relationship name joins that relationship and applies the nested parameters
to the joined entity, so

    {"name": "Ivan", "address": {"city": {"name": "Moscow"}}}

becomes

    SELECT ... FROM person AS s
    JOIN address AS s_address ON ...
    JOIN city AS s_address_city ON ...
    WHERE s.name = :s_name AND s_address_city.name = :s_address_city_name
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import Select, bindparam, inspect
from sqlalchemy.orm import aliased
from sqlalchemy.orm.interfaces import MANYTOONE
from sqlalchemy.orm.util import AliasedClass

from scenariodata.errors import ErrorContext, InvalidQueryError
from scenariodata.orm.entity_manager import instance_state

logger = logging.getLogger(__name__)


def root_alias(entity_class: type, name: str = "s") -> AliasedClass:
    return aliased(entity_class, name=name)


def parameter_name(alias_name: str, key: str) -> str:
    return f"{alias_name}_{key}".replace(".", "")


def describe(stmt: Select) -> str:
    """Render a statement for debug output."""
    return str(stmt).replace("\n", " ")


def build_association_query(
    stmt: Select,
    entity_class: type,
    alias: AliasedClass,
    params: Mapping[str, Any],
) -> Select:
    """Add joins and criteria for params to stmt, recursing into relationships.

    Args:
        stmt: Statement selecting from alias (or one of its attributes).
        entity_class: Mapped class alias stands for.
        alias: Aliased entity the criteria apply to.
        params: Attribute name to expected value. A mapping under a
            relationship name is applied to the joined related entity.

    Returns:
        The extended statement.

    Raises:
        InvalidQueryError: If a key is not a mapped attribute of the class.
    """
    return _build(stmt, entity_class, alias, params, {inspect(alias).name})


def _build(
    stmt: Select,
    entity_class: type,
    alias: AliasedClass,
    params: Mapping[str, Any],
    names: set[str],
) -> Select:
    mapper = inspect(entity_class)
    alias_name = inspect(alias).name

    for key, value in params.items():
        param_name = _claim(parameter_name(alias_name, key), names)

        if key in mapper.relationships:
            relationship = mapper.relationships[key]
            if isinstance(value, Mapping):
                target_class = relationship.mapper.class_
                target = aliased(target_class, name=param_name)
                stmt = stmt.join(getattr(alias, key).of_type(target))
                stmt = _build(stmt, target_class, target, value, names)
                continue
            stmt = stmt.where(_relationship_criterion(mapper, alias, key, value))
            continue

        if key in mapper.column_attrs:
            attribute = getattr(alias, key)
            if value is None:
                stmt = stmt.where(attribute.is_(None))
            else:
                # The column type converts the value the same way it is stored.
                column_type = mapper.column_attrs[key].columns[0].type
                stmt = stmt.where(attribute == bindparam(param_name, value, type_=column_type))
            continue

        if key in mapper.all_orm_descriptors:
            attribute = getattr(alias, key)
            stmt = stmt.where(attribute.is_(None) if value is None else attribute == value)
            continue

        raise InvalidQueryError(
            message=f"{entity_class.__name__} has no mapped attribute {key!r}",
            context=ErrorContext(entity_class=entity_class.__name__, extra={"parameter": key}),
        )

    return stmt


def _claim(name: str, names: set[str]) -> str:
    """Reserve a parameter name, suffixing it when already taken."""
    candidate = name
    suffix = 2
    while candidate in names:
        candidate = f"{name}_{suffix}"
        suffix += 1
    names.add(candidate)
    return candidate


def _relationship_criterion(mapper: Any, alias: AliasedClass, key: str, value: Any) -> Any:
    relationship = mapper.relationships[key]
    attribute = getattr(alias, key)

    if value is None:
        if relationship.uselist:
            return ~attribute.any()
        return attribute == None  # noqa: E711

    if instance_state(value) is not None:
        if relationship.uselist:
            return attribute.contains(value)
        return attribute == value

    if relationship.uselist:
        raise _scalar_not_supported(mapper, key)

    # Many-to-one: the identifier sits in the local foreign key column.
    if relationship.direction is MANYTOONE:
        local_columns = [local for local, _ in relationship.local_remote_pairs]
        if len(local_columns) != 1:
            raise _scalar_not_supported(mapper, key)
        local_key = mapper.get_property_by_column(local_columns[0]).key
        return getattr(alias, local_key) == value

    # One-to-one held by the other side: match the related primary key.
    target_mapper = relationship.mapper
    if len(target_mapper.primary_key) != 1:
        raise _scalar_not_supported(mapper, key)
    target_key = target_mapper.get_property_by_column(target_mapper.primary_key[0]).key
    return attribute.has(getattr(target_mapper.class_, target_key) == value)


def _scalar_not_supported(mapper: Any, key: str) -> InvalidQueryError:
    return InvalidQueryError(
        message=(
            f"{mapper.class_.__name__}.{key} can only be matched by an entity "
            f"or a mapping of its attributes"
        ),
        context=ErrorContext(entity_class=mapper.class_.__name__, extra={"parameter": key}),
    )
