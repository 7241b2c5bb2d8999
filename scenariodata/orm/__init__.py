"""SQLAlchemy adaptation layer: unit of work access and search statements."""

from scenariodata.orm.entity_manager import EntityManager, instance_state
from scenariodata.orm.query import build_association_query, describe, root_alias

__all__ = [
    "EntityManager",
    "build_association_query",
    "describe",
    "instance_state",
    "root_alias",
]
