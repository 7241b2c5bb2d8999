"""scenariodata - test data creation for acceptance scenarios.

scenariodata creates, registers, retrieves and verifies persisted test data
during end-to-end test scenarios. Persistence, querying and mapping are left
to SQLAlchemy; scenariodata keeps track of what a scenario created and how
the scenario text refers to it.

Key Features:
    - Created-data registry: refer to data by scenario id or as "the last one"
    - Data creator modules: pluggable per-type creators with name aliases
    - Entity factories: lazy attributes and sequences backed by Faker
    - Repository checks: nested parameter mappings turned into joins
    - Placeholders: `{id person "Ivan"}` substitution in scenario text
    - pytest plugin: per-test lifecycle with transactional cleanup

Example:
    >>> from scenariodata import DataCreation, EntityCreatorModule
    >>>
    >>> class PersonCreator(EntityCreatorModule):
    ...     name_variants = ["person", "persons"]
    ...     factory = PersonFactory
    ...     id_field = "name"
    >>>
    >>> def test_person(data_creation):
    ...     ivan = data_creation.get_or_create("person", "Ivan")
    ...     data_creation.see_item_in_repository("person", {"name": "Ivan"})
"""

from scenariodata.config import DataCreationConfig, load_config
from scenariodata.creators import CreatorRegistry, DataCreatorModule, EntityCreatorModule
from scenariodata.errors import (
    ConfigurationError,
    CreatorConflictError,
    CreatorNotFoundError,
    DataCreationError,
    DuplicateRegistrationError,
    ErrorCode,
    ErrorContext,
    InvalidQueryError,
    MappingError,
    NothingCreatedError,
    PlaceholderError,
    RepositoryAssertionError,
    UnknownDataIdError,
    UnknownTypeNameError,
)
from scenariodata.factories import EntityFactory, LazyAttribute, LazyFunction, Sequence
from scenariodata.module import DataCreation
from scenariodata.registry import CreatedDataRegistry

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "CreatedDataRegistry",
    "CreatorConflictError",
    "CreatorNotFoundError",
    "CreatorRegistry",
    "DataCreation",
    "DataCreationConfig",
    "DataCreationError",
    "DataCreatorModule",
    "DuplicateRegistrationError",
    "EntityCreatorModule",
    "EntityFactory",
    "ErrorCode",
    "ErrorContext",
    "InvalidQueryError",
    "LazyAttribute",
    "LazyFunction",
    "MappingError",
    "NothingCreatedError",
    "PlaceholderError",
    "RepositoryAssertionError",
    "Sequence",
    "UnknownDataIdError",
    "UnknownTypeNameError",
    "load_config",
]
