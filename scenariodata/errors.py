"""Exception hierarchy for scenariodata.

All errors raised by the registry, the creator modules and the ORM adapter
inherit from DataCreationError and carry:
- error_code: an ErrorCode enum member for programmatic handling
- context: ErrorContext with the data type, scenario id and entity class
- suggestions: actionable steps to resolve the issue

Errors raised by SQLAlchemy itself (NoResultFound, MultipleResultsFound,
IntegrityError, ...) are not wrapped and propagate unchanged.

Example:
    try:
        data_creation.get_previously_created("person", "Ivan")
    except UnknownDataIdError as e:
        print(e.format_verbose())
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes.

    Error codes are organized by category:
    - E1xx: Created-data registry errors
    - E2xx: Data type and creator errors
    - E3xx: ORM mapping and query errors
    - E4xx: Configuration errors
    - E5xx: Repository assertion failures
    - E9xx: Unknown/internal errors
    """

    # Registry errors (E1xx)
    REGISTRY_ERROR = "E100"
    DUPLICATE_REGISTRATION = "E101"
    UNKNOWN_DATA_ID = "E102"
    NOTHING_CREATED = "E103"

    # Type and creator errors (E2xx)
    CREATOR_NOT_FOUND = "E201"
    UNKNOWN_TYPE_NAME = "E202"
    CREATOR_CONFLICT = "E203"

    # ORM errors (E3xx)
    MAPPING_ERROR = "E301"
    INVALID_QUERY = "E302"
    PLACEHOLDER_ERROR = "E303"

    # Configuration errors (E4xx)
    INVALID_CONFIG = "E401"

    # Assertion failures (E5xx)
    REPOSITORY_ASSERTION = "E501"

    UNKNOWN = "E999"

    @property
    def category(self) -> str:
        """Get the error category name."""
        code_num = int(self.value[1:])
        if code_num < 200:
            return "registry"
        elif code_num < 300:
            return "creator"
        elif code_num < 400:
            return "orm"
        elif code_num < 500:
            return "configuration"
        elif code_num < 600:
            return "assertion"
        else:
            return "unknown"


@dataclass
class ErrorContext:
    """Structured context describing which test data an error is about.

    Attributes:
        data_type: Scenario-level type name (e.g. "person").
        data_id: Scenario id the data is referred to by (e.g. "Ivan").
        entity_class: Name of the mapped class involved.
        extra: Additional context-specific information.
        timestamp: When the error occurred.
    """

    data_type: str | None = None
    data_id: str | None = None
    entity_class: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for serialization."""
        result = {
            "data_type": self.data_type,
            "data_id": self.data_id,
            "entity_class": self.entity_class,
            "extra": self.extra,
            "timestamp": self.timestamp.isoformat(),
        }
        return {k: v for k, v in result.items() if v is not None}

    def format_location(self) -> str:
        """Format the data reference as a readable string."""
        parts = []
        if self.data_type:
            parts.append(f"type={self.data_type}")
        if self.data_id:
            parts.append(f"id={self.data_id}")
        if self.entity_class:
            parts.append(f"class={self.entity_class}")
        return " > ".join(parts) if parts else "unknown location"


class DataCreationError(Exception):
    """Base exception for all scenariodata errors.

    Attributes:
        error_code: Unique ErrorCode for this error type
        message: Human-readable error description
        context: ErrorContext with the data reference
        suggestions: List of actionable steps to resolve the issue
        cause: The underlying exception (if any)
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "An unexpected error occurred"
    default_suggestions: list[str] = []

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
        suggestions: list[str] | None = None,
        **extra_context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self._suggestions = suggestions

        if extra_context:
            self.context.extra.update(extra_context)

        super().__init__(self.message)

    @property
    def suggestions(self) -> list[str]:
        """Get actionable suggestions for resolving this error."""
        if self._suggestions is not None:
            return self._suggestions
        return self.default_suggestions.copy()

    def __str__(self) -> str:
        parts = [f"[{self.error_code.value}] {self.message}"]

        location = self.context.format_location()
        if location != "unknown location":
            parts.append(f"at {location}")

        return " | ".join(parts)

    def format_verbose(self) -> str:
        """Format error with full details including suggestions."""
        lines = [
            f"Error [{self.error_code.value}]: {self.message}",
        ]

        location = self.context.format_location()
        if location != "unknown location":
            lines.append(f"Location: {location}")

        if self.cause is not None:
            lines.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  - {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "suggestions": self.suggestions,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


class RegistryError(DataCreationError):
    """Base class for created-data registry errors."""

    error_code = ErrorCode.REGISTRY_ERROR
    default_message = "Created data registry error"


class DuplicateRegistrationError(RegistryError):
    """Data of this type was already registered under the same scenario id."""

    error_code = ErrorCode.DUPLICATE_REGISTRATION
    default_message = "Attempt to register created data under an already registered id"
    default_suggestions = [
        "Use a distinct scenario id for every piece of data of the same type",
        "Use get_or_create() when the data may already exist",
    ]


class UnknownDataIdError(RegistryError):
    """Previously created data was requested by an id that was never registered."""

    error_code = ErrorCode.UNKNOWN_DATA_ID
    default_message = "Requested previously registered data with an unknown id"
    default_suggestions = [
        "Check the scenario id for typos",
        "Make sure a previous step created the data before it is referenced",
    ]


class NothingCreatedError(RegistryError):
    """Recently created data was requested but nothing of that type exists."""

    error_code = ErrorCode.NOTHING_CREATED
    default_message = "Requested recently created data, but no such data was registered"
    default_suggestions = [
        "Create data of this type in a previous step",
        "Registries are cleared after every test",
    ]


class CreatorNotFoundError(DataCreationError):
    """No data creator module is registered for the requested type."""

    error_code = ErrorCode.CREATOR_NOT_FOUND
    default_message = "No data creator found for the requested type"
    default_suggestions = [
        "Add a DataCreatorModule whose name_variants include this type",
        "Check that the module is returned by the scenariodata_modules fixture",
    ]


class UnknownTypeNameError(DataCreationError):
    """A type name could not be normalized."""

    error_code = ErrorCode.UNKNOWN_TYPE_NAME
    default_message = "Attempt to normalize an unknown type name"
    default_suggestions = [
        "The alias may be missing from the creator module's name_variants",
    ]


class CreatorConflictError(DataCreationError):
    """Two creator modules claim the same type name."""

    error_code = ErrorCode.CREATOR_CONFLICT
    default_message = "Type name is claimed by more than one data creator module"


class MappingError(DataCreationError):
    """A class or instance is not handled by the ORM."""

    error_code = ErrorCode.MAPPING_ERROR
    default_message = "Class is not mapped by the ORM"


class InvalidQueryError(DataCreationError):
    """Search parameters do not match the mapped class."""

    error_code = ErrorCode.INVALID_QUERY
    default_message = "Invalid repository query"
    default_suggestions = [
        "Use mapped attribute or relationship names as parameter keys",
        "Nested mappings are only allowed for relationships",
    ]


class PlaceholderError(DataCreationError):
    """A data placeholder could not be resolved."""

    error_code = ErrorCode.PLACEHOLDER_ERROR
    default_message = "Cannot resolve data placeholder"


class ConfigurationError(DataCreationError):
    """Configuration is missing or invalid."""

    error_code = ErrorCode.INVALID_CONFIG
    default_message = "Invalid configuration"
    default_suggestions = [
        "Set SCENARIODATA_DB_URL or db_url in the configuration file",
        "Check the YAML syntax of the configuration file",
    ]


class RepositoryAssertionError(DataCreationError, AssertionError):
    """A repository check failed."""

    error_code = ErrorCode.REPOSITORY_ASSERTION
    default_message = "Repository assertion failed"
