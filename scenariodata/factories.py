"""Factory Boy-style entity factories with lazy evaluation.

Factories build mapped ORM instances for data creator modules. Declared
attributes are resolved in declaration order, so a LazyAttribute can read
values resolved before it.

Example:
    >>> class PersonFactory(EntityFactory[Person]):
    ...     _model = Person
    ...     name = LazyFunction(lambda: EntityFactory.faker().first_name())
    ...     email = LazyAttribute(lambda values: f"{values['name'].lower()}@example.com")
    ...     code = Sequence(lambda n: f"P{n:04d}")
    >>> person = PersonFactory.build(name="Ivan")
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import Any, ClassVar, Generic, TypeVar

from faker import Faker

T = TypeVar("T")


class LazyAttribute:
    """Lazy attribute that evaluates a callable with the values resolved so far."""

    def __init__(self, func: Callable[[dict[str, Any]], Any]):
        self.func = func

    def evaluate(self, values: dict[str, Any]) -> Any:
        return self.func(values)


class LazyFunction:
    """Lazy attribute that calls a function with no arguments."""

    def __init__(self, func: Callable[[], Any]):
        self.func = func

    def evaluate(self) -> Any:
        return self.func()


class Sequence:
    """Lazy attribute fed with an increasing counter, one per factory class."""

    def __init__(self, func: Callable[[int], Any]):
        self.func = func
        self._counter = itertools.count(1)

    def evaluate(self) -> Any:
        return self.func(next(self._counter))

    def reset(self) -> None:
        self._counter = itertools.count(1)

    def copy(self) -> Sequence:
        """Same function with a counter of its own."""
        return Sequence(self.func)


_faker: Faker | None = None


def configure_faker(locale: str = "en_US", seed: int | None = None) -> Faker:
    """Replace the shared Faker instance used by every factory."""
    global _faker
    _faker = Faker(locale)
    if seed is not None:
        _faker.seed_instance(seed)
    return _faker


class EntityFactory(Generic[T]):
    """Base factory for mapped classes."""

    _model: ClassVar[type | None] = None
    _declarations: ClassVar[dict[str, Any]] = {}

    def __init_subclass__(cls, **kwargs: Any):
        super().__init_subclass__(**kwargs)
        declarations: dict[str, Any] = {}
        for base in reversed(cls.__mro__[1:]):
            declarations.update(getattr(base, "_declarations", {}))
        for attr_name, attr_value in cls.__dict__.items():
            if attr_name.startswith("_"):
                continue
            if isinstance(attr_value, (classmethod, staticmethod, property)):
                continue
            if callable(attr_value) and not isinstance(
                attr_value, (LazyAttribute, LazyFunction, Sequence)
            ):
                continue
            declarations[attr_name] = attr_value
        for attr_name, attr_value in declarations.items():
            if isinstance(attr_value, Sequence) and attr_name not in cls.__dict__:
                declarations[attr_name] = attr_value.copy()
        cls._declarations = declarations

    @staticmethod
    def faker() -> Faker:
        global _faker
        if _faker is None:
            _faker = Faker()
        return _faker

    @classmethod
    def _resolve_value(cls, value: Any, values: dict[str, Any]) -> Any:
        if isinstance(value, LazyAttribute):
            return value.evaluate(values)
        elif isinstance(value, (LazyFunction, Sequence)):
            return value.evaluate()
        return value

    @classmethod
    def attributes(cls, **overrides: Any) -> dict[str, Any]:
        """Resolve every declared attribute, overrides taking precedence."""
        values: dict[str, Any] = {}
        for key, value in cls._declarations.items():
            if key in overrides:
                values[key] = overrides[key]
            else:
                values[key] = cls._resolve_value(value, values)
        for key, value in overrides.items():
            if key not in values:
                values[key] = value
        return values

    @classmethod
    def build(cls, **overrides: Any) -> T:
        """Build an unsaved instance of the model."""
        values = cls.attributes(**overrides)
        if cls._model is None:
            return values  # type: ignore[return-value]
        return cls._model(**values)

    @classmethod
    def build_batch(cls, size: int, **overrides: Any) -> list[T]:
        return [cls.build(**overrides) for _ in range(size)]

    @classmethod
    def reset_sequences(cls) -> None:
        for value in cls._declarations.values():
            if isinstance(value, Sequence):
                value.reset()
