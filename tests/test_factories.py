"""Tests for entity factories."""

from __future__ import annotations

from scenariodata.factories import (
    EntityFactory,
    LazyAttribute,
    LazyFunction,
    Sequence,
    configure_faker,
)
from tests.models import Person, PersonFactory, Status


class CodeFactory(EntityFactory[dict]):
    code = Sequence(lambda n: f"C{n:03d}")
    label = LazyAttribute(lambda values: f"label for {values['code']}")
    active = True


class TestLazyAttributes:
    def test_lazy_function(self):
        calls = []
        lazy = LazyFunction(lambda: calls.append(1) or len(calls))
        assert lazy.evaluate() == 1
        assert lazy.evaluate() == 2

    def test_lazy_attribute_sees_values(self):
        lazy = LazyAttribute(lambda values: values["a"] * 2)
        assert lazy.evaluate({"a": 21}) == 42

    def test_sequence(self):
        sequence = Sequence(lambda n: n * 10)
        assert [sequence.evaluate() for _ in range(3)] == [10, 20, 30]
        sequence.reset()
        assert sequence.evaluate() == 10


class TestEntityFactory:
    def test_without_model_builds_dict(self):
        CodeFactory.reset_sequences()

        result = CodeFactory.build()

        assert result == {"code": "C001", "label": "label for C001", "active": True}

    def test_declaration_order(self):
        assert list(CodeFactory._declarations) == ["code", "label", "active"]

    def test_overrides_feed_lazy_attributes(self):
        result = CodeFactory.build(code="X")
        assert result["label"] == "label for X"

    def test_extra_overrides_are_kept(self):
        result = CodeFactory.attributes(extra=1)
        assert result["extra"] == 1

    def test_build_batch_uses_sequence(self):
        CodeFactory.reset_sequences()
        codes = [item["code"] for item in CodeFactory.build_batch(3)]
        assert codes == ["C001", "C002", "C003"]

    def test_build_model(self):
        person = PersonFactory.build(name="Ivan")

        assert isinstance(person, Person)
        assert person.name == "Ivan"
        assert person.email == "ivan@example.com"
        assert person.age == 30
        assert person.status == Status.ACTIVE
        assert person.id is None

    def test_faker_values(self):
        person = PersonFactory.build()
        assert person.name
        assert person.email == f"{person.name.lower()}@example.com"

    def test_seeded_faker_is_reproducible(self):
        configure_faker(seed=42)
        first = PersonFactory.build().name
        configure_faker(seed=42)
        second = PersonFactory.build().name
        assert first == second

    def test_subclass_inherits_declarations(self):
        class BlockedPersonFactory(PersonFactory):
            status = Status.BLOCKED

        person = BlockedPersonFactory.build(name="Oleg")

        assert person.status == Status.BLOCKED
        assert person.email == "oleg@example.com"

    def test_subclass_counts_its_own_sequence(self):
        class ArchivedCodeFactory(CodeFactory):
            active = False

        CodeFactory.reset_sequences()
        CodeFactory.build_batch(2)

        assert ArchivedCodeFactory.build()["code"] == "C001"
        assert CodeFactory.build()["code"] == "C003"

    def test_methods_are_not_declarations(self):
        class WithHelper(EntityFactory[dict]):
            value = 1

            @classmethod
            def helper(cls):
                return 2

        assert WithHelper.build() == {"value": 1}
