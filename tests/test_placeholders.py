"""Tests for data placeholder substitution."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from scenariodata.errors import PlaceholderError
from scenariodata.placeholders import (
    PLACEHOLDER_PATTERN,
    fill_data_placeholders,
    read_property_path,
)


@pytest.fixture
def data():
    return {
        ("person", "Ivan"): SimpleNamespace(
            id=7, name="Ivan", address=SimpleNamespace(street="Tverskaya")
        ),
        ("персоны", "Иван"): SimpleNamespace(id=8, profile={"city": "Москва"}),
    }


@pytest.fixture
def resolve(data):
    return lambda type_name, data_id: data[(type_name, data_id)]


class TestPattern:
    def test_matches_field_type_and_id(self):
        match = PLACEHOLDER_PATTERN.search('{address.street person "Ivan"}')
        assert match.groups() == ("address.street", "person", "Ivan")

    def test_type_may_contain_spaces(self):
        match = PLACEHOLDER_PATTERN.search('{id young person "Petya"}')
        assert match.groups() == ("id", "young person", "Petya")

    def test_plain_braces_are_ignored(self):
        assert PLACEHOLDER_PATTERN.search('{"json": "value"}') is None


class TestReadPropertyPath:
    def test_attribute(self):
        assert read_property_path(SimpleNamespace(name="Ivan"), "name") == "Ivan"

    def test_nested_attribute_and_key(self):
        value = SimpleNamespace(profile={"address": SimpleNamespace(street="Arbat")})
        assert read_property_path(value, "profile.address.street") == "Arbat"

    def test_missing_key(self):
        with pytest.raises(PlaceholderError):
            read_property_path({"a": 1}, "b")

    def test_missing_attribute(self):
        with pytest.raises(PlaceholderError) as exc_info:
            read_property_path(SimpleNamespace(a=1), "a.b")

        assert exc_info.value.context.extra["path"] == "a.b"


class TestFillDataPlaceholders:
    def test_single_placeholder(self, resolve):
        assert fill_data_placeholders('/persons/{id person "Ivan"}', resolve) == "/persons/7"

    def test_several_placeholders(self, resolve):
        text = '{name person "Ivan"} lives on {address.street person "Ivan"}'
        assert fill_data_placeholders(text, resolve) == "Ivan lives on Tverskaya"

    def test_unicode_names(self, resolve):
        text = '{"city": "{profile.city персоны "Иван"}"}'
        assert fill_data_placeholders(text, resolve) == '{"city": "Москва"}'

    def test_text_without_placeholders(self, resolve):
        assert fill_data_placeholders("no placeholders", resolve) == "no placeholders"

    def test_unresolvable_field_carries_data_reference(self, resolve):
        with pytest.raises(PlaceholderError) as exc_info:
            fill_data_placeholders('{phone person "Ivan"}', resolve)

        assert exc_info.value.context.data_type == "person"
        assert exc_info.value.context.data_id == "Ivan"

    def test_resolver_errors_propagate(self, resolve):
        with pytest.raises(KeyError):
            fill_data_placeholders('{id person "Maria"}', resolve)
