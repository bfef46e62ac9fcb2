from dataclasses import dataclass
from functools import cached_property
from typing import Any

import pytest
from sqlalchemy import VARCHAR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from modelmatcher.conditions import Condition, ConditionType, ignore, ignore_all, resolve_property_name
from modelmatcher.errors import InvalidArgumentError


@dataclass
class SimpleModel:
    string_property: str = ""
    int_property: int = 0

    @property
    def computed_property(self) -> str:
        return self.string_property * 2

    @cached_property
    def cached_value(self) -> int:
        return self.int_property + 1

    def method(self) -> int:
        return 1


class Base(DeclarativeBase):
    pass


class SimpleTable(Base):
    __tablename__ = "simple_table"

    simple_table_id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(VARCHAR(32))


@pytest.mark.parametrize(
    "reference, expected_name",
    [
        (lambda m: m.string_property, "string_property"),
        (lambda m: m.int_property, "int_property"),
        (lambda m: m.property_that_does_not_exist, "property_that_does_not_exist"),
        (SimpleModel.computed_property, "computed_property"),
        (SimpleModel.cached_value, "cached_value"),
        (SimpleTable.name, "name"),
        (SimpleTable.simple_table_id, "simple_table_id"),
    ],
)
def test_resolve_property_name(reference: Any, expected_name: str):
    assert resolve_property_name(reference) == expected_name


def test_resolve_property_name_named_function():
    def my_reference(model):
        return model.int_property

    assert resolve_property_name(my_reference) == "int_property"


@pytest.mark.parametrize(
    "reference",
    [
        None,
        "string_property",  # raw strings aren't rename safe
        123,
        SimpleModel,  # class (not a property)
        SimpleModel.method,  # A method isn't a property
        lambda m: m.method(),  # Method call
        lambda m: m.int_property + 1,  # Computed value
        lambda m: m.string_property.upper,  # chained read
        lambda m: m.int_property == 1,  # comparison
        lambda m: str(m.string_property),  # wrapped in another call
        lambda m: (m.string_property, m.int_property),  # multiple reads
        lambda m: m.string_property or m.int_property,  # truthiness of a reference
        lambda m: 5,  # No read at all
        lambda m: m,  # The model itself
        lambda m: m._private_property,  # Not public
        lambda m: m.__class__,  # Not public
        lambda: 1,  # Wrong number of args
        lambda m, n: m.int_property,  # Wrong number of args
        property(),  # No getter
    ],
)
def test_resolve_property_name_invalid(reference: Any):
    with pytest.raises(InvalidArgumentError):
        resolve_property_name(reference)


def test_resolve_property_name_invalid_is_value_error():
    """InvalidArgumentError should be catchable as a ValueError"""
    with pytest.raises(ValueError):
        ignore(lambda m: m.method())


def test_resolve_property_name_cannot_assign():
    def assigns(m):
        m.string_property = "abc"
        return m.string_property

    with pytest.raises(InvalidArgumentError):
        resolve_property_name(assigns)


def test_ignore():
    c = ignore(lambda m: m.string_property)
    assert isinstance(c, Condition)
    assert c.condition_type == ConditionType.IGNORE
    assert c.property_name == "string_property"

    # Conditions are values
    assert c == ignore(lambda other: other.string_property)
    assert c != ignore(lambda m: m.int_property)
    assert len(set([c, ignore(SimpleModel.computed_property), ignore(lambda m: m.string_property)])) == 2

    with pytest.raises(Exception):
        c.property_name = "int_property"  # frozen


def test_ignore_all():
    assert ignore_all() == []
    assert ignore_all(lambda m: m.string_property, SimpleModel.computed_property) == [
        Condition(ConditionType.IGNORE, "string_property"),
        Condition(ConditionType.IGNORE, "computed_property"),
    ]

    with pytest.raises(InvalidArgumentError):
        ignore_all(lambda m: m.string_property, "int_property")
