import inspect
import logging
from dataclasses import dataclass
from enum import Enum, auto
from functools import cached_property
from typing import Any

try:
    from sqlalchemy.orm import QueryableAttribute
except ImportError:
    QueryableAttribute = None  # type: ignore

from modelmatcher.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


class ConditionType(Enum):
    """The kinds of per property rule that can be applied during matching"""

    IGNORE = auto()


@dataclass(frozen=True)
class Condition:
    """A rule describing how a single (named) property should be treated when matching two models"""

    condition_type: ConditionType
    property_name: str


class _PropertyAccess:
    """What a property reference callable receives when it reads an attribute off a _PropertyRecorder. It deliberately
    supports nothing else so that calls/arithmetic/chained reads will raise"""

    __slots__ = ("_recorder", "_property_name")

    def __init__(self, recorder: "_PropertyRecorder", property_name: str) -> None:
        object.__setattr__(self, "_recorder", recorder)
        object.__setattr__(self, "_property_name", property_name)

    def __bool__(self) -> bool:
        raise TypeError("A property reference can't be used as a condition")


class _PropertyRecorder:
    """Stand in for a model instance that records every attribute read made against it"""

    __slots__ = ("_accessed",)

    def __init__(self) -> None:
        object.__setattr__(self, "_accessed", [])

    def __getattr__(self, name: str) -> _PropertyAccess:
        self._accessed.append(name)
        return _PropertyAccess(self, name)

    def __setattr__(self, name: str, value: Any) -> None:
        raise TypeError(f"A property reference can't assign to {name}")


def _resolve_callable_reference(reference: Any) -> str:
    """Evaluates reference (eg lambda m: m.my_prop) against a recorder and returns the single property name it read"""
    recorder = _PropertyRecorder()
    try:
        result = reference(recorder)
    except Exception as ex:
        raise InvalidArgumentError(
            f"{reference} must be a single argument callable that reads one property eg: lambda m: m.my_prop"
        ) from ex

    accessed: list[str] = recorder._accessed
    if not isinstance(result, _PropertyAccess) or result._recorder is not recorder:
        raise InvalidArgumentError(f"{reference} returned {result!r} instead of directly reading a property")
    if len(accessed) != 1:
        raise InvalidArgumentError(f"{reference} read {accessed} - expected exactly one direct property read")

    return result._property_name


def resolve_property_name(reference: Any) -> str:
    """Given a symbolic reference to a property - return the name of that property. Supported references are:

    lambda m: m.my_prop - a single argument callable that does nothing more than read one attribute
    MyClass.my_prop - where my_prop is a property (or cached_property)
    MyTable.my_column - where MyTable is a SQLAlchemy mapped class

    Raises InvalidArgumentError for anything else (including raw strings)"""
    if reference is None or isinstance(reference, str):
        raise InvalidArgumentError(f"{reference!r} is not a property reference. Use lambda m: m.my_prop instead")

    if isinstance(reference, property):
        if reference.fget is None:
            raise InvalidArgumentError(f"{reference} is a write only property")
        name = reference.fget.__name__
    elif isinstance(reference, cached_property):
        name = reference.attrname or reference.func.__name__
    elif QueryableAttribute is not None and isinstance(reference, QueryableAttribute):
        name = reference.key
    elif callable(reference) and not inspect.isclass(reference):
        name = _resolve_callable_reference(reference)
    else:
        raise InvalidArgumentError(f"{reference!r} is not a property reference")

    if not name or name[0] == "_":
        raise InvalidArgumentError(f"{reference} resolves to non public member '{name}'")
    return name


def ignore(reference: Any) -> Condition:
    """Creates a Condition that will exclude the referenced property from matching.

    usage:
    match(expected, actual, [ignore(lambda m: m.created_time)])"""
    name = resolve_property_name(reference)
    logger.debug("Resolved ignore condition for property '%s'", name)
    return Condition(condition_type=ConditionType.IGNORE, property_name=name)


def ignore_all(*references: Any) -> list[Condition]:
    """Shorthand for [ignore(r) for r in references]"""
    return [ignore(r) for r in references]
