import inspect
import logging
from dataclasses import dataclass, fields, is_dataclass
from functools import cached_property
from typing import Any, Callable, Iterable, Optional, Union

try:
    from pydantic import BaseModel
except ImportError:
    BaseModel = None  # type: ignore

try:
    from sqlalchemy import inspect as sa_inspect
    from sqlalchemy.orm import DeclarativeBase, DeclarativeBaseNoMeta
except ImportError:
    sa_inspect = None  # type: ignore
    DeclarativeBase = None  # type: ignore
    DeclarativeBaseNoMeta = None  # type: ignore

from modelmatcher.conditions import Condition, ConditionType
from modelmatcher.errors import InvalidArgumentError, TypeMismatchError

logger = logging.getLogger(__name__)

# (model type, model instance) -> list of member names (public or otherwise) in declaration order
MemberFetcher = Callable[[type, Any], list[str]]

# Classes from modules starting with these names are part of a model library - not part of a model
LIBRARY_MODULE_PREFIXES = ("pydantic", "sqlalchemy")


@dataclass
class _PlaceholderDataclassBase:
    """Dataclass has no base class - instead we fall back to using this as a placeholder"""


@dataclass(frozen=True)
class MismatchRecord:
    """A single property whose expected and actual values differ"""

    property_name: str
    expected: Any
    actual: Any

    def describe(self) -> str:
        return f"{self.property_name}: expected {format_value(self.expected)}, actual {format_value(self.actual)}"


@dataclass(frozen=True)
class MatchResult:
    """The outcome of match(). An empty mismatches tuple means the models matched"""

    type_name: str
    mismatches: tuple[MismatchRecord, ...] = ()

    @property
    def passed(self) -> bool:
        return len(self.mismatches) == 0

    def __bool__(self) -> bool:
        return self.passed

    def failure_message(self) -> str:
        """Header line followed by one line per mismatched property (in property order)"""
        if self.passed:
            return f"{self.type_name} matched on all compared properties"

        count = len(self.mismatches)
        noun = "property" if count == 1 else "properties"
        lines = [f"{self.type_name} did not match ({count} mismatched {noun}):"]
        lines.extend(m.describe() for m in self.mismatches)
        return "\n".join(lines)


def format_value(v: Any) -> str:
    """Renders a property value for a failure message. Strings are quoted so that "" and whitespace are visible"""
    if isinstance(v, str):
        return f'"{v}"'
    return str(v)


def is_member_public(member_name: str) -> bool:
    """Simple heuristic to test if a member is public (True) or private/internal (False)"""
    return len(member_name) > 0 and member_name[0] != "_"


def _is_library_class(klass: type) -> bool:
    """True for classes belonging to python itself or to a supported model library (their members aren't model data)"""
    return klass is object or klass.__module__ == "builtins" or klass.__module__.startswith(LIBRARY_MODULE_PREFIXES)


def _declared_properties(t: type) -> list[str]:
    """property/cached_property names declared on t and its (non library) base classes, base classes first"""
    names: list[str] = []
    for klass in reversed(inspect.getmro(t)):
        if _is_library_class(klass):
            continue
        names.extend(n for n, v in vars(klass).items() if isinstance(v, (property, cached_property)))
    return names


def _declared_slots(klass: type) -> list[str]:
    slots = vars(klass).get("__slots__", ())
    if isinstance(slots, str):
        return [slots]
    return list(slots)


def _plain_object_members(t: type, obj: Any) -> list[str]:
    """Annotated attributes, slots and namedtuple fields declared on t (base classes first) then properties and
    finally any instance attributes"""
    if t.__module__ == "builtins":
        raise TypeMismatchError(f"{t} is a builtin type - only model instances can be matched")

    names: list[str] = []
    if issubclass(t, tuple):
        names.extend(getattr(t, "_fields", ()))
    for klass in reversed(inspect.getmro(t)):
        if _is_library_class(klass):
            continue
        names.extend(inspect.get_annotations(klass).keys())
        names.extend(_declared_slots(klass))
    names.extend(_declared_properties(t))

    instance_vars = getattr(obj, "__dict__", None)
    if instance_vars:
        names.extend(instance_vars.keys())
    return names


def _dataclass_members(t: type, obj: Any) -> list[str]:
    return [f.name for f in fields(t)] + _declared_properties(t)


def _pydantic_members(t: type, obj: Any) -> list[str]:
    # computed fields are properties too - the duplicates are removed by enumerate_model_properties
    return list(t.model_fields.keys()) + list(t.model_computed_fields.keys()) + _declared_properties(t)  # type: ignore


def _sqlalchemy_members(t: type, obj: Any) -> list[str]:
    # Only column attributes - relationships would require traversing an object graph
    return [attr.key for attr in sa_inspect(t).column_attrs] + _declared_properties(t)


def get_member_fetcher(t: type) -> MemberFetcher:
    """Finds the MemberFetcher registered against t (or one of its base classes). Dataclasses without a registered
    base will use the dataclass fetcher and anything else will use DEFAULT_MEMBER_FETCHER"""
    for base_class in inspect.getmro(t):
        if base_class in MEMBER_FETCHERS:
            return MEMBER_FETCHERS[base_class]

    if is_dataclass(t):
        return MEMBER_FETCHERS[_PlaceholderDataclassBase]

    return DEFAULT_MEMBER_FETCHER


def register_member_fetcher(base_type: type, fetcher: MemberFetcher) -> None:
    """Registers fetcher as the way of enumerating members for base_type and all of its subclasses. Use
    modelmatcher.fixtures.registry.member_fetcher_registry_snapshot to keep registrations scoped to a test"""
    MEMBER_FETCHERS[base_type] = fetcher


def enumerate_model_properties(obj: Any) -> list[str]:
    """Returns the (deduplicated) public property names of obj in declaration order.

    Raises TypeMismatchError if obj exposes no public properties (eg datetime or Decimal values) as there would be
    nothing to compare"""
    t = type(obj)
    fetcher = get_member_fetcher(t)
    logger.debug("Enumerating members of %s using %s", t, fetcher)

    names: list[str] = []
    for member_name in fetcher(t, obj):
        if is_member_public(member_name) and member_name not in names:
            names.append(member_name)

    if not names:
        raise TypeMismatchError(f"{t} has no public properties - only model instances can be matched")
    return names


def _ignored_property_names(conditions: Iterable[Condition]) -> set[str]:
    ignored: set[str] = set()
    for condition in conditions:
        if not isinstance(condition, Condition):
            raise InvalidArgumentError(f"{condition!r} is not a Condition. Did you mean ignore(...)?")

        if condition.condition_type == ConditionType.IGNORE:
            ignored.add(condition.property_name)
    return ignored


def match(
    expected: Any, actual: Any, conditions: Optional[Union[Condition, Iterable[Condition]]] = None
) -> MatchResult:
    """Compares every public property of expected against the same property of actual using ==. Any property
    named by an ignore() condition is skipped entirely. Every mismatch is collected (it doesn't stop at the first).

    Raises TypeMismatchError if expected/actual don't expose the same set of (non ignored) public properties"""
    if expected is None and actual is None:
        return MatchResult(type_name="None")
    if expected is None or actual is None:
        raise TypeMismatchError(f"Can't match {expected!r} against {actual!r}")

    if conditions is None:
        conditions = []
    elif isinstance(conditions, Condition):
        conditions = [conditions]
    ignored = _ignored_property_names(conditions)
    if ignored:
        logger.debug("Ignoring properties %s", sorted(ignored))

    expected_names = [n for n in enumerate_model_properties(expected) if n not in ignored]
    actual_names = set(n for n in enumerate_model_properties(actual) if n not in ignored)
    if set(expected_names) != actual_names:
        raise TypeMismatchError(
            f"{type(expected).__name__} and {type(actual).__name__} have different properties. "
            f"Only in expected: {sorted(set(expected_names) - actual_names)} "
            f"Only in actual: {sorted(actual_names - set(expected_names))}"
        )

    mismatches: list[MismatchRecord] = []
    for member_name in expected_names:
        expected_val = getattr(expected, member_name)
        actual_val = getattr(actual, member_name)
        if expected_val != actual_val:
            mismatches.append(MismatchRecord(member_name, expected_val, actual_val))

    return MatchResult(type_name=type(expected).__name__, mismatches=tuple(mismatches))


# ---------------------------------------
#
# MEMBER_FETCHERS is the main extension point for teaching the matcher about new families of model
# Adding support should be as simple as registering a fetcher against the family's base class
#
# ---------------------------------------

DEFAULT_MEMBER_FETCHER: MemberFetcher = _plain_object_members

MEMBER_FETCHERS: dict[type, MemberFetcher] = {
    _PlaceholderDataclassBase: _dataclass_members,
}

if BaseModel is not None:
    MEMBER_FETCHERS[BaseModel] = _pydantic_members

for sql_alchemy_type in [DeclarativeBase, DeclarativeBaseNoMeta]:
    if sql_alchemy_type is not None:
        MEMBER_FETCHERS[sql_alchemy_type] = _sqlalchemy_members
