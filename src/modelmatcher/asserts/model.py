from typing import Any

from modelmatcher.conditions import Condition
from modelmatcher.errors import DidNotMatchError
from modelmatcher.matcher import MatchResult, match


def check_model_match(expected: Any, actual: Any, *conditions: Condition) -> list[str]:
    """Given two model instances. Run through their public properties and check that the values all match up.

    Any "private" members beginning with '_' will be skipped. conditions (eg ignore(lambda m: m.my_prop)) will be
    applied to each property.

    returns a list of error messages (or an empty list if expected matches actual)"""
    return [m.describe() for m in match(expected, actual, conditions).mismatches]


def assert_model_match(expected: Any, actual: Any, *conditions: Condition) -> MatchResult:
    """Asserts that every public property of expected equals the same property on actual (after applying conditions).
    The passing MatchResult is returned.

    Raises DidNotMatchError (an AssertionError) listing EVERY mismatched property if they differ. Raises
    TypeMismatchError if the two instances don't share the same set of properties"""
    result = match(expected, actual, conditions)
    if not result.passed:
        raise DidNotMatchError(result)
    return result
