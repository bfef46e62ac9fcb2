from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from modelmatcher.matcher import MatchResult


class ModelMatcherError(Exception):
    """Base class for errors raised by modelmatcher (not including assertion failures)"""


class InvalidArgumentError(ModelMatcherError, ValueError):
    """Raised when a condition can't be built from the supplied property reference (or a non Condition is passed
    to the matcher)"""


class TypeMismatchError(ModelMatcherError, TypeError):
    """Raised when expected/actual don't share a comparable set of public properties"""


class DidNotMatchError(AssertionError):
    """Raised by the assertion helpers when expected and actual differ on at least one property"""

    result: "MatchResult"

    def __init__(self, result: "MatchResult") -> None:
        super().__init__(result.failure_message())
        self.result = result
