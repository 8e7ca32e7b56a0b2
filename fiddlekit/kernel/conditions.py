"""
Completion predicates: decide whether a result snapshot is sufficient to
stop waiting for more data.
"""
from typing import Any, Callable, Iterable, Mapping, Optional

from fiddlekit.internal.constants import WAIT_FOR_TESTS
from fiddlekit.kernel.contracts import ResultCondition, Snapshot
from fiddlekit.kernel.errors import CompletionConditionError


def has_tests(record: Mapping[str, Any]) -> bool:
    """
    Whether a request or fetch record carries a tests entry. An empty outcome
    list still counts; an empty test expression does not.
    """
    tests = record.get("tests")
    return tests is not None and tests is not False and tests != ""


def build_tests_condition(fiddle: Mapping[str, Any]) -> ResultCondition:
    """
    Satisfied once every request of the fiddle that declares tests has a
    client fetch record carrying test outcomes. A fiddle without tests is
    satisfied by any snapshot that has a clientFetches map.
    """
    expected = sum(1 for req in fiddle.get("requests") or [] if has_tests(req))

    def condition(snapshot: Snapshot) -> bool:
        fetches = snapshot.get("clientFetches")
        if not isinstance(fetches, Mapping):
            return False
        reported = sum(1 for fetch in fetches.values() if isinstance(fetch, Mapping) and has_tests(fetch))
        return reported == expected

    return condition


BUILTIN_CONDITIONS: dict[str, Callable[[Mapping[str, Any]], ResultCondition]] = {
    WAIT_FOR_TESTS: build_tests_condition,
}


class CompletionEvaluator:
    """
    A snapshot is sufficient when every predicate accepts it.
    With no predicates any snapshot is sufficient.
    """

    def __init__(self, predicates: Iterable[ResultCondition] = ()):
        self.predicates = list(predicates)

    @classmethod
    def for_fiddle(
        cls,
        fiddle: Mapping[str, Any],
        result_condition: Optional[ResultCondition] = None,
        wait_for: Iterable[str] = (),
    ) -> "CompletionEvaluator":
        predicates = []
        if result_condition is not None:
            predicates.append(result_condition)
        for tag in dict.fromkeys(wait_for):
            factory = BUILTIN_CONDITIONS.get(tag)
            if factory is None:
                raise ValueError(f"Unknown wait_for condition: {tag!r}")
            predicates.append(factory(fiddle))
        return cls(predicates)

    def is_satisfied(self, snapshot: Snapshot) -> bool:
        for predicate in self.predicates:
            try:
                ok = predicate(snapshot)
            except Exception as e:
                raise CompletionConditionError(f"Result condition failed: {e}") from e
            if not ok:
                return False
        return True
