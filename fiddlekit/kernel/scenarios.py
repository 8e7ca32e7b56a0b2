"""
Runs test scenarios against a fiddle and turns the test outcomes reported by
the service into local pass/fail test cases.

A suite is a base fiddle ('spec') plus named scenarios, each a set of
requests that declare their own tests. The base fiddle is published and
executed once so its config is synced to the edge; each scenario then runs
the same fiddle with its own requests, waiting for test results.
"""
import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from fiddlekit.internal.constants import WAIT_FOR_TESTS
from fiddlekit.internal.logging import get_logger
from fiddlekit.kernel.conditions import has_tests
from fiddlekit.kernel.contracts import ExecuteOptions, Snapshot
from fiddlekit.kernel.errors import ExecutionError, FiddleError, TransportError
from fiddlekit.kernel.execution import FiddleExecutionService

logger = get_logger(__name__)


class NoTestResultsError(FiddleError):
    """A request was executed but the service reported no test outcomes for it."""


# ---------------------------------------------------------------------
# Suite definition
# ---------------------------------------------------------------------

@dataclass
class Scenario:
    name: str
    requests: list[dict]

    def __post_init__(self):
        if not self.name:
            raise ValueError("scenario name cannot be empty")
        if not isinstance(self.requests, list):
            raise TypeError("scenario requests must be a list")


@dataclass
class SuiteDefinition:
    name: str
    spec: dict
    scenarios: list[Scenario] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SuiteDefinition":
        if not isinstance(data.get("spec"), Mapping):
            raise ValueError("suite must contain a 'spec' object")
        return cls(
            name=data.get("name") or "fiddle suite",
            spec=dict(data["spec"]),
            scenarios=[Scenario(name=s.get("name", ""), requests=s.get("requests", [])) for s in data.get("scenarios", [])],
        )


def load_suite(path: Path) -> SuiteDefinition:
    with open(path, "r", encoding="utf-8") as f:
        return SuiteDefinition.from_dict(json.load(f))


# ---------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------

@dataclass
class TestCaseResult:
    __test__ = False  # not a pytest test class

    name: str
    passed: bool
    actual: Any = None
    expected: Any = None
    detail: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: Mapping[str, Any]) -> "TestCaseResult":
        return cls(
            name=str(outcome.get("testExpr", "")),
            passed=bool(outcome.get("pass")),
            actual=outcome.get("actual"),
            expected=outcome.get("expected"),
            detail=outcome.get("detail"),
        )


@dataclass
class RequestReport:
    """Test cases of one client request, named after its request line."""
    name: str
    cases: list[TestCaseResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(case.passed for case in self.cases)


@dataclass
class ScenarioReport:
    name: str
    requests: list[RequestReport] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.error is None and all(r.passed for r in self.requests)

    @property
    def failures(self) -> list[TestCaseResult]:
        return [case for r in self.requests for case in r.cases if not case.passed]


@dataclass
class SuiteReport:
    name: str
    fiddle_id: str
    scenarios: list[ScenarioReport] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(s.passed for s in self.scenarios)

    @property
    def total_cases(self) -> int:
        return sum(len(r.cases) for s in self.scenarios for r in s.requests)

    @property
    def failed_cases(self) -> int:
        return sum(len(s.failures) for s in self.scenarios)


def build_request_reports(result: Snapshot) -> list[RequestReport]:
    """
    One report per client fetch in the snapshot. Every fetch must carry a test
    outcome list, possibly empty. A missing list means the service never
    produced outcomes, which is an error rather than a failed assertion.
    """
    reports = []
    for fetch in (result.get("clientFetches") or {}).values():
        if not has_tests(fetch):
            raise NoTestResultsError("No test results provided")
        request_line = str(fetch.get("req", "")).split("\n")[0]
        reports.append(RequestReport(
            name=request_line,
            cases=[TestCaseResult.from_outcome(t) for t in fetch["tests"]],
        ))
    return reports


# ---------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------

class ScenarioRunner:
    """
    Runs every scenario of a suite in order. Scenarios share the published
    fiddle, so they are never run concurrently.
    """

    def __init__(
        self,
        service: FiddleExecutionService,
        options: Optional[ExecuteOptions] = None,
        warm_up: bool = True,
    ):
        self.service = service
        self.options = options or ExecuteOptions()
        self.warm_up = warm_up

    def _scenario_options(self) -> ExecuteOptions:
        wait_for = list(self.options.wait_for)
        if WAIT_FOR_TESTS not in wait_for:
            wait_for.append(WAIT_FOR_TESTS)
        return replace(self.options, wait_for=wait_for)

    async def run_suite(self, suite: SuiteDefinition) -> SuiteReport:
        fiddle = await self.service.publish(suite.spec)
        logger.info("Published suite fiddle", suite=suite.name, fiddle_id=fiddle.get("id"))

        if self.warm_up:
            # Syncing config to the edge takes a while; do it once up front
            await self.service.execute(fiddle, replace(self.options, wait_for=[], result_condition=None))

        report = SuiteReport(name=suite.name, fiddle_id=fiddle.get("id"))
        for scenario in suite.scenarios:
            report.scenarios.append(await self.run_scenario(fiddle, scenario))
        return report

    async def run_scenario(self, fiddle: Mapping[str, Any], scenario: Scenario) -> ScenarioReport:
        report = ScenarioReport(name=scenario.name)
        try:
            result = await self.service.execute(
                {**fiddle, "requests": scenario.requests},
                self._scenario_options(),
            )
            report.requests = build_request_reports(result)
        except (ExecutionError, TransportError, NoTestResultsError) as e:
            logger.error("Scenario failed to produce results", scenario=scenario.name, error=str(e))
            report.error = str(e)
        else:
            logger.info(
                "Scenario complete",
                scenario=scenario.name,
                passed=report.passed,
                failures=len(report.failures),
            )
        return report
