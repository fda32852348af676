import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .judge_client import JudgeClient, JudgeResult

logger = logging.getLogger(__name__)

HIDDEN_OUTPUT_PLACEHOLDER = "Hidden test case - Submit the exam to see the output"


class RunType(str, enum.Enum):
    RUN = "run"            # exploratory run, no test cases, nothing stored
    SAMPLE = "sample"      # visible test cases only
    ALL = "all"            # final submit, every test case, stored
    TEST_ALL = "test_all"  # practice run over every test case, stored, hidden outputs redacted
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RunType":
        tag = (value or "").strip().lower()
        if tag in LEGACY_RUN_TYPES:
            return LEGACY_RUN_TYPES[tag]
        try:
            run_type = cls(tag)
        except ValueError:
            run_type = cls.UNKNOWN
        if run_type is cls.UNKNOWN:
            logger.warning("Unknown runType %r: no test cases will be executed", value)
        return run_type

    @property
    def is_scoring(self) -> bool:
        return self in (RunType.ALL, RunType.TEST_ALL)


# tags written by older clients
LEGACY_RUN_TYPES = {
    "custom": RunType.RUN,
    "final": RunType.ALL,
    "auto_final": RunType.ALL,
}

# every tag that may appear on a stored submission
SCORING_RUN_TAGS = tuple(
    [RunType.ALL.value, RunType.TEST_ALL.value]
    + [tag for tag, run_type in LEGACY_RUN_TYPES.items() if run_type.is_scoring]
)


@dataclass
class GradeOutcome:
    results: List[Dict[str, Any]] = field(default_factory=list)
    passed: int = 0
    total: int = 0
    score: float = 0.0

    @property
    def status(self) -> str:
        return "accepted" if self.passed == self.total else "failed"

    def as_response(self) -> Dict[str, Any]:
        return {
            "results": self.results,
            "passed": self.passed,
            "total": self.total,
            "status": self.status,
        }


def normalize_output(text: Optional[str]) -> str:
    """Canonical form used for comparison: LF line endings, no surrounding whitespace."""
    return (text or "").replace("\r\n", "\n").strip()


def is_passing(stdout: Optional[str], expected_output: Optional[str], status: Optional[str]) -> bool:
    # matching text is not enough, a non-Accepted verdict (runtime error, ...) fails the case
    return normalize_output(stdout) == normalize_output(expected_output) and status == "Accepted"


def compute_score(passed: int, total: int, marks: float) -> float:
    return (passed / max(total, 1)) * marks


def select_test_cases(test_cases: Sequence[Any], run_type: RunType) -> List[Any]:
    """
    Pick the test cases to execute for a run type.
    - SAMPLE: only cases not flagged hidden
    - ALL / TEST_ALL: every case, in the given order
    - RUN: none, the caller performs a single ad-hoc execution instead
    - UNKNOWN: none
    """
    if run_type is RunType.SAMPLE:
        return [tc for tc in test_cases if not getattr(tc, "is_hidden", False)]
    if run_type in (RunType.ALL, RunType.TEST_ALL):
        return list(test_cases)
    return []


def _result_record(tc: Any, judged: JudgeResult, stdout: str, passed: bool, run_type: RunType) -> Dict[str, Any]:
    hidden = bool(getattr(tc, "is_hidden", False))
    test_case_id = getattr(tc, "id", None)
    record = {
        "testCaseId": str(test_case_id) if test_case_id is not None else None,
        "isHidden": hidden,
        "passed": passed,
        "input": getattr(tc, "input", None) or "",
        "expectedOutput": getattr(tc, "expected_output", None) or "",
        "stdout": stdout,
        "stderr": judged.stderr,
        "compile_output": judged.compile_output,
        "status": "accepted" if passed else (judged.status or "").lower(),
        "time": judged.time,
    }
    # the final submit (ALL) keeps hidden outputs so the stored record stays auditable
    if hidden and run_type is RunType.TEST_ALL:
        record["stdout"] = HIDDEN_OUTPUT_PLACEHOLDER
        record["stderr"] = HIDDEN_OUTPUT_PLACEHOLDER
        record["compile_output"] = HIDDEN_OUTPUT_PLACEHOLDER
    return record


def grade_test_cases(
    judge: JudgeClient,
    source_code: str,
    language_id: int,
    test_cases: Sequence[Any],
    run_type: RunType,
    marks: float,
) -> GradeOutcome:
    """
    Run the selected test cases one after another and score them.

    JudgeServiceError from any case propagates: no partial outcome is returned.
    """
    selected = select_test_cases(test_cases, run_type)
    outcome = GradeOutcome(total=len(selected))

    for tc in selected:
        expected = getattr(tc, "expected_output", None) or ""
        judged = judge.execute(
            source_code,
            language_id,
            stdin=getattr(tc, "input", None) or "",
            expected_output=expected,
        )
        stdout = normalize_output(judged.stdout)
        passed = is_passing(stdout, expected, judged.status)
        if passed:
            outcome.passed += 1
        outcome.results.append(_result_record(tc, judged, stdout, passed, run_type))

    outcome.score = compute_score(outcome.passed, outcome.total, marks)
    logger.info("Graded %s/%s test cases (run_type=%s score=%.2f)", outcome.passed, outcome.total, run_type.value, outcome.score)
    return outcome


def run_exploratory(judge: JudgeClient, source_code: str, language_id: int) -> Dict[str, Any]:
    """Single execution against empty stdin, no pass/fail judgement."""
    judged = judge.execute(source_code, language_id, stdin="")
    result = {
        "testCaseId": None,
        "stdout": judged.stdout,
        "stderr": judged.stderr,
        "compile_output": judged.compile_output,
        "status": judged.status,
        "time": judged.time,
    }
    return {"results": [result], "passed": 0, "total": 0, "status": result["status"]}
