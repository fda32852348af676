import uuid
from types import SimpleNamespace

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from judgeflow.db import get_async_session
from judgeflow.models.exam_session_model import ExamSession, ExamSessionStatus
from judgeflow.models.submission_model import Submission
from judgeflow.models.user_model import UserRole
from judgeflow.routers import judge_routers
from judgeflow.routers.judge_routers import get_judge_client
from judgeflow.security import current_active_user
from judgeflow.services.judge_client import JudgeResult, JudgeServiceError, TIMEOUT_STATUS

from fakes import FakeSession

USER_ID = uuid.uuid4()


class FakeJudge:
    def __init__(self, result=None, by_stdin=None, error=None):
        self.result = result or JudgeResult(stdout="", status="Accepted")
        self.by_stdin = by_stdin or {}
        self.error = error
        self.calls = []

    def execute(self, source_code, language_id, stdin="", expected_output=None):
        self.calls.append({"source": source_code, "language_id": language_id, "stdin": stdin})
        if self.error:
            raise self.error
        return self.by_stdin.get(stdin, self.result)


def make_client(judge, session=None):
    session = session or FakeSession()
    app = FastAPI()
    app.include_router(judge_routers.router, prefix="/api")
    app.dependency_overrides[current_active_user] = lambda: SimpleNamespace(id=USER_ID, role=UserRole.STUDENT)
    app.dependency_overrides[get_async_session] = lambda: session
    app.dependency_overrides[get_judge_client] = lambda: judge
    return TestClient(app), session


TEST_CASES = [
    {"_id": "t1", "input": "1", "expectedOutput": "2", "isHidden": False},
    {"_id": "t2", "input": "5", "expectedOutput": "10", "isHidden": True},
]


def test_missing_source_is_rejected_before_any_call():
    judge = FakeJudge()
    client, session = make_client(judge)

    response = client.post("/api/judge/run", json={"runType": "run", "examId": str(uuid.uuid4())})

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing source code"
    assert judge.calls == []
    assert session.statements == []


def test_exploratory_run_returns_raw_result_and_stores_nothing():
    judge = FakeJudge(result=JudgeResult(stdout="hi\n", status="Accepted", time=0.01))
    client, session = make_client(judge)

    response = client.post("/api/judge/run", json={"source": "print('hi')", "runType": "run", "language": "python"})

    assert response.status_code == 200
    body = response.json()["submission"]
    assert body["passed"] == 0 and body["total"] == 0
    assert body["results"][0]["testCaseId"] is None
    assert body["results"][0]["stdout"] == "hi\n"
    assert judge.calls[0]["stdin"] == ""
    assert judge.calls[0]["language_id"] == 71
    assert session.added == []


def test_exploratory_run_timeout_is_not_an_error():
    judge = FakeJudge(result=JudgeResult(status=TIMEOUT_STATUS, timed_out=True))
    client, _ = make_client(judge)

    response = client.post("/api/judge/run", json={"source": "while True: pass", "runType": "run"})

    assert response.status_code == 200
    assert response.json()["submission"]["results"][0]["status"] == TIMEOUT_STATUS


def test_sample_run_is_not_persisted():
    judge = FakeJudge(by_stdin={"1": JudgeResult(stdout="2", status="Accepted")})
    client, session = make_client(judge)

    response = client.post("/api/judge/run", json={"source": "x", "runType": "sample", "testCases": TEST_CASES})

    body = response.json()["submission"]
    assert response.status_code == 200
    assert (body["passed"], body["total"], body["status"]) == (1, 1, "accepted")
    assert session.added == []


def test_test_all_persists_even_when_everything_fails():
    judge = FakeJudge(result=JudgeResult(stdout="nope", status="Wrong Answer"))
    client, session = make_client(judge)

    response = client.post("/api/judge/run", json={
        "source": "x", "runType": "test_all", "testCases": TEST_CASES, "questionId": "legacy-42",
    })

    assert response.status_code == 200
    assert len(session.added) == 1
    stored = session.added[0]
    assert isinstance(stored, Submission)
    assert stored.user_id == USER_ID
    assert stored.run_type == "test_all"
    assert (stored.passed, stored.total, stored.score) == (0, 2, 0)

    body = response.json()["submission"]
    assert body["question_id"] == "legacy-42"
    hidden = body["results"][1]
    assert hidden["isHidden"] is True
    assert hidden["stdout"] != "nope"


def test_final_run_scores_with_default_marks():
    judge = FakeJudge(by_stdin={
        "1": JudgeResult(stdout="2\r\n", status="Accepted"),
        "5": JudgeResult(stdout="10", status="Accepted"),
    })
    client, session = make_client(judge)

    response = client.post("/api/judge/run", json={"source": "x", "runType": "all", "testCases": TEST_CASES})

    body = response.json()["submission"]
    assert (body["passed"], body["total"]) == (2, 2)
    assert body["score"] == 10
    # final run keeps hidden output for the audit trail
    assert body["results"][1]["stdout"] == "10"
    assert len(session.added) == 1


def test_legacy_final_tag_is_stored_as_sent():
    judge = FakeJudge(result=JudgeResult(stdout="2", status="Accepted"))
    client, session = make_client(judge)

    response = client.post("/api/judge/run", json={"source": "x", "runType": "auto_final", "testCases": TEST_CASES[:1]})

    assert response.status_code == 200
    assert session.added[0].run_type == "auto_final"
    assert response.json()["submission"]["run_type"] == "auto_final"


def test_question_lookup_failure_still_grades_and_persists():
    judge = FakeJudge()
    session = FakeSession(execute_error=RuntimeError("relation coding_questions does not exist"))
    client, session = make_client(judge, session)

    response = client.post("/api/judge/run", json={
        "source": "x", "runType": "test_all", "questionId": str(uuid.uuid4()),
    })

    assert response.status_code == 200
    # the failed lookup is rolled back before the submission insert
    assert session.rollbacks == 1
    assert session.commits == 1
    assert len(session.added) == 1
    assert session.added[0].run_type == "test_all"
    assert (session.added[0].passed, session.added[0].total) == (0, 0)


def test_stored_question_supplies_test_cases_language_marks_and_scaffold():
    question = SimpleNamespace(
        test_cases=[SimpleNamespace(id=uuid.uuid4(), input="3", expected_output="9", is_hidden=False)],
        language="cpp",
        marks=4,
        main_block="#include &lt;iostream&gt;\nint main() { std::cout << sq(3); }",
    )
    judge = FakeJudge(result=JudgeResult(stdout="9", status="Accepted"))
    client, session = make_client(judge, FakeSession(rows=[question]))

    response = client.post("/api/judge/run", json={
        "source": "int sq(int x) { return x * x; }", "runType": "all", "questionId": str(uuid.uuid4()),
    })

    body = response.json()["submission"]
    assert body["score"] == 4
    assert body["language"] == "cpp"
    sent = judge.calls[0]
    assert sent["language_id"] == 54
    assert sent["source"].startswith("#include <iostream>")
    assert sent["source"].index("int sq(") < sent["source"].index("int main()")


def test_unknown_run_type_reports_zero_of_zero():
    judge = FakeJudge()
    client, session = make_client(judge)

    response = client.post("/api/judge/run", json={"source": "x", "runType": "bogus", "testCases": TEST_CASES})

    assert response.json()["submission"] == {"results": [], "passed": 0, "total": 0, "status": "accepted"}
    assert judge.calls == []
    assert session.added == []


def test_judge_outage_is_a_server_error():
    judge = FakeJudge(error=JudgeServiceError("Judge0 submission failed: refused"))
    client, session = make_client(judge)

    response = client.post("/api/judge/run", json={"source": "x", "runType": "all", "testCases": TEST_CASES})

    assert response.status_code == 500
    assert response.json()["detail"]["message"] == "Server error"
    assert "refused" in response.json()["detail"]["error"]
    assert session.added == []


def test_integrity_error_on_save_is_a_database_error():
    judge = FakeJudge(by_stdin={"1": JudgeResult(stdout="2", status="Accepted")})
    client, session = make_client(judge, FakeSession(commit_error=IntegrityError("INSERT", {}, Exception("duplicate"))))

    response = client.post("/api/judge/run", json={"source": "x", "runType": "all", "testCases": TEST_CASES})

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["message"] == "Database error while saving submission"
    assert "duplicate" in detail["error"]
    assert session.rollbacks == 1


def test_run_autosaves_active_exam_session():
    exam_id = uuid.uuid4()
    row = ExamSession(exam_id=exam_id, student_id=USER_ID, status=ExamSessionStatus.IN_PROGRESS, answers={})
    judge = FakeJudge()
    client, session = make_client(judge, FakeSession(rows=[row]))

    response = client.post("/api/judge/run", json={
        "source": "print(1)", "runType": "run", "language": "python", "examId": str(exam_id), "questionId": "q7",
    })

    assert response.status_code == 200
    assert row.answers["q7"]["code"] == "print(1)"
    assert row.answers["q7"]["answered"] is True
    assert session.added == [row]


def test_autosave_failure_does_not_block_the_run():
    judge = FakeJudge(result=JudgeResult(stdout="ok", status="Accepted"))
    client, session = make_client(judge, FakeSession(execute_error=RuntimeError("db down")))

    response = client.post("/api/judge/run", json={"source": "print(1)", "runType": "run", "examId": str(uuid.uuid4())})

    assert response.status_code == 200
    assert response.json()["submission"]["results"][0]["stdout"] == "ok"


def test_list_languages():
    client, _ = make_client(FakeJudge())
    response = client.get("/api/judge/languages")
    assert response.json()["cpp"] == 54
