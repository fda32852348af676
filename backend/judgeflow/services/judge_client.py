"""
Client for a Judge0 compatible execution service.

One call to `execute` is one submission plus bounded polling. There is no retry:
HTTP failures raise JudgeServiceError and abort the grading request. Running out
of polling time is not an error, it yields a result with the TIMEOUT_STATUS
sentinel so callers can tell it apart from Judge0's own "Time Limit Exceeded".
"""
import base64
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import requests

from .. import config

logger = logging.getLogger(__name__)

# Judge0 status ids 1 (In Queue) and 2 (Processing) are the only non-terminal ones
PENDING_STATUS_IDS = (1, 2)
ACCEPTED_STATUS = "Accepted"
TIMEOUT_STATUS = "Time Limit"


class JudgeServiceError(Exception):
    """The execution service could not be reached or answered with an error."""


@dataclass
class JudgeResult:
    stdout: str = ""
    stderr: str = ""
    compile_output: str = ""
    status: str = "Unknown"
    status_id: Optional[int] = None
    time: float = 0
    memory: int = 0
    token: str = ""
    timed_out: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def accepted(self) -> bool:
        return self.status == ACCEPTED_STATUS


def b64encode_text(text: Optional[str]) -> str:
    return base64.b64encode((text or "").encode("utf-8")).decode("ascii")


def b64decode_text(value: Any) -> str:
    if not value:
        return ""
    try:
        return base64.b64decode(value).decode("utf-8", errors="replace")
    except ValueError:
        # not base64 after all
        return str(value)


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


class JudgeClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
        http=None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = (base_url or config.judge0_base_url()).rstrip("/")
        self.poll_interval = config.JUDGE0_POLL_INTERVAL if poll_interval is None else poll_interval
        self.timeout = config.JUDGE0_TIMEOUT if timeout is None else timeout
        self.request_timeout = config.JUDGE0_REQUEST_TIMEOUT
        # anything with requests' get/post signature; module-level calls, no pooling
        self._http = http or requests
        self._sleep = sleep
        self._clock = clock

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if config.JUDGE0_RAPIDAPI_KEY:
            headers["X-RapidAPI-Key"] = config.JUDGE0_RAPIDAPI_KEY
            headers["X-RapidAPI-Host"] = config.JUDGE0_RAPIDAPI_HOST or ""
        return headers

    def submit(self, source_code: str, language_id: int, stdin: str = "", expected_output: Optional[str] = None) -> str:
        payload = {
            "source_code": b64encode_text(source_code),
            "language_id": language_id,
            "stdin": b64encode_text(stdin),
        }
        if expected_output is not None:
            payload["expected_output"] = b64encode_text(expected_output)

        url = f"{self.base_url}/submissions"
        try:
            resp = self._http.post(
                url,
                params={"base64_encoded": "true", "wait": "false"},
                json=payload,
                headers=self._headers(),
                timeout=self.request_timeout,
            )
            resp.raise_for_status()
            token = (resp.json() or {}).get("token")
        except (requests.RequestException, ValueError) as e:
            raise JudgeServiceError(f"Judge0 submission failed: {e}") from e

        if not token:
            raise JudgeServiceError("Judge0 did not return a submission token")
        return token

    def fetch(self, token: str) -> Dict[str, Any]:
        url = f"{self.base_url}/submissions/{token}"
        try:
            resp = self._http.get(
                url,
                params={"base64_encoded": "true", "fields": "*"},
                headers=self._headers(),
                timeout=self.request_timeout,
            )
            resp.raise_for_status()
            return resp.json() or {}
        except (requests.RequestException, ValueError) as e:
            raise JudgeServiceError(f"Judge0 polling failed for token {token}: {e}") from e

    def wait_for_result(self, token: str) -> JudgeResult:
        start = self._clock()
        while self._clock() - start < self.timeout:
            self._sleep(self.poll_interval)
            data = self.fetch(token)
            status_id = (data.get("status") or {}).get("id")
            if status_id is not None and status_id not in PENDING_STATUS_IDS:
                return self._to_result(token, data)

        logger.warning("Judge0 token %s still pending after %.1fs", token, self.timeout)
        return JudgeResult(status=TIMEOUT_STATUS, token=token, timed_out=True)

    def execute(self, source_code: str, language_id: int, stdin: str = "", expected_output: Optional[str] = None) -> JudgeResult:
        token = self.submit(source_code, language_id, stdin=stdin, expected_output=expected_output)
        logger.debug("Judge0 submission created token=%s language_id=%s", token, language_id)
        return self.wait_for_result(token)

    @staticmethod
    def _to_result(token: str, data: Dict[str, Any]) -> JudgeResult:
        status = data.get("status") or {}
        return JudgeResult(
            stdout=b64decode_text(data.get("stdout")),
            stderr=b64decode_text(data.get("stderr")),
            compile_output=b64decode_text(data.get("compile_output")),
            status=status.get("description") or "Unknown",
            status_id=status.get("id"),
            time=_as_float(data.get("time")),
            memory=int(data.get("memory") or 0),
            token=token,
            raw=data,
        )
