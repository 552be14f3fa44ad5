"""
Report upload to the leader aggregator.

This module is the only place HTTP responses are interpreted. Everything above it
works with the three-way SubmissionOutcome:

- Accepted: 2xx.
- Rejected: a 4xx carrying a DAP problem document (not retryable).
- TransientFailure: timeouts, network errors, 5xx, transient 4xx statuses and
  responses that cannot be understood (retryable).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from dap_client.config.models import TransportConfig
from dap_client.protocol.messages import DAP_ERROR_URN_PREFIX, REPORT_MEDIA_TYPE, TaskId

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    SERVER_ERROR = "server_error"
    MALFORMED_RESPONSE = "malformed_response"
    UNEXPECTED_STATUS = "unexpected_status"


@dataclass(frozen=True)
class Accepted:
    status: int


@dataclass(frozen=True)
class Rejected:
    reason: str
    status: int
    problem_type: str = ""
    detail: Optional[str] = None


@dataclass(frozen=True)
class TransientFailure:
    kind: FailureKind
    detail: str = ""
    status: Optional[int] = None


SubmissionOutcome = Union[Accepted, Rejected, TransientFailure]


class ProblemDocument(BaseModel):
    """RFC 7807 problem details as returned by DAP aggregators."""

    model_config = ConfigDict(extra="allow")

    type: str
    title: Optional[str] = None
    detail: Optional[str] = None
    status: Optional[int] = None

    @property
    def reason(self) -> str:
        if self.type.startswith(DAP_ERROR_URN_PREFIX):
            return self.type[len(DAP_ERROR_URN_PREFIX) :]
        return self.type


def _parse_problem(response: httpx.Response) -> Optional[ProblemDocument]:
    if not response.content:
        return None
    try:
        problem = ProblemDocument.model_validate_json(response.content)
    except ValidationError:
        return None
    if not problem.type or problem.type == "about:blank":
        return None
    return problem


def upload_url(leader_endpoint: str, task_id: TaskId) -> str:
    return f"{leader_endpoint.rstrip('/')}/tasks/{task_id.encode_to_string()}/reports"


class Transport:
    """Uploads encoded reports with a bounded per-request timeout."""

    def __init__(self, config: Optional[TransportConfig] = None, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config or TransportConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.config.request_timeout)

    def classify(self, response: httpx.Response) -> SubmissionOutcome:
        status = response.status_code
        if 200 <= status < 300:
            return Accepted(status=status)
        if 400 <= status < 500:
            if status in self.config.transient_statuses:
                return TransientFailure(FailureKind.UNEXPECTED_STATUS, f"HTTP {status}", status)
            problem = _parse_problem(response)
            if problem is None:
                return TransientFailure(
                    FailureKind.MALFORMED_RESPONSE, f"HTTP {status} without a problem document", status
                )
            return Rejected(reason=problem.reason, status=status, problem_type=problem.type, detail=problem.detail)
        if 500 <= status < 600:
            return TransientFailure(FailureKind.SERVER_ERROR, f"HTTP {status}", status)
        return TransientFailure(FailureKind.UNEXPECTED_STATUS, f"HTTP {status}", status)

    async def submit(self, url: str, encoded_report: bytes) -> SubmissionOutcome:
        headers = {"Content-Type": REPORT_MEDIA_TYPE, "User-Agent": self.config.user_agent}
        try:
            response = await asyncio.wait_for(
                self._client.request(self.config.upload_method, url, content=encoded_report, headers=headers),
                timeout=self.config.request_timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(f"Report upload to {url} timed out after {self.config.request_timeout}s")
            return TransientFailure(FailureKind.TIMEOUT, str(exc) or "request timed out")
        except httpx.DecodingError as exc:
            return TransientFailure(FailureKind.MALFORMED_RESPONSE, str(exc))
        except httpx.HTTPError as exc:
            logger.warning(f"Report upload to {url} failed: {exc}")
            return TransientFailure(FailureKind.NETWORK_ERROR, str(exc))
        outcome = self.classify(response)
        logger.debug(f"Upload to {url} returned HTTP {response.status_code}: {type(outcome).__name__}")
        return outcome

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
