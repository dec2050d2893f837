"""HTTP client for the risk-evaluation service.

One ``httpx.AsyncClient`` is shared by every transaction of a run, and the
bearer token is fetched once per run. The transport never retries.
"""

from datetime import datetime
from typing import Any

import httpx
import structlog

from riskgen.orchestrator.models import EvaluationResult, OutcomeCategory
from riskgen.shared.errors import RemoteCallError

logger = structlog.get_logger()


def _error_detail(exc: Exception) -> Any:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            return exc.response.json()
        except ValueError:
            return exc.response.text
    return str(exc)


def _status_code(exc: Exception) -> int | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


def _parse_created_at(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_evaluation_id(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


class RiskApiClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        environment_id: str,
        auth_base_url: str = "https://auth.pingone.com",
        api_base_url: str = "https://api.pingone.com/v1",
        timeout_seconds: float = 30.0,
        max_connections: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.environment_id = environment_id
        self.auth_base_url = auth_base_url.rstrip("/")
        self.api_base_url = api_base_url.rstrip("/")
        self._transport = transport or httpx.AsyncHTTPTransport(
            retries=0,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
        )
        self._timeout = httpx.Timeout(timeout_seconds)
        self._client: httpx.AsyncClient | None = None
        self.token: str | None = None

    async def __aenter__(self) -> "RiskApiClient":
        self._client = httpx.AsyncClient(transport=self._transport, timeout=self._timeout)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("RiskApiClient used outside of 'async with'")
        return self._client

    @property
    def evaluations_url(self) -> str:
        return f"{self.api_base_url}/environments/{self.environment_id}/riskEvaluations"

    def _auth_headers(self) -> dict[str, str]:
        if self.token is None:
            raise RuntimeError("no access token, call fetch_token() first")
        return {"Authorization": f"Bearer {self.token}"}

    # ---- credential -----------------------------------------------------------

    async def fetch_token(self) -> str:
        """Client-credentials grant. Raises ``RemoteCallError`` on any failure."""
        url = f"{self.auth_base_url}/{self.environment_id}/as/token"
        try:
            resp = await self.client.post(
                url,
                data={"grant_type": "client_credentials"},
                auth=httpx.BasicAuth(self.client_id, self.client_secret),
            )
            resp.raise_for_status()
            token = resp.json().get("access_token")
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("token_fetch_failed", error=_error_detail(exc))
            raise RemoteCallError("token", str(exc), _status_code(exc)) from exc
        if not token:
            raise RemoteCallError("token", "response did not include access_token")
        self.token = token
        logger.info("token_acquired", environment_id=self.environment_id)
        return token

    # ---- evaluation lifecycle -------------------------------------------------

    async def submit_evaluation(self, body: dict[str, Any]) -> EvaluationResult:
        """POST a risk evaluation. Failures come back as an ``ERROR`` result."""
        try:
            resp = await self.client.post(
                self.evaluations_url, json=body, headers=self._auth_headers()
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("evaluation_submit_failed", error=_error_detail(exc))
            return EvaluationResult.failed()

        logger.debug("evaluation_submit_response", response=data)
        if not isinstance(data, dict):
            return EvaluationResult()
        result = data.get("result") or {}
        level = result.get("level") if isinstance(result, dict) else None
        return EvaluationResult(
            id=_parse_evaluation_id(data.get("id")),
            level=OutcomeCategory.parse(level).value,
            created_at=_parse_created_at(data.get("createdAt")),
        )

    async def complete_evaluation(self, evaluation_id: str) -> dict[str, Any]:
        url = f"{self.evaluations_url}/{evaluation_id}/event"
        try:
            resp = await self.client.put(
                url, json={"completionStatus": "SUCCESS"}, headers=self._auth_headers()
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RemoteCallError("update", str(_error_detail(exc)), _status_code(exc)) from exc
        logger.debug("evaluation_update_response", response=data)
        return data

    async def submit_feedback(
        self,
        evaluation_id: str,
        created_at: datetime,
        category: str,
    ) -> dict[str, Any]:
        url = f"{self.evaluations_url}/{evaluation_id}/feedback"
        body = {"category": category, "evaluationCreatedAt": created_at.isoformat()}
        try:
            resp = await self.client.post(url, json=body, headers=self._auth_headers())
            resp.raise_for_status()
            data = resp.json() if resp.content else {}
        except (httpx.HTTPError, ValueError) as exc:
            raise RemoteCallError("feedback", str(_error_detail(exc)), _status_code(exc)) from exc
        logger.debug("evaluation_feedback_response", response=data)
        return data
