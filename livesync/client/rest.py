"""
Dashboard REST client.

Pull-side transport: fetches the current dashboard snapshot over HTTP. Used
by the poll loop whenever the push transport is not active.

Endpoint:
    GET {server_url}/api/dashboard

Response Format:
    {
        "success": true,
        "data": {"lineChartData": [...], "barChartData": [...], ...},
        "timestamp": "2024-01-01T00:00:00.000000Z"
    }
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp
import structlog
from pydantic import ValidationError

from livesync.client.errors import TransportError
from livesync.models.snapshot import DashboardSnapshot, PollResponse

logger = structlog.get_logger(__name__)


class DashboardRestClient:
    """
    Async HTTP client for the dashboard server.

    Attributes:
        base_url: Server base URL.
        timeout_seconds: Total timeout per request.

    Example:
        >>> client = DashboardRestClient("http://localhost:3001")
        >>> snapshot = await client.get_dashboard()
        >>> print(snapshot.total_events)
        >>> await client.close()
    """

    def __init__(self, base_url: str, timeout_seconds: float = 10.0):
        """
        Initialize REST client.

        Args:
            base_url: Server base URL.
            timeout_seconds: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

        logger.debug("dashboard_rest_client_initialized", base_url=self.base_url)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session is created."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": "livesync-client/0.1"},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("dashboard_rest_session_closed", base_url=self.base_url)
        self._session = None

    async def _request(self, method: str, endpoint: str) -> Dict[str, Any]:
        """
        Make an HTTP request and decode the JSON body.

        Args:
            method: HTTP method.
            endpoint: Path below the base URL.

        Returns:
            Dict[str, Any]: Parsed JSON response.

        Raises:
            TransportError: On network failure, timeout, status >= 400 or a
                body that is not JSON.
        """
        session = await self._ensure_session()
        url = f"{self.base_url}{endpoint}"

        try:
            async with session.request(method, url) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    logger.warning(
                        "dashboard_request_failed",
                        url=url,
                        status=response.status,
                        error=error_text[:200],
                    )
                    raise TransportError(
                        f"Request failed with status {response.status}: {error_text[:200]}"
                    )
                return await response.json()

        except aiohttp.ContentTypeError as e:
            raise TransportError(f"Response is not JSON: {e}") from e
        except aiohttp.ClientError as e:
            logger.warning("dashboard_client_error", url=url, error=str(e))
            raise TransportError(f"Request failed: {e}") from e
        except asyncio.TimeoutError as e:
            logger.warning("dashboard_timeout", url=url, timeout=self.timeout_seconds)
            raise TransportError(
                f"Request timeout after {self.timeout_seconds}s"
            ) from e

    async def get_dashboard(self) -> DashboardSnapshot:
        """
        Fetch the current dashboard snapshot.

        Returns:
            DashboardSnapshot: Snapshot computed by the server.

        Raises:
            TransportError: If the request fails or the body reports failure.
        """
        data = await self._request("GET", "/api/dashboard")

        try:
            body = PollResponse.model_validate(data)
        except ValidationError as e:
            raise TransportError(f"Malformed dashboard response: {e}") from e

        if not body.success:
            raise TransportError(body.error or "Server reported failure")

        logger.debug(
            "dashboard_snapshot_fetched",
            total_events=body.data.total_events,
            line_points=len(body.data.line_chart_data),
        )
        return body.data

    def __repr__(self) -> str:
        """Return string representation."""
        return f"DashboardRestClient(base_url={self.base_url})"
