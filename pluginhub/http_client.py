"""HTTP fetch layer shared by every source and downloader."""

import json
from dataclasses import dataclass, field
from typing import Any, Optional
import httpx
import structlog

from pluginhub.core.errors import MalformedResponseError, NetworkError

log = structlog.get_logger()


@dataclass
class HttpResponse:
    """A fully read HTTP response.

    Attributes:
        status: HTTP status code
        text: Decoded response body
        url: Final URL after redirects
        headers: Response headers
    """

    status: int
    text: str
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Parse the body as JSON.

        Raises:
            MalformedResponseError: If the body is not valid JSON
        """
        try:
            return json.loads(self.text)
        except (json.JSONDecodeError, TypeError) as e:
            raise MalformedResponseError(f"Invalid JSON from {self.url or 'server'}: {e}") from e


class HttpClient:
    """Makes HTTP requests on behalf of the marketplace.

    Non-success statuses are returned to the caller untouched; only transport
    failures raise, as NetworkError.

    Example:
        client = HttpClient(timeout=10)
        response = await client.fetch("https://api.github.com/rate_limit")
        if response.ok:
            print(response.json())
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, user_agent: str = "pluginhub"):
        """Initialize the client.

        Args:
            timeout: Request timeout in seconds
            user_agent: Value of the User-Agent header
        """
        if timeout <= 0:
            timeout = self.DEFAULT_TIMEOUT
        self.timeout = timeout
        self.user_agent = user_agent

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[dict[str, str]] = None,
    ) -> HttpResponse:
        """Fetch a URL.

        Args:
            url: The URL to request
            method: HTTP method
            headers: Request headers

        Returns:
            HttpResponse with status and body

        Raises:
            NetworkError: On timeouts and connection failures
        """
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)

        log.debug("http_fetch", url=url, method=method)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True
            ) as client:
                response = await client.request(method.upper(), url, headers=request_headers)
                return HttpResponse(
                    status=response.status_code,
                    text=response.text,
                    url=str(response.url),
                    headers=dict(response.headers),
                )
        except httpx.TimeoutException as e:
            log.warning("http_fetch_timeout", url=url, timeout=self.timeout)
            raise NetworkError(f"Request to {url} timed out after {self.timeout} seconds") from e
        except httpx.HTTPError as e:
            log.warning("http_fetch_failed", url=url, error=str(e))
            raise NetworkError(f"Request to {url} failed: {e}") from e
