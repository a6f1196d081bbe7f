"""httpx-based HTTP client for the license server."""
import json
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import httpx
import structlog

from ..license.contracts import HttpClient
from ..license.models import HttpResponse

logger = structlog.get_logger(__name__)

DEFAULT_HEADERS = [("Content-Type", "application/json")]


class HttpxClient(HttpClient):
    """
    Synchronous JSON POST over httpx.

    A response of any status code counts as a successful transport; only
    failures to connect or to read the response are reported as errors.
    """

    def __init__(
        self,
        verify_ssl: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            verify_ssl: Verify TLS certificates
            transport: Custom httpx transport (e.g. httpx.MockTransport in tests)
        """
        self.verify_ssl = verify_ssl
        self._transport = transport

    def post(
        self,
        url: str,
        data: Mapping[str, Any],
        headers: Optional[Sequence[Tuple[str, str]]] = None,
        timeout: float = 10,
    ) -> HttpResponse:
        all_headers: List[Tuple[str, str]] = DEFAULT_HEADERS + list(headers or [])
        body = json.dumps(dict(data), ensure_ascii=False)

        try:
            with httpx.Client(verify=self.verify_ssl, timeout=timeout, transport=self._transport) as client:
                response = client.post(url, content=body.encode("utf-8"), headers=all_headers)
        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.UnsupportedProtocol) as e:
            logger.debug("http_connect_failed", url=url, error=str(e))
            return HttpResponse(False, 0, None, str(e) or type(e).__name__)
        except httpx.HTTPError as e:
            logger.debug("http_request_failed", url=url, error=str(e))
            return HttpResponse(False, 0, None, str(e) or type(e).__name__)

        return HttpResponse(True, response.status_code, response.text, None)
