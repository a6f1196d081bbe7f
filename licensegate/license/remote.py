"""Single round trip to the license server."""
from typing import Any, Mapping, Optional, Sequence, Tuple

import structlog

from .contracts import HttpClient
from .models import RemoteValidationOutcome

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


class RemoteValidator:
    """
    Performs one license check against the license server.

    Stateless and retry-free; the resolver decides whether to try again.
    """

    def __init__(self, http_client: HttpClient, default_timeout: float = DEFAULT_TIMEOUT):
        self._http = http_client
        self._default_timeout = default_timeout

    def validate(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        timeout: Optional[float] = None,
        headers: Optional[Sequence[Tuple[str, str]]] = None,
    ) -> RemoteValidationOutcome:
        """
        POST the payload to the endpoint and classify the result.

        Args:
            endpoint: License server URL
            payload: JSON body (usually license_key and domain)
            timeout: Seconds before giving up; defaults to the validator's
            headers: Extra headers appended after the defaults

        Returns:
            RemoteValidationOutcome. success is False when the client
            raised or the connection never opened (both status_code 0), when
            the transport reported an error, or when the status is not 2xx.
        """
        try:
            response = self._http.post(
                endpoint,
                payload,
                headers=list(headers or []),
                timeout=timeout if timeout is not None else self._default_timeout,
            )
        except Exception as e:
            logger.warning("license_http_client_failed", endpoint=endpoint, error=repr(e))
            return RemoteValidationOutcome(False, 0, None, str(e) or type(e).__name__)

        if response.status_code == 0:
            error = response.error or "Connection to license server failed"
            logger.warning("license_server_unreachable", endpoint=endpoint, error=error)
            return RemoteValidationOutcome(False, 0, None, error)

        if response.error:
            logger.warning(
                "license_server_transport_error",
                endpoint=endpoint,
                status_code=response.status_code,
                error=response.error,
            )
            return RemoteValidationOutcome(False, response.status_code, response.body, response.error)

        if not 200 <= response.status_code < 300:
            logger.warning("license_server_http_error", endpoint=endpoint, status_code=response.status_code)
            return RemoteValidationOutcome(
                False,
                response.status_code,
                response.body,
                f"License server returned HTTP {response.status_code}",
            )

        return RemoteValidationOutcome(True, response.status_code, response.body, None)
