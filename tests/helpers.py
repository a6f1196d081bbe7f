"""Test doubles and builders shared by the licensegate tests."""
import json
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from licensegate.license.contracts import HttpClient
from licensegate.license.models import HttpResponse

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
ENDPOINT = "https://licenses.test/api/v1/licenses/verify"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeHttpClient(HttpClient):
    """Returns queued responses (the last one repeats) and records every call."""

    def __init__(self, *responses: HttpResponse):
        self.responses: List[HttpResponse] = list(responses)
        self.calls: List[dict] = []

    def post(self, url, data, headers=None, timeout=10) -> HttpResponse:
        self.calls.append({"url": url, "data": dict(data), "headers": headers, "timeout": timeout})
        if not self.responses:
            raise AssertionError("Unexpected HTTP call")
        if len(self.responses) == 1:
            return self.responses[0]
        return self.responses.pop(0)


def server_body(
    valid: bool = True,
    status: str = "active",
    expiry_date: Optional[str] = None,
    **extra: Any,
) -> str:
    """JSON body in the license server's format."""
    data = {"valid": valid, "status": status, **extra}
    if expiry_date is not None:
        data["expiry_date"] = expiry_date
    return json.dumps({"data": data})


def ok(body: str, status_code: int = 200) -> HttpResponse:
    return HttpResponse(True, status_code, body, None)


def unreachable(error: str = "Connection timed out") -> HttpResponse:
    return HttpResponse(False, 0, None, error)
