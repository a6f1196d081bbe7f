"""Parsing of license server responses.

Expected shape:

    {"data": {"valid": true, "status": "active", "expiry_date": "...",
              "message": "...", "tier": {...}, "package": {...},
              "addons": [...], "features": [...], "client_name": "..."}}
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .errors import TransportError
from .models import parse_timestamp
from .status import LicenseStatus, map_from_server


@dataclass(frozen=True)
class ServerVerdict:
    """Normalized license server answer."""
    valid: bool
    status: LicenseStatus
    server_status: str
    message: str
    expires_at: Optional[datetime] = None
    license_type: str = "standard"
    client_name: Optional[str] = None
    features: Any = field(default_factory=lambda: ["all"])
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def history_status(self) -> str:
        """Status to record in validation history."""
        return "success" if self.valid else self.status.value


def _parse_tier(data: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(data, dict):
        return None
    try:
        level = int(data.get("level") or 0)
    except (TypeError, ValueError):
        level = 0
    return {
        "slug": data.get("slug"),
        "name": data.get("name"),
        "level": level,
        "description": data.get("description"),
    }


def _parse_package(data: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(data, dict):
        return None
    return {"id": data.get("id"), "name": data.get("name"), "slug": data.get("slug")}


def _parse_addons(data: Any) -> list:
    if not isinstance(data, list):
        return []
    return [
        {
            "feature_key": addon.get("feature_key"),
            "name": addon.get("name"),
            "slug": addon.get("slug"),
            "description": addon.get("description"),
        }
        for addon in data
        if isinstance(addon, dict)
    ]


def parse_server_response(body: Optional[str]) -> ServerVerdict:
    """
    Parse a raw response body.

    Raises:
        TransportError: If the body is empty, not JSON, or lacks data.valid
    """
    if not body:
        raise TransportError("License server returned empty response")

    try:
        result = json.loads(body)
    except ValueError:
        raise TransportError("License server returned invalid JSON")

    data = result.get("data") if isinstance(result, dict) else None
    if not isinstance(data, dict) or "valid" not in data:
        raise TransportError("License server returned unexpected format")

    is_valid = data["valid"] is True
    server_status = str(data.get("status") or "unknown")

    try:
        expires_at = parse_timestamp(data.get("expiry_date"))
    except (TypeError, ValueError, OverflowError, OSError):
        raise TransportError("License server returned an unreadable expiry_date")

    tier = _parse_tier(data.get("tier"))
    package = _parse_package(data.get("package"))
    if tier is not None or package is not None:
        features: Any = {
            "package": package,
            "tier": tier,
            "addons": _parse_addons(data.get("addons")),
            "feature_keys": data.get("features") or [],
        }
    else:
        features = ["all"]

    default_message = "License is valid" if is_valid else "License validation failed"
    return ServerVerdict(
        valid=is_valid,
        status=map_from_server(server_status, is_valid),
        server_status=server_status,
        message=data.get("message") or default_message,
        expires_at=expires_at,
        license_type=(tier or {}).get("slug") or "standard",
        client_name=data.get("client_name"),
        features=features,
        raw=result,
    )
