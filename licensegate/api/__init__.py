"""Web integration: enforcement dependency, middleware and blocking pages."""
from .dependencies import LicenseEnforcementMiddleware, require_license, session_adapter_for
from .views import render_view

__all__ = [
    "LicenseEnforcementMiddleware",
    "require_license",
    "session_adapter_for",
    "render_view",
]
