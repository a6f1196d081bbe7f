"""FastAPI/Starlette integration for license enforcement."""
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from fastapi import HTTPException, Request, status
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import HTMLResponse, JSONResponse, Response

from ..adapters.session import MappingSessionAdapter, StarletteSessionAdapter
from ..license.contracts import SessionAdapter

if TYPE_CHECKING:
    from ..module import LicenseModule

ModuleFactory = Callable[[Request], "LicenseModule"]


def session_adapter_for(request: Request) -> SessionAdapter:
    """
    Session adapter for a request.

    Uses the signed cookie session when SessionMiddleware is installed,
    otherwise a per-request mapping (the cache then lives for one request).
    """
    if "session" in request.scope:
        return StarletteSessionAdapter(request)
    return MappingSessionAdapter()


def require_license(module_factory: ModuleFactory, allow_read_only: bool = True):
    """
    Dependency factory that rejects requests the license does not allow.

    Usage:
        @app.post("/orders", dependencies=[Depends(require_license(get_license))])
        def create_order():
            ...

    Args:
        module_factory: Builds the LicenseModule for a request
        allow_read_only: Let safe methods through while the license is expired

    Raises:
        HTTPException: 403 with the license status in the detail
    """
    def dependency(request: Request) -> None:
        module = module_factory(request)
        method = request.method if allow_read_only else None
        denial = module.check_enforcement_json(method=method)
        if denial is not None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=denial)

    return dependency


class LicenseEnforcementMiddleware(BaseHTTPMiddleware):
    """
    Answers 403 with the expired/suspended page when the license forbids a request.

    Paths under `json_prefixes` get the JSON error body instead of HTML.
    """

    def __init__(
        self,
        app,
        module_factory: ModuleFactory,
        exempt_paths: Iterable[str] = ("/health",),
        json_prefixes: Iterable[str] = ("/api",),
    ):
        super().__init__(app)
        self.module_factory = module_factory
        self.exempt_paths = tuple(exempt_paths)
        self.json_prefixes = tuple(json_prefixes)

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if path in self.exempt_paths:
            return await call_next(request)

        module = self.module_factory(request)

        if path.startswith(self.json_prefixes):
            denial: Optional[dict] = await run_in_threadpool(
                module.check_enforcement_json, request.method
            )
            if denial is not None:
                return JSONResponse(denial, status_code=status.HTTP_403_FORBIDDEN)
            return await call_next(request)

        decision = await run_in_threadpool(module.check_enforcement, request.method)
        if decision is not None:
            return HTMLResponse(decision.view, status_code=decision.http_code)
        return await call_next(request)
