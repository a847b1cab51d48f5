import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import AuthorizationError
from .routers import typos as typos_router
from .routers import workspaces as workspaces_router
from .settings import get_settings

_settings = get_settings()

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=_settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "typos",
        "description": "Typo reporting, listing, per-status counts and lifecycle transitions within a workspace.",
    },
    {
        "name": "workspaces",
        "description": "Workspace API access token view and rotation.",
    },
]

app = FastAPI(
    title="Typo Reporter Backend",
    description="Backend API service for collecting site typos and resolving them per workspace.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(AuthorizationError)
async def authorization_exception_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    """
    Render a denied workspace operation as 403, distinct from 404.
    """
    return JSONResponse(
        status_code=403,
        content={
            "error": "AuthorizationError",
            "message": str(exc),
            "detail": {"workspace_id": exc.workspace_id, "operation": exc.operation},
        },
    )


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": _settings.persistence_backend}


app.include_router(typos_router.router)
app.include_router(workspaces_router.router)
