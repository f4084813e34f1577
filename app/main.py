from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from app.core import config
from app.core.database.engine import init_db
from app.core.rate_limit import limiter
from app.core.responses import basic_response
from app.features.users.routes import router as user_router
from app.features.groups.routes import router as group_router
from app.features.item_details.routes import router as item_detail_router
from app.features.tracking.routes import router as track_router
from app.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="Chemical Lab Backend",
    description="Laboratory inventory management: users, groups, chemical item details and audit trail",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
app.state.limiter = limiter


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.app.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1] if error["loc"] else "root"
        if key == "__root__":
            key = "root"
        errors[str(key)] = error["msg"]
    log.info("Request validation error %s", errors)
    return basic_response(status.HTTP_400_BAD_REQUEST, config.MODULE.invalid_parameter, errors)


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(request: Request, _exc: RateLimitExceeded) -> Response:
    log.warning("Rate limit exceeded for %s", request.client.host if request.client else "unknown")
    return basic_response(status.HTTP_429_TOO_MANY_REQUESTS, config.MODULE.too_many_requests)


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")


@app.get("/")
async def root():
    """Root endpoint - API description."""
    return {
        "message": "Chemical Lab Backend API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Send the token from PUT /api/v1/user/{name}/token as a Bearer token "
                    f"or in the '{config.ACCESS_TOKEN_COOKIE}' cookie",
            "public_endpoints": [
                "PUT /api/v1/user/{name}/token",
                "GET /api/v1/user/.count",
                "GET /api/v1/usergroup/{name}", "GET /api/v1/usergroup/.count",
                "GET /api/v1/item-detail/{name}", "GET /api/v1/item-detail/.count",
            ],
        },
        "features": {
            "user": "Accounts, sign in/out, per-field guarded modification",
            "usergroup": "Groups carrying the permission string of their members",
            "item-detail": "Chemical item details with unit, container, state and type lookups",
            "track": "Append-only audit trail of every change",
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(user_router, prefix="/api/v1/user", tags=["user"])
app.include_router(group_router, prefix="/api/v1/usergroup", tags=["usergroup"])
app.include_router(item_detail_router, prefix="/api/v1/item-detail", tags=["item-detail"])
app.include_router(track_router, prefix="/api/v1/track", tags=["track"])
