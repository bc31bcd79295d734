import logging
import time
from datetime import datetime
from pathlib import Path
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse
from fastapi.routing import APIRoute
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.routing import Match
from devspace.config import settings
from devspace.database import engine, Base
from devspace.errors import register_exception_handlers, not_found

# Import all models so their tables are registered
from devspace.models import (
    User, Achievement, Contact, GuestbookEntry, Project, AnalyticsEvent
)

# Import routes
from devspace.routes import auth, contact, guestbook, portfolio, users, analytics, realtime

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

START_TIME = time.monotonic()

PROJECT_ROOT = Path(__file__).resolve().parents[2]
FRONTEND_DIR = Path(settings.FRONTEND_DIR)
if not FRONTEND_DIR.is_absolute():
    FRONTEND_DIR = PROJECT_ROOT / FRONTEND_DIR

CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com",
    "font-src 'self' https://fonts.gstatic.com",
    "img-src 'self' data: https:",
    "script-src 'self'",
    "connect-src 'self' ws: wss:",
])

# Per-IP limit applied to every HTTP request
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED
)

# Create FastAPI app
app = FastAPI(
    title="Cosmic DevSpace API",
    description="Portfolio, guestbook, users and analytics for Cosmic DevSpace",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
allowed_origins = [settings.FRONTEND_URL] if settings.FRONTEND_URL else []
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?" if settings.is_development else None,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "SAMEORIGIN"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Cross-Origin-Opener-Policy"] = "same-origin"
    response.headers["Cross-Origin-Resource-Policy"] = "same-origin"
    response.headers["X-DNS-Prefetch-Control"] = "off"
    if not settings.is_development:
        response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"
    # Swagger UI and ReDoc load their assets from a CDN
    if not request.url.path.startswith(("/docs", "/redoc")):
        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
    return response


register_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(contact.router, prefix="/api/contact", tags=["Contact"])
app.include_router(guestbook.router, prefix="/api/guestbook", tags=["Guestbook"])
app.include_router(portfolio.router, prefix="/api/portfolio", tags=["Portfolio"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])
app.include_router(realtime.router, tags=["Realtime"])


@app.on_event("startup")
def create_tables():
    Base.metadata.create_all(bind=engine)
    logger.info("Cosmic DevSpace API started (%s)", settings.ENVIRONMENT)


# Health check
@app.get("/api/health")
def health_check():
    return {
        "status": "operational",
        "message": "Cosmic DevSpace API is in orbit!",
        "timestamp": datetime.utcnow().isoformat(),
        "uptime": round(time.monotonic() - START_TIME, 3)
    }


@app.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"], include_in_schema=False)
def api_not_found(path: str, request: Request):
    """Known paths called with the wrong method get 405, everything else 404"""
    allowed = set()
    for route in app.router.routes:
        if isinstance(route, APIRoute) and route.include_in_schema:
            match, _ = route.matches(request.scope)
            if match == Match.PARTIAL:
                allowed |= route.methods
    if allowed:
        raise HTTPException(status_code=405, headers={"Allow": ", ".join(sorted(allowed))})
    raise HTTPException(status_code=404)


@app.get("/{full_path:path}", include_in_schema=False)
def serve_frontend(full_path: str):
    """Serve frontend files; unknown paths fall back to index.html"""
    root = FRONTEND_DIR.resolve()
    if full_path:
        candidate = (root / full_path).resolve()
        if candidate.is_file() and root in candidate.parents:
            return FileResponse(candidate)

    index = root / "index.html"
    if not index.is_file():
        raise not_found("Frontend Not Found", "The frontend has not been built.")
    return FileResponse(index)
