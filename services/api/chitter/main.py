"""
Chitter API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Create tables if not present
  3. Connect to Redis (feed page cache)
  4. Initialise MinIO client & bucket
  5. Start the reverse-geocoding HTTP client
  6. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from chitter.config import settings
from chitter.database import engine, init_db
from chitter.errors import register_error_handlers
from chitter.security import signing_key
from chitter.telemetry import setup_tracing, instrument_app
from chitter.clients.geocoding_client import geocoding_client
from chitter.clients.minio_client import init_minio
from chitter.clients.redis_client import close_redis, init_redis
from chitter.routers import auth, feed, posts, users

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting Chitter API (env=%s)", settings.environment)

    signing_key()                   # fail fast on a missing secret in prod
    await init_db()
    await init_redis()
    init_minio()                    # sync — boto3 is not async
    await geocoding_client.start()

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await geocoding_client.stop()
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Chitter API",
    description=(
        "Micro-post backend: identities, a follow graph, chits, "
        "and global / personal feeds."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api", tags=["Users"])
app.include_router(posts.router, prefix="/api", tags=["Chits"])
app.include_router(feed.router, prefix="/api", tags=["Feed"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
# Mounted at /metrics — scraped by Prometheus
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
