import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from blogrpc.cache import cache
from blogrpc.config import settings
from blogrpc.database import Database
from blogrpc.errors import DatabaseUnavailableError, InvalidIdentityError
from blogrpc.middleware import RequestTimingMiddleware
from blogrpc.routers import auth, blog

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if not app.state.database.url:
        logger.warning("DATABASE_URL not set; reads return empty results and writes fail")
    await cache.connect()
    yield
    # Shutdown
    await cache.disconnect()
    await app.state.database.dispose()

app = FastAPI(
    title="Blog RPC API",
    description="Typed procedures for reading and administering blog posts",
    version="1.0.0",
    lifespan=lifespan,
)

# The engine is created lazily on the first request that needs it.
app.state.database = Database(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,
)

# Middleware
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth.router)
app.include_router(blog.router)

# Error mapping
@app.exception_handler(DatabaseUnavailableError)
async def database_unavailable_handler(request: Request, exc: DatabaseUnavailableError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})

@app.exception_handler(InvalidIdentityError)
async def invalid_identity_handler(request: Request, exc: InvalidIdentityError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})

@app.get("/health")
async def health(request: Request):
    return {
        "status": "healthy",
        "version": "1.0.0",
        "database": request.app.state.database.available,
    }
