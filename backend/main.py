import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from config import settings
from core.exceptions import register_exception_handlers
from core.rate_limit import limiter
from database import connect_db, close_db

# Routers
from routers import admin_tokens, edi, wallets

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await connect_db()
    if not settings.TOOKAN_API_KEY:
        logger.warning("TOOKAN_API_KEY absente : les appels Tookan échoueront")
    logger.info("Tookan bridge API started")
    yield
    # Shutdown
    await close_db()
    logger.info("Tookan bridge API stopped")


app = FastAPI(
    title="Tookan bridge API",
    description="Passerelle EDI partenaires, tokens API et wallets Tookan",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Enveloppe {status: "error", message}
register_exception_handlers(app)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers partenaires (token EDI)
app.include_router(edi.router, prefix="/api/edi", tags=["EDI"])

# Routers utilisateurs internes (JWT)
app.include_router(admin_tokens.router, prefix="/api/admin/tokens", tags=["Admin Tokens"])
app.include_router(wallets.router, prefix="/api/wallets", tags=["Wallets"])


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "app": "tookan-bridge", "version": "1.0.0"}
