import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from omnichat.ai.gateway import build_response_generator
from omnichat.channels.service import build_channel_service
from omnichat.core.config import CORS_ORIGINS, DATABASE_URL, ENV
from omnichat.core.database import Base, engine
from omnichat.core.error_handlers import register_exception_handlers
from omnichat.core.logging_setup import configure_logging
from omnichat.middleware.observability import ObservabilityMiddleware
import omnichat.models  # registers every model before create_all

from omnichat.routers.appointments import router as appointments_router
from omnichat.routers.catalog import router as catalog_router
from omnichat.routers.conversations import router as conversations_router
from omnichat.routers.orders import router as orders_router
from omnichat.routers.realtime import router as realtime_router
from omnichat.routers.support import router as support_router
from omnichat.routers.webhook import router as webhook_router
from omnichat.services.orchestrator import ConversationOrchestrator
from omnichat.services.realtime import RealtimeHub
from omnichat.services.tenant_resolver import TenantResolver

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"


def _startup_tasks() -> None:
    try:
        logger.info("%s env=%s database=%s", STARTUP_PREFIX, ENV, DATABASE_URL.split("://")[0])
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Omnichat API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)
register_exception_handlers(app)

app.state.realtime = RealtimeHub()
app.state.orchestrator = ConversationOrchestrator(
    generator=build_response_generator(),
    realtime=app.state.realtime,
    channels=build_channel_service(),
    tenant_resolver=TenantResolver.from_env(),
)

# Routers
app.include_router(webhook_router)
app.include_router(conversations_router)
app.include_router(support_router)
app.include_router(catalog_router)
app.include_router(orders_router)
app.include_router(appointments_router)
app.include_router(realtime_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
