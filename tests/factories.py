"""Database and collaborator builders shared by the tests."""
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from omnichat.ai.gateway import ResponseGenerator
from omnichat.channels.mock_provider import MockChannelAdapter
from omnichat.channels.service import ChannelService
from omnichat.core.database import Base
from omnichat.core.rate_limiter import ConversationThrottle
import omnichat.models  # registers every table for create_all
from omnichat.models.product import Product
from omnichat.models.tenant import Tenant
from omnichat.models.user import User
from omnichat.services.orchestrator import ConversationOrchestrator
from omnichat.services.realtime import RealtimeHub
from omnichat.services.tenant_resolver import TenantResolver
from tests.fixtures_data import OWNER_USER, WIDGET_PRODUCT


def build_session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def seed_shop(db, *, business_type: str = "product", with_widget: bool = True):
    db.add(Tenant(id=1, name="Widget World", owner_email="owner@example.com", business_type=business_type))
    db.add(Tenant(id=2, name="Other Shop", owner_email="other@example.com"))
    db.add(User(**OWNER_USER))
    if with_widget:
        product = dict(WIDGET_PRODUCT)
        product["price"] = Decimal(product["price"])
        product["cost"] = Decimal(product["cost"])
        db.add(Product(**product))
    db.commit()


async def _no_sleep(_seconds: float) -> None:
    return None


class ScriptedBackend:
    """Completion backend returning scripted replies; exceptions are raised."""

    name = "scripted"

    def __init__(self, replies=None, default: str = "Happy to help!"):
        self.replies = list(replies or [])
        self.default = default
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingConnection:
    def __init__(self):
        self.sent: list[str] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(data)


def build_orchestrator(session_factory, backend=None, resolver=None):
    backend = backend or ScriptedBackend()
    generator = ResponseGenerator(
        backend,
        throttle=ConversationThrottle(min_interval_seconds=0),
        sleep=_no_sleep,
    )
    adapter = MockChannelAdapter()
    orchestrator = ConversationOrchestrator(
        generator=generator,
        realtime=RealtimeHub(),
        channels=ChannelService(adapter),
        tenant_resolver=resolver or TenantResolver({"waba-123": 1, "page-1": 1}),
        session_factory=session_factory,
    )
    return orchestrator, backend, adapter
