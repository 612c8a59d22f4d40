# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""SQLAlchemy engine factory and table definitions."""
from sqlalchemy import (
    Column, DateTime, ForeignKey, Index, MetaData, String, Table, Text, create_engine,
)
from sqlalchemy.engine import Engine

from app.core.config import settings

metadata = MetaData()

members = Table(
    "members", metadata,
    Column("id", String(36), primary_key=True),
    Column("external_id", String(255), nullable=False, unique=True),
    Column("name", String(256), nullable=False),
    Column("email", String(256), nullable=False, unique=True),
    Column("phone", String(15)),
    Column("avatar_url", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

delivery_requests = Table(
    "delivery_requests", metadata,
    Column("id", String(36), primary_key=True),
    Column("requester_id", String(36), ForeignKey("members.id"), nullable=False),
    Column("deliverer_id", String(36), ForeignKey("members.id")),
    Column("status", String(50), nullable=False, default="pending"),
    Column("item_description", Text, nullable=False),
    Column("item_category", String(100), nullable=False),
    Column("payment_status", String(100), nullable=False),
    Column("pickup_location", Text, nullable=False),
    Column("delivery_location", Text, nullable=False),
    Column("note", Text),
    Column("verification_code", String(4)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("accepted_at", DateTime(timezone=True)),
    Column("completed_at", DateTime(timezone=True)),
    Column("cancelled_at", DateTime(timezone=True)),
    Index("ix_delivery_requests_status_created", "status", "created_at"),
    Index("ix_delivery_requests_requester", "requester_id"),
    Index("ix_delivery_requests_deliverer", "deliverer_id"),
)

request_events = Table(
    "request_events", metadata,
    Column("id", String(36), primary_key=True),
    Column("request_id", String(36), ForeignKey("delivery_requests.id"), nullable=False),
    Column("event_type", String(50), nullable=False),
    Column("actor_id", String(36)),
    Column("detail", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_request_events_request", "request_id"),
)


def build_engine(url: str | None = None) -> Engine:
    url = url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        # Writers wait on the database lock instead of failing immediately
        return create_engine(
            url, connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.POOL_SIZE,
        max_overflow=settings.MAX_OVERFLOW,
        pool_recycle=settings.POOL_RECYCLE,
    )


def init_schema(engine: Engine) -> None:
    metadata.create_all(engine)
