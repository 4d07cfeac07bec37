"""SQLAlchemy ORM models for the lead marketplace.

All models use SQLite-compatible types:
- Integer autoincrement primary keys
- JSON for structured data (no JSONB)
- DateTime for timestamps, stored as naive UTC
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from leadmarket.domain.timeutil import utcnow
from leadmarket.infra.database import Base


# ---------------------------------------------------------------------------
# Auth / User
# ---------------------------------------------------------------------------


class User(Base):
    """Platform participant: seller, agent or admin."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, index=True)  # seller, agent, admin
    whatsapp_preferred = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    agent_profile = relationship("AgentProfile", back_populates="user", uselist=False)
    properties = relationship("Property", back_populates="seller")


class UserSession(Base):
    """Server-side login session; the cookie only carries a signed reference."""

    __tablename__ = "user_sessions"

    id = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)


class AgentProfile(Base):
    """Agent-specific metadata, 1:1 with an agent User."""

    __tablename__ = "agent_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    agency_name = Column(String(255), nullable=False)
    license_document = Column(Text, nullable=False)
    verification_status = Column(String(20), nullable=False, default="pending", index=True)
    verification_date = Column(DateTime, nullable=True)
    verification_note = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)
    balance = Column(Float, nullable=False, default=0.0)

    user = relationship("User", back_populates="agent_profile")


# ---------------------------------------------------------------------------
# Marketplace
# ---------------------------------------------------------------------------


class Property(Base):
    """A seller's listing (a lead agents can unlock)."""

    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    seller_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # residential, commercial, land, apartment
    location = Column(String(255), nullable=False, index=True)
    address = Column(String(500), nullable=True)
    price = Column(Float, nullable=False)
    size = Column(Float, nullable=True)
    description = Column(Text, nullable=False)
    photos = Column(JSON, default=list)
    status = Column(String(20), nullable=False, default="pending", index=True)
    is_verified = Column(Boolean, default=False)
    removal_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    seller = relationship("User", back_populates="properties")
    purchases = relationship("LeadPurchase", back_populates="property")
    flags = relationship("LeadFlag", back_populates="property")


class LeadPurchase(Base):
    """An agent's unlock of a property's seller contact details."""

    __tablename__ = "lead_purchases"
    __table_args__ = (
        UniqueConstraint("agent_id", "property_id", name="uq_lead_purchase_agent_property"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    agent_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    purchase_date = Column(DateTime, default=utcnow, nullable=False)
    price = Column(Float, nullable=False)
    contacted = Column(Boolean, default=False)
    status = Column(String(20), default="pending")
    seller_rating = Column(Integer, nullable=True)
    feedback = Column(Text, nullable=True)

    property = relationship("Property", back_populates="purchases")
    agent = relationship("User")


class LeadFlag(Base):
    """A report that a listing is suspicious, duplicated or otherwise invalid."""

    __tablename__ = "lead_flags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    lead_purchase_id = Column(Integer, ForeignKey("lead_purchases.id"), nullable=True)
    reporter_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # NULL = system
    reason = Column(String(100), nullable=False)
    note = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="open", index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolution_note = Column(Text, nullable=True)

    property = relationship("Property", back_populates="flags")
    reporter = relationship("User", foreign_keys=[reporter_id])


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


class Subscription(Base):
    """Agent's time-boxed plan."""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    agent_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # pay_per_lead, unlimited
    price = Column(Float, nullable=False)
    start_date = Column(DateTime, default=utcnow, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    auto_renew = Column(Boolean, default=True)


class Payment(Base):
    """Financial transaction record: top-up, lead purchase or subscription charge."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    method = Column(String(20), nullable=False)
    status = Column(String(20), default="pending")
    reference_id = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=True)
    lead_purchase_id = Column(Integer, ForeignKey("lead_purchases.id"), nullable=True)


class ProcessedWebhookEvent(Base):
    """Payment processor event ids already applied, for replay protection."""

    __tablename__ = "processed_webhook_events"

    event_id = Column(String(255), primary_key=True)
    event_type = Column(String(100), nullable=False)
    processed_at = Column(DateTime, default=utcnow, nullable=False)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    """User-facing alert."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)
    read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    link_url = Column(String(500), nullable=True)
