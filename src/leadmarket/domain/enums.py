"""Domain enumerations for the lead marketplace.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class UserRole(str, Enum):
    """Platform participant role."""

    SELLER = "seller"
    AGENT = "agent"
    ADMIN = "admin"


class PropertyType(str, Enum):
    """Kind of property a seller lists."""

    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    LAND = "land"
    APARTMENT = "apartment"


class PropertyStatus(str, Enum):
    """Lifecycle status of a property listing (lead)."""

    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    ARCHIVED = "archived"


class VerificationStatus(str, Enum):
    """Admin verification state of an agent account."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMethod(str, Enum):
    """How a payment was made."""

    ECOCASH = "ecocash"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    STRIPE = "stripe"
    BALANCE = "balance"


class PaymentStatus(str, Enum):
    """Settlement state of a payment record."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class SubscriptionType(str, Enum):
    """Agent plan type."""

    PAY_PER_LEAD = "pay_per_lead"
    UNLIMITED = "unlimited"


class LeadPurchaseStatus(str, Enum):
    """Agent-side follow-up state of a purchased lead."""

    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


class LeadFlagStatus(str, Enum):
    """Moderation state of a flag raised against a lead."""

    OPEN = "open"
    APPROVED = "approved"
    REMOVED = "removed"


class NotificationType(str, Enum):
    """Category of a user-facing notification."""

    AGENT_VERIFICATION = "agent_verification"
    NEW_PROPERTY = "new_property"
    LEAD_PURCHASE = "lead_purchase"
    SUBSCRIPTION_ACTIVATED = "subscription_activated"
    VERIFICATION_UPDATE = "verification_update"
    LEAD_FLAGGED = "lead_flagged"
    LEAD_REMOVED = "lead_removed"
