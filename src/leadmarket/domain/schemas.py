"""Pydantic v2 schemas for API request/response validation.

The JSON surface is camelCase (``propertyId``, ``expiresAt``); request bodies
also accept the snake_case field names.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from leadmarket.domain.enums import (
    LeadPurchaseStatus,
    PaymentMethod,
    PropertyStatus,
    PropertyType,
    SubscriptionType,
    UserRole,
    VerificationStatus,
)


class APIModel(BaseModel):
    """Base model: camelCase aliases, ORM attribute loading."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(APIModel):
    """Schema for registering a seller or agent."""

    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6)
    confirm_password: str
    email: EmailStr
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone: str = Field(min_length=9)
    role: UserRole
    whatsapp_preferred: bool = False
    agency_name: str | None = None
    license_document: str | None = None

    @field_validator("role")
    @classmethod
    def _no_self_service_admin(cls, value: UserRole) -> UserRole:
        if value == UserRole.ADMIN:
            raise ValueError("Admin accounts cannot be self-registered")
        return value

    @model_validator(mode="after")
    def _check_consistency(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        if self.role == UserRole.AGENT and not (self.agency_name and self.license_document):
            raise ValueError("Agency name and license document are required for agents")
        return self


class LoginRequest(APIModel):
    """Schema for user login."""

    username: str
    password: str


class UserResponse(APIModel):
    """User as returned by the API (never includes the password hash)."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    phone: str
    role: str
    whatsapp_preferred: bool | None = False
    created_at: datetime


class UserUpdate(APIModel):
    """Schema for updating the caller's own profile."""

    first_name: str | None = Field(default=None, min_length=1)
    last_name: str | None = Field(default=None, min_length=1)
    phone: str | None = Field(default=None, min_length=9)
    whatsapp_preferred: bool | None = None


class AgentStatusResponse(APIModel):
    status: str


# ---------------------------------------------------------------------------
# Agent profiles
# ---------------------------------------------------------------------------


class AgentProfileResponse(APIModel):
    id: int
    user_id: int
    agency_name: str
    license_document: str
    verification_status: str
    verification_date: datetime | None = None
    verification_note: str | None = None
    rating: int | None = None
    balance: float


class PendingAgentResponse(AgentProfileResponse):
    """Pending verification request with the applicant's account."""

    user: UserResponse


class VerificationDecision(APIModel):
    """Admin decision on an agent verification request."""

    status: VerificationStatus
    note: str | None = None

    @field_validator("status")
    @classmethod
    def _decided(cls, value: VerificationStatus) -> VerificationStatus:
        if value == VerificationStatus.PENDING:
            raise ValueError("Valid status (approved or rejected) is required")
        return value


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class PropertyCreate(APIModel):
    """Seller-submitted listing fields."""

    type: PropertyType
    location: str = Field(min_length=1)
    address: str | None = None
    price: float = Field(gt=0)
    size: float | None = Field(default=None, ge=0)
    description: str = Field(min_length=10)
    photos: list[str] = []


class PropertyResponse(APIModel):
    id: int
    seller_id: int
    type: str
    location: str
    address: str | None = None
    price: float
    size: float | None = None
    description: str
    photos: list[str] | None = None
    status: str
    is_verified: bool | None = False
    removal_reason: str | None = None
    created_at: datetime
    expires_at: datetime | None = None


class SellerContact(APIModel):
    """Seller block of a property detail; email/phone may be masked."""

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    whatsapp_preferred: bool | None = False


class PropertyDetailResponse(PropertyResponse):
    seller: SellerContact
    purchased: bool = False


class PropertyStatusUpdate(APIModel):
    status: PropertyStatus


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------


class LeadPurchaseRequest(APIModel):
    """Body of a lead purchase; presence is checked by the purchase flow."""

    property_id: int | None = None
    price: float | None = Field(default=None, gt=0)


class LeadPurchaseResponse(APIModel):
    id: int
    agent_id: int
    property_id: int
    purchase_date: datetime
    price: float
    contacted: bool | None = False
    status: str | None = None
    seller_rating: int | None = None
    feedback: str | None = None


class LeadPurchaseWithProperty(LeadPurchaseResponse):
    property: PropertyResponse


class LeadUpdate(APIModel):
    """Agent follow-up on a purchased lead."""

    contacted: bool | None = None
    status: LeadPurchaseStatus | None = None
    seller_rating: int | None = Field(default=None, ge=1, le=5)
    feedback: str | None = None


class LeadFlagRequest(APIModel):
    reason: str = Field(min_length=1, max_length=100)
    note: str | None = None


class LeadFlagResponse(APIModel):
    id: int
    property_id: int
    lead_purchase_id: int | None = None
    reporter_id: int | None = None
    reason: str
    note: str | None = None
    status: str
    created_at: datetime
    resolved_at: datetime | None = None
    resolved_by: int | None = None
    resolution_note: str | None = None


class FlaggedLeadResponse(LeadFlagResponse):
    """Open flag as shown in the moderation queue."""

    flag_source: str  # "agent" or "system"
    reporter_name: str | None = None
    seller_name: str | None = None
    property: PropertyResponse


class FlagResolution(APIModel):
    note: str | None = None


class LeadRemovalRequest(APIModel):
    reason: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Subscriptions / Billing
# ---------------------------------------------------------------------------


class SubscriptionRequest(APIModel):
    type: SubscriptionType
    price: float = Field(gt=0)
    months: int = Field(ge=1, le=36)


class SubscriptionResponse(APIModel):
    id: int
    agent_id: int
    type: str
    price: float
    start_date: datetime
    end_date: datetime
    is_active: bool | None = True
    auto_renew: bool | None = True


class CheckoutRequest(APIModel):
    """Start of an external subscription payment."""

    plan_type: SubscriptionType
    price: float = Field(gt=0)
    months: int = Field(default=1, ge=1, le=36)


class CheckoutResponse(APIModel):
    client_secret: str


class BillingConfigResponse(APIModel):
    publishable_key: str


class WebhookAck(APIModel):
    received: bool = True
    duplicate: bool = False


class PaymentCreate(APIModel):
    """Balance top-up."""

    amount: float = Field(gt=0)
    method: PaymentMethod
    description: str | None = None

    @field_validator("method")
    @classmethod
    def _external_method(cls, value: PaymentMethod) -> PaymentMethod:
        if value == PaymentMethod.BALANCE:
            raise ValueError("Balance cannot be topped up from itself")
        return value


class PaymentResponse(APIModel):
    id: int
    user_id: int
    amount: float
    method: str
    status: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime
    subscription_id: int | None = None
    lead_purchase_id: int | None = None


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationResponse(APIModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    read: bool | None = False
    created_at: datetime
    link_url: str | None = None


class MarkAllReadResponse(APIModel):
    updated: int


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class StatsResponse(APIModel):
    pending_agents: int
    active_leads: int
    lead_purchases: int
    total_revenue: float
    flagged_leads: int


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
