"""Payment routes: balance top-up and history."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leadmarket.app.routes.auth import get_current_user_dep
from leadmarket.domain.models import User
from leadmarket.domain.schemas import PaymentCreate, PaymentResponse
from leadmarket.infra.database import get_db
from leadmarket.services.billing_service import BillingService

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("", response_model=PaymentResponse, status_code=201)
async def create_payment(
    data: PaymentCreate,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    payment = await BillingService(db).top_up(user, data.amount, data.method, data.description)
    return PaymentResponse.model_validate(payment)


@router.get("/history", response_model=list[PaymentResponse])
async def payment_history(
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    payments = await BillingService(db).payment_history(user.id)
    return [PaymentResponse.model_validate(p) for p in payments]
