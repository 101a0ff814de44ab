from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from consultations.auth.dependencies import get_current_user
from consultations.core.clients import get_lifecycle
from consultations.models.user import User
from consultations.routes.appointment_routes import AppointmentActionResponse, AppointmentResponse
from consultations.services.lifecycle import AppointmentLifecycle

router = APIRouter(tags=['payments'])


class CreateOrderRequest(BaseModel):
    appointment_id: int


class VerifyPaymentRequest(BaseModel):
    appointment_id: int
    order_id: str
    payment_id: str
    signature: str = ''

    @field_validator('order_id', 'payment_id')
    @classmethod
    def validate_identifier(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Payment identifiers are required.')
        return normalized


class PaymentFailedRequest(BaseModel):
    appointment_id: int
    error: str | None = None


class OrderResponse(BaseModel):
    success: bool = True
    order_id: str
    amount: int
    currency: str
    receipt: str
    appointment: AppointmentResponse


@router.post('/create-order', response_model=OrderResponse)
def create_order(
    data: CreateOrderRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.create_payment_order(data.appointment_id, current_user)
    return OrderResponse(
        order_id=result.order.order_id,
        amount=result.order.amount,
        currency=result.order.currency,
        receipt=result.order.receipt,
        appointment=AppointmentResponse.from_appointment(result.appointment),
    )


@router.post('/verify', response_model=AppointmentActionResponse)
def verify_payment(
    data: VerifyPaymentRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.verify_payment(
        data.appointment_id,
        current_user,
        data.order_id,
        data.payment_id,
        data.signature,
    )
    return AppointmentActionResponse.from_result(result, 'Payment verified successfully')


@router.post('/failed', response_model=AppointmentActionResponse)
def payment_failed(
    data: PaymentFailedRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.record_payment_failure(data.appointment_id, current_user)
    return AppointmentActionResponse.from_result(result, 'Payment failure recorded')
