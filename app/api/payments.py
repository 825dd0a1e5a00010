"""
Payment API endpoints.
Posts debits and credits and resolves payments by reference.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_payment_engine, get_payment_query
from app.schemas.payment import ErrorResponse, PaymentRequest, PaymentResponse
from app.services.payments import PaymentEngine, PaymentQueryService

router = APIRouter(prefix="/payments", tags=["Payments"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("", response_model=PaymentResponse, responses=ERROR_RESPONSES)
def post_payment(
    payment_data: PaymentRequest,
    payment_type: Optional[str] = Query(None, alias="type", description="debit or credit"),
    engine: PaymentEngine = Depends(get_payment_engine)
):
    """
    Debit or credit an account.

    - **type** (query): `debit` or `credit`
    - **account_id**: Account to move money on
    - **reference**: Unique payment reference; resubmitting the same payment
      returns the original result without moving money again
    - **amount**: Payment amount (must be positive)
    """
    result = engine.post_payment(
        account_id=payment_data.account_id,
        reference=payment_data.reference,
        amount=payment_data.amount,
        kind=payment_type,
    )
    return PaymentResponse.model_validate(result)


@router.get("/{reference}", response_model=PaymentResponse, responses=ERROR_RESPONSES)
def get_payment(
    reference: str,
    query: PaymentQueryService = Depends(get_payment_query)
):
    """
    Get payment details by reference.
    """
    return PaymentResponse.model_validate(query.get_payment(reference))
