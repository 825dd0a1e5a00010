"""
Pydantic schemas for Payment API requests and responses.
"""

from pydantic import BaseModel, Field, ConfigDict, field_serializer
from decimal import Decimal


class PaymentRequest(BaseModel):
    """Schema for posting a debit or credit. The type is sent as ?type=."""
    account_id: str = Field(..., min_length=1, max_length=50, description="Account to debit or credit")
    reference: str = Field(..., min_length=1, max_length=100, description="Unique payment reference")
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2, description="Payment amount (must be positive)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "account_id": "acc_001",
                "reference": "ref-001",
                "amount": 1.50
            }
        }
    )


class PaymentResponse(BaseModel):
    """Schema for payment response."""
    account_id: str
    reference: str
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)


class ErrorResponse(BaseModel):
    """Schema for every error response."""
    errorMessage: str
