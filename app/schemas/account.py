"""
Pydantic schemas for Account API requests and responses.
"""

from pydantic import BaseModel, Field, ConfigDict, field_serializer
from decimal import Decimal
from datetime import datetime


class AccountCreate(BaseModel):
    """Schema for creating a new account."""
    account_id: str = Field(..., min_length=1, max_length=50, description="Unique account identifier")
    initial_balance: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=15, decimal_places=2, description="Initial account balance")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "account_id": "acc_001",
                "initial_balance": 10.00
            }
        }
    )


class AccountResponse(BaseModel):
    """Schema for account response."""
    account_id: str
    balance: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("balance")
    def serialize_balance(self, balance: Decimal) -> float:
        return float(balance)


class AccountBalance(BaseModel):
    """Schema for account balance response."""
    account_id: str
    balance: Decimal

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("balance")
    def serialize_balance(self, balance: Decimal) -> float:
        return float(balance)
