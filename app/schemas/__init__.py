"""
Pydantic schemas package.
"""

from app.schemas.account import AccountCreate, AccountResponse, AccountBalance
from app.schemas.payment import PaymentRequest, PaymentResponse, ErrorResponse

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "AccountBalance",
    "PaymentRequest",
    "PaymentResponse",
    "ErrorResponse"
]
