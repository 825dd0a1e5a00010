"""
Account API endpoints.
Out-of-band account provisioning and balance queries; payments never
create accounts.
"""

from fastapi import APIRouter, Depends, status

from app.api.deps import get_ledger_store
from app.core.errors import AccountNotFoundError, PersistenceError, ValidationError
from app.schemas.account import AccountCreate, AccountResponse, AccountBalance
from app.store.base import AccountExistsError, LedgerStore, RecordNotFoundError, StoreError

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("/", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    account_data: AccountCreate,
    store: LedgerStore = Depends(get_ledger_store)
):
    """
    Create a new account.

    - **account_id**: Unique identifier for the account
    - **initial_balance**: Starting balance (default: 0.00)
    """
    try:
        account = store.create_account(account_data.account_id, account_data.initial_balance)
    except AccountExistsError as e:
        raise ValidationError(f"Account {account_data.account_id} already exists") from e
    except StoreError as e:
        raise PersistenceError() from e

    return AccountResponse.model_validate(account)


@router.get("/{account_id}/balance", response_model=AccountBalance)
def get_account_balance(
    account_id: str,
    store: LedgerStore = Depends(get_ledger_store)
):
    """
    Get account balance.
    """
    try:
        account = store.get_account(account_id)
    except RecordNotFoundError as e:
        raise AccountNotFoundError() from e
    except StoreError as e:
        raise PersistenceError() from e

    return AccountBalance(
        account_id=account.account_id,
        balance=account.balance
    )
