from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..dependencies import get_ledger
from ..ledger import CreditLedger

router = APIRouter(
    prefix="/credits",
    tags=["credits"]
)


class TopUpRequest(BaseModel):
    amount: int = Field(gt=0)
    description: str = "Credit purchase"


@router.get("/{user_id}")
def get_balance(user_id: str, ledger: CreditLedger = Depends(get_ledger)):
    return {"user_id": user_id, "credits": ledger.get_balance(user_id)}


@router.post("/{user_id}")
def add_credits(user_id: str, request: TopUpRequest, ledger: CreditLedger = Depends(get_ledger)):
    """Record a completed purchase. Payment capture happens upstream."""
    balance = ledger.add_credits(user_id, request.amount, request.description)
    return {
        "user_id": user_id,
        "credits": balance,
        "message": f"{request.amount} credit{'s' if request.amount != 1 else ''} added to your account!"
    }


@router.get("/{user_id}/transactions")
def list_transactions(user_id: str, ledger: CreditLedger = Depends(get_ledger)):
    return ledger.list_transactions(user_id)


@router.get("/{user_id}/scans")
def list_scans(user_id: str, ledger: CreditLedger = Depends(get_ledger)):
    return ledger.list_scans(user_id)
