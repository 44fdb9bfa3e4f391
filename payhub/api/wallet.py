from fastapi import APIRouter, HTTPException, Query, status

from payhub.api.deps import ledger_dependency
from payhub.ledger.money import format_money
from payhub.ledger.service import TransactionIntent
from payhub.schemas.transaction import TransactionCreate
from payhub.services.auth import user_id_dependency

router = APIRouter(prefix="/api")

@router.get("/balance")
def balance(ledger: ledger_dependency, user_id: user_id_dependency):
    return {"balance": format_money(ledger.get_balance(user_id))}

@router.get("/transactions")
def list_transactions(
    ledger: ledger_dependency,
    user_id: user_id_dependency,
    limit: int | None = Query(default=None, ge=1),
):
    return [tx.to_dict() for tx in ledger.list_transactions(user_id, limit)]

@router.post("/transactions", status_code=status.HTTP_201_CREATED)
def create_transaction(
    body: TransactionCreate,
    ledger: ledger_dependency,
    user_id: user_id_dependency,
):
    # The account always comes from the session, never from the body
    tx = ledger.post(TransactionIntent(
        user_id=user_id,
        amount=body.amount,
        type=body.type,
        description=body.description,
        category=body.category,
        status=body.status,
        recipient_name=body.recipient_name,
        payment_method=body.payment_method,
        card_id=body.card_id,
    ))
    return tx.to_dict()

@router.get("/qr-code")
def qr_code(ledger: ledger_dependency, user_id: user_id_dependency):
    code = ledger.get_qr_code(user_id)
    if code is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "QR code not found")
    return code.to_dict()
