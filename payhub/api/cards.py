from fastapi import APIRouter, status

from payhub.api.deps import ledger_dependency
from payhub.ledger.records import NewCard
from payhub.schemas.card import CardCreate
from payhub.services.auth import user_id_dependency

router = APIRouter(prefix="/api/cards")

@router.get("")
def list_cards(ledger: ledger_dependency, user_id: user_id_dependency):
    return [card.to_dict() for card in ledger.list_cards(user_id)]

@router.post("", status_code=status.HTTP_201_CREATED)
def add_card(body: CardCreate, ledger: ledger_dependency, user_id: user_id_dependency):
    card = ledger.add_card(NewCard(
        user_id=user_id,
        card_number=body.card_number,
        cardholder_name=body.cardholder_name,
        expiry_date=body.expiry_date,
        cvv=body.cvv,
        card_type=body.card_type,
        is_default=body.is_default,
    ))
    return card.to_dict()

@router.delete("/{card_id}")
def delete_card(card_id: int, ledger: ledger_dependency, user_id: user_id_dependency):
    ledger.delete_card(user_id, card_id)
    return {"message": "Card deleted successfully"}

@router.post("/{card_id}/default")
def set_default_card(card_id: int, ledger: ledger_dependency, user_id: user_id_dependency):
    card = ledger.set_default_card(user_id, card_id)
    return card.to_dict()
