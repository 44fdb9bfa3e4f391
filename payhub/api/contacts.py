from fastapi import APIRouter, status

from payhub.api.deps import ledger_dependency
from payhub.schemas.contact import ContactCreate
from payhub.services.auth import user_id_dependency

router = APIRouter(prefix="/api/contacts")

@router.get("")
def list_contacts(ledger: ledger_dependency, user_id: user_id_dependency):
    return [contact.to_dict() for contact in ledger.list_contacts(user_id)]

@router.post("", status_code=status.HTTP_201_CREATED)
def add_contact(body: ContactCreate, ledger: ledger_dependency, user_id: user_id_dependency):
    return ledger.add_contact(user_id, body.contact_user_id).to_dict()
