from typing import Annotated
from passlib.context import CryptContext
from fastapi import Depends, Request, HTTPException, status

from payhub.api.deps import ledger_dependency
from payhub.ledger.errors import AccountNotFound
from payhub.ledger.records import AccountRecord

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def require_user(request: Request) -> int:
    user_id = request.session.get("user_id")
    if user_id is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
    try:
        return int(user_id)
    except (TypeError, ValueError):
        request.session.clear()
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid session")


def get_current_user(
    ledger: ledger_dependency,
    user_id: Annotated[int, Depends(require_user)],
) -> AccountRecord:
    try:
        return ledger.get_account(user_id)
    except AccountNotFound:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "User not found")

# Define reusable types
user_id_dependency = Annotated[int, Depends(require_user)]
current_user_dependency = Annotated[AccountRecord, Depends(get_current_user)]
