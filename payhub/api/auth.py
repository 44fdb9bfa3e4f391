import logging

from fastapi import APIRouter, HTTPException, Request, status

from payhub.api.deps import ledger_dependency
from payhub.core.config import settings
from payhub.ledger.records import AccountUpdate, NewAccount
from payhub.schemas.auth import LoginSchema, ProfileUpdate, RegisterSchema
from payhub.services.auth import current_user_dependency, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
def register(request: Request, form: RegisterSchema, ledger: ledger_dependency):
    # A taken username or email raises DuplicateAccount (409)
    user = ledger.open_account(
        NewAccount(
            username=form.username,
            email=form.email,
            first_name=form.first_name,
            last_name=form.last_name,
            hashed_password=hash_password(form.password),
            phone=form.phone,
            address=form.address,
        ),
        opening_balance=settings.SIGNUP_BALANCE,
    )

    request.session["user_id"] = user.id
    return {"user": user.to_dict()}

@router.post("/auth/login")
def login(request: Request, form: LoginSchema, ledger: ledger_dependency):
    user = ledger.find_account(form.username)

    if not user or not verify_password(form.password, user.hashed_password):
        logger.info("Failed login for %r", form.username)
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid username or password")

    request.session["user_id"] = user.id
    return {"user": user.to_dict()}

@router.post("/auth/logout")
def logout(request: Request):
    request.session.clear()
    return {"message": "Logged out successfully"}

@router.get("/auth/session")
def session(user: current_user_dependency):
    return {"user": user.to_dict()}

@router.get("/profile")
def profile(user: current_user_dependency):
    return user.to_dict()

@router.put("/profile")
def update_profile(body: ProfileUpdate, ledger: ledger_dependency, user: current_user_dependency):
    # Only these fields are editable; anything else in the body is ignored
    updated = ledger.update_profile(user.id, AccountUpdate(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone=body.phone,
        address=body.address,
    ))
    return updated.to_dict()
