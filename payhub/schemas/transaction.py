from pydantic import Field, StrictFloat, StrictInt, StrictStr

from payhub.schemas.auth import CamelModel

class TransactionCreate(CamelModel):
    """Request body for posting a transaction.

    Amount, kind and status are checked by the ledger, not here, so every
    caller gets the same rules. The amount types are strict, so a JSON
    boolean is rejected instead of becoming 0 or 1.
    """
    amount: StrictStr | StrictInt | StrictFloat
    type: str
    description: str
    category: str
    status: str | None = None
    recipient_name: str | None = Field(default=None, alias="recipientName")
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    card_id: int | None = Field(default=None, alias="cardId")
