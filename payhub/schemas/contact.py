from pydantic import Field

from payhub.schemas.auth import CamelModel

class ContactCreate(CamelModel):
    contact_user_id: int = Field(alias="contactUserId", gt=0)
