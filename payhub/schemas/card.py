from pydantic import Field, field_validator

from payhub.schemas.auth import CamelModel

class CardCreate(CamelModel):
    card_number: str = Field(alias="cardNumber")
    cardholder_name: str = Field(alias="cardholderName", min_length=1, max_length=100)
    expiry_date: str = Field(alias="expiryDate", pattern=r"^(0[1-9]|1[0-2])/\d{2}$")
    cvv: str = Field(pattern=r"^\d{3,4}$")
    card_type: str = Field(alias="cardType", min_length=1, max_length=20)
    is_default: bool = Field(default=False, alias="isDefault")

    @field_validator("card_number")
    @classmethod
    def validate_card_number(cls, card_number: str):
        digits = card_number.replace(" ", "").replace("-", "")
        if not digits.isdigit() or not 12 <= len(digits) <= 19:
            raise ValueError("Card number must be 12 to 19 digits")
        return digits

    @field_validator("card_type")
    @classmethod
    def normalize_card_type(cls, card_type: str):
        return card_type.lower()
