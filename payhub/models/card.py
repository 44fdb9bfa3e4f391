from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Index, text

from payhub.db.base import Base

class Card(Base):
    __tablename__ = "cards"
    __table_args__ = (
        # At most one default card per user
        Index(
            "uq_cards_one_default_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("is_default"),
            postgresql_where=text("is_default"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    card_number = Column(String(19), nullable=False)
    cardholder_name = Column(String, nullable=False)
    expiry_date = Column(String(7), nullable=False)  # MM/YY
    cvv = Column(String(4), nullable=False)
    card_type = Column(String(20), nullable=False)  # visa, mastercard, etc.
    is_default = Column(Boolean, nullable=False, default=False)
