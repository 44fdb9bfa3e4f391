from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, CheckConstraint, Index

from payhub.db.base import Base

class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        # Direction lives in `type`, the amount is always positive
        CheckConstraint("amount > 0", name="ck_transactions_positive_amount"),
        Index("ix_transactions_user_date", "user_id", "date", "id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String(10), nullable=False)  # credit, debit
    description = Column(String, nullable=False)
    category = Column(String(50), nullable=False)  # payment, bill, shopping, transfer
    recipient_name = Column(String, nullable=True)
    status = Column(String(20), nullable=False)  # completed, processing, failed

    date = Column(DateTime(timezone=True), nullable=False)

    payment_method = Column(String(20), nullable=True)  # card, qr, bank, direct
    # Plain reference so deleting a card never rewrites history
    card_id = Column(Integer, nullable=True)
