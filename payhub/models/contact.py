from sqlalchemy import Column, Integer, DateTime, ForeignKey

from payhub.db.base import Base

class Contact(Base):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    contact_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    last_paid = Column(DateTime(timezone=True), nullable=True)
