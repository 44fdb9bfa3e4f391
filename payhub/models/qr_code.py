from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey

from payhub.db.base import Base

class QrCode(Base):
    __tablename__ = "qr_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    qr_string = Column(String, nullable=False, unique=True)  # payhub:user:{id}:{ms}
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
