from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from database import Base


class LoanApplication(Base):
    __tablename__ = "loan_applications"

    id = Column(String(64), primary_key=True, index=True)
    reference_number = Column(String(32), unique=True, nullable=False, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    loan_type = Column(String(128), nullable=False)
    loan_amount = Column(Float, nullable=False)
    purpose = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default="submitted", index=True)
    # 1..5, set independently of status
    current_stage = Column(Integer, nullable=False, default=1)
    last_action = Column(Text, nullable=True)
    last_action_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    documents = relationship(
        "LoanDocument",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="LoanDocument.created_at",
    )
