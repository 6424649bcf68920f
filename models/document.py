from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from database import Base


class LoanDocument(Base):
    __tablename__ = "loan_documents"
    __table_args__ = (UniqueConstraint("loan_id", "document_type", name="uq_loan_documents_loan_type"),)

    id = Column(String(64), primary_key=True, index=True)
    loan_id = Column(String(64), ForeignKey("loan_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    document_name = Column(String(256), nullable=False)
    document_type = Column(String(64), nullable=False)
    status = Column(String(32), nullable=False, default="missing", index=True)
    # Storage key; only set after a successful upload
    file_path = Column(String(1024), nullable=True)
    content_type = Column(String(128), nullable=True)
    file_size = Column(Integer, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    loan = relationship("LoanApplication", back_populates="documents")
