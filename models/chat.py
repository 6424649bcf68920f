from sqlalchemy import Column, DateTime, Integer, String, Text, func

from database import Base


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    # Monotonic id doubles as the polling cursor
    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, index=True)
    sender_type = Column(String(16), nullable=False)
    sender_name = Column(String(256), nullable=True)
    sender_email = Column(String(320), nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
