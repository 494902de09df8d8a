import uuid
from sqlalchemy import Column, String, DateTime
from signboard.db import Base, utcnow


class DisplaySession(Base):
    __tablename__ = "display_session"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    screen_id = Column(String(36), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="open")  # open | closed
    started_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, index=True)
    closed_at = Column(DateTime, nullable=True)
    user_agent = Column(String, nullable=True)
