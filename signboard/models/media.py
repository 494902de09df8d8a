import uuid
from sqlalchemy import Column, String, Integer, DateTime
from signboard.db import Base, utcnow


class MediaItem(Base):
    __tablename__ = "media_item"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    type = Column(String, nullable=False)  # image | video
    url = Column(String, nullable=False)
    duration = Column(Integer, nullable=True)  # seconds, images only
    user_id = Column(String(128), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
