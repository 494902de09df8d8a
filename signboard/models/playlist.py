import uuid
from sqlalchemy import Column, String, DateTime, JSON
from signboard.db import Base, utcnow


class Playlist(Base):
    __tablename__ = "playlist"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    media_item_ids = Column(JSON, nullable=False, default=list)  # ordered, defines playback order
    user_id = Column(String(128), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
