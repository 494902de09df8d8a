import uuid
from sqlalchemy import Column, String, DateTime, JSON
from signboard.db import Base, utcnow


class Screen(Base):
    __tablename__ = "screen"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    # [{"playlist_id", "day_of_week": [0..6], "start_time": "HH:MM", "end_time": "HH:MM"}]
    assignments = Column(JSON, nullable=False, default=list)
    user_id = Column(String(128), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
