from sqlalchemy import Column, String, DateTime
from signboard.db import Base, utcnow


class User(Base):
    __tablename__ = "user_profile"
    id = Column(String(128), primary_key=True)  # uid issued by the identity provider
    display_name = Column(String, nullable=False, default="Anonymous")
    email = Column(String, nullable=False, default="")
    created_at = Column(DateTime, default=utcnow)
