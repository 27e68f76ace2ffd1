"""Daily wallpaper history model."""

from sqlalchemy import Column, Date, DateTime, String
from sqlalchemy.sql import func
import uuid

from database import Base


class WallpaperHistory(Base):
    """One row per calendar date recording the daily image and its origin."""

    __tablename__ = "wallpaper_history"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    used_date = Column(Date, nullable=False, unique=True, index=True)
    url = Column(String, nullable=False)
    source = Column(String, nullable=False)
    title = Column(String, nullable=True)
    copyright = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
