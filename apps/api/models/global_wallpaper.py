"""Global wallpaper configuration model."""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from database import Base


class GlobalWallpaper(Base):
    """Site-wide wallpaper settings; the table holds a single logical row."""

    __tablename__ = "global_wallpapers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    mode = Column(String, nullable=False, default="website")
    website_url = Column(String, nullable=False)
    daily_url = Column(String, nullable=False, default="")
    # JSON array; legacy rows may hold a comma separated string
    random_urls = Column(Text, nullable=False, default="[]")
    shuffled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
