"""
TalkToJesus — Song Model
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Text

from app.core.database import Base


class Song(Base):
    __tablename__ = "songs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False, index=True)
    duration = Column(String(20), nullable=True)
    image_url = Column(Text, nullable=True)
    audio_url = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<Song(id={self.id}, title='{self.title}')>"
