"""API Key model."""

from sqlalchemy import Column, String, Integer, Boolean, DateTime

from ..database import Base
from ..utils.timeutils import utc_now


class APIKey(Base):
    """API Key model for client authentication."""

    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    last_used_at = Column(DateTime)

    def __repr__(self):
        return f"<APIKey(id={self.id}, name='{self.name}')>"
