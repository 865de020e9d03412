from sqlalchemy import Column, String, Integer, BigInteger, DateTime, Text

from ..database import Base
from ..utils.timeutils import utc_now


class RequestLog(Base):
    """One row per completed request. Append-only."""

    __tablename__ = "request_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Request details
    method = Column(String(10), nullable=False, index=True)
    path = Column(String(500), nullable=False, index=True)
    query_params = Column(Text)
    status_code = Column(Integer, nullable=False, index=True)

    # Client
    ip_address = Column(String(45))
    user_agent = Column(Text)
    api_key = Column(String(255), index=True)  # masked, never the full key

    response_time_ms = Column(BigInteger, nullable=False, default=0)

    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)

    def __repr__(self):
        return f"<RequestLog(id={self.id}, method='{self.method}', path='{self.path}')>"
