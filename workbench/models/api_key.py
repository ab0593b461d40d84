"""
API key model for provider credentials.
"""
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Integer, String

from workbench.models.base import Base


class ApiKey(Base):
    """A provider credential. The first key registered becomes the default."""
    __tablename__ = 'api_keys'

    id = Column(Integer, primary_key=True, autoincrement=True)
    platform = Column(String(50), nullable=False, default='minimax')
    key = Column(String(255), nullable=False)
    remark = Column(String(255), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<ApiKey {self.id} platform={self.platform} default={self.is_default}>'
