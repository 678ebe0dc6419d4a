"""
Customer database model.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from opsdesk.app.db.session import Base


class Customer(Base):
    __tablename__ = "customers"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=True)
    language_code = Column(String(5), nullable=True)
    level = Column(Integer, default=1, nullable=False)
    credit_score = Column(Integer, default=100, nullable=False)
    hashed_password = Column(String(255), nullable=True)
    is_banned = Column(Boolean, default=False, nullable=False, index=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Customer(id={self.id}, username='{self.username}', banned={self.is_banned})>"
