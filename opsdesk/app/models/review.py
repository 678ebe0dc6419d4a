"""
Customer review model.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from opsdesk.app.db.session import Base
from opsdesk.app.models.enums import enum_values
import enum


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Review(Base):
    __tablename__ = "reviews"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=False, index=True)
    
    rating = Column(Integer, nullable=False)
    content = Column(Text, nullable=True)
    
    status = Column(Enum(ReviewStatus, values_callable=enum_values, name="review_status"), default=ReviewStatus.PENDING, nullable=False, index=True)
    level = Column(Integer, default=0, nullable=False)  # display weight, 0-9
    reject_reason = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("admin_profiles.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Review(id={self.id}, rating={self.rating}, status='{self.status.value}')>"
