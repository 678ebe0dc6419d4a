"""
Order database model.

The back office only reads orders; monitoring derives an abnormal flag
from status and checkpoint timestamps.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from opsdesk.app.db.session import Base
from opsdesk.app.models.enums import enum_values
from opsdesk.app.models.order_enums import OrderStatus


class Order(Base):
    __tablename__ = "orders"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_number = Column(String(50), unique=True, index=True, nullable=False)
    
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    
    status = Column(Enum(OrderStatus, values_callable=enum_values, name="order_status"), default=OrderStatus.PENDING, nullable=False, index=True)
    service_name = Column(String(255), nullable=True)
    service_duration = Column(Integer, default=60, nullable=False)  # minutes
    total_amount = Column(Float, default=0.0, nullable=False)
    
    # Checkpoints
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    estimated_arrival_at = Column(DateTime(timezone=True), nullable=True)
    service_started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    technician = relationship("Technician", lazy="selectin")
    
    def __repr__(self):
        return f"<Order(id={self.id}, number='{self.order_number}', status='{self.status.value}')>"
