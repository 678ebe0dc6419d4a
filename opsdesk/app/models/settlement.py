"""
Order settlement database model.

One row per completed order: what the technician earned, what the
platform should get, and what was actually collected.
Follows a one-way review workflow: PENDING -> SETTLED | REJECTED.
"""

from sqlalchemy import Column, Integer, Float, String, Text, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from opsdesk.app.db.session import Base
from opsdesk.app.models.enums import enum_values
from opsdesk.app.models.finance_enums import SettlementStatus, PaymentContentType, PaymentMethod


class OrderSettlement(Base):
    __tablename__ = "order_settlements"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Parties
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, unique=True, index=True)
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=False, index=True)
    
    # Fees and commission (THB)
    service_fee = Column(Float, default=0.0, nullable=False)
    extra_fee = Column(Float, default=0.0, nullable=False)
    service_commission_rate = Column(Float, default=0.0, nullable=False)
    extra_commission_rate = Column(Float, default=0.0, nullable=False)
    platform_should_get = Column(Float, default=0.0, nullable=False)
    
    # Collection
    customer_paid_to_platform = Column(Float, default=0.0, nullable=False)
    actual_paid_amount = Column(Float, nullable=True)  # RMB collected
    payment_content_type = Column(Enum(PaymentContentType, values_callable=enum_values, name="payment_content_type"), nullable=True)
    payment_method = Column(Enum(PaymentMethod, values_callable=enum_values, name="payment_method"), nullable=True)
    payment_notes = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    
    # Review
    settlement_status = Column(Enum(SettlementStatus, values_callable=enum_values, name="settlement_status"), default=SettlementStatus.PENDING, nullable=False, index=True)
    settled_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    reject_reason = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("admin_profiles.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    technician = relationship("Technician", lazy="selectin")
    order = relationship("Order", lazy="selectin")
    
    def __repr__(self):
        return f"<OrderSettlement(id={self.id}, status='{self.settlement_status.value}', platform_should_get={self.platform_should_get})>"
