"""
Settlement transaction model.

Technician-initiated cash movement requests: a settlement (paying the
platform what is owed) or a withdrawal (paying out collected funds).
Each request is reviewed exactly once by a finance operator.
"""

from sqlalchemy import Column, Integer, Float, String, Text, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from opsdesk.app.db.session import Base
from opsdesk.app.models.enums import enum_values
from opsdesk.app.models.finance_enums import TransactionType, TransactionStatus


class SettlementTransaction(Base):
    __tablename__ = "settlement_transactions"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=False, index=True)
    
    transaction_type = Column(Enum(TransactionType, values_callable=enum_values, name="transaction_type"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    
    # Currency context
    exchange_rate = Column(Float, nullable=True)
    service_fee_rate = Column(Float, nullable=True)
    actual_amount_thb = Column(Float, nullable=True)
    
    payment_method = Column(String(50), nullable=True)
    payment_proof_url = Column(String(500), nullable=True)
    
    # VARCHAR storage keeps ordering alphabetical on every backend
    status = Column(Enum(TransactionStatus, values_callable=enum_values, name="transaction_status", native_enum=False), default=TransactionStatus.PENDING, nullable=False, index=True)
    operator_id = Column(Integer, ForeignKey("admin_profiles.id"), nullable=True)
    notes = Column(Text, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    technician = relationship("Technician", lazy="selectin")
    
    def __repr__(self):
        return f"<SettlementTransaction(id={self.id}, type='{self.transaction_type.value}', status='{self.status.value}')>"
