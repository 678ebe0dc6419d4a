"""
Technician settlement account model.

`balance` (owed to the platform, THB) and `platform_collected_rmb_balance`
(collected by the platform on the technician's behalf, RMB) are maintained
by database triggers reacting to settlement and transaction changes.
Application code reads them but never writes them.
"""

from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from opsdesk.app.db.session import Base


class TechnicianSettlementAccount(Base):
    __tablename__ = "technician_settlement_accounts"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    technician_id = Column(Integer, ForeignKey("technicians.id"), unique=True, nullable=False, index=True)
    
    # Deposit ceiling, THB
    deposit_amount = Column(Float, default=0.0, nullable=False)
    
    # Trigger-maintained balances
    balance = Column(Float, default=0.0, nullable=False)
    platform_collected_rmb_balance = Column(Float, default=0.0, nullable=False)
    currency = Column(String(10), default="THB", nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    technician = relationship("Technician", lazy="selectin")
    
    def __repr__(self):
        return f"<TechnicianSettlementAccount(technician={self.technician_id}, balance={self.balance}, deposit={self.deposit_amount})>"
