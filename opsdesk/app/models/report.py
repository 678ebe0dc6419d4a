"""
User report model.

Reports filed by customers or technicians against the other party.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from opsdesk.app.db.session import Base
from opsdesk.app.models.enums import enum_values
import enum


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class ReporterRole(str, enum.Enum):
    CUSTOMER = "customer"
    TECHNICIAN = "technician"


class Report(Base):
    __tablename__ = "reports"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    reporter_id = Column(Integer, nullable=False, index=True)
    reporter_role = Column(Enum(ReporterRole, values_callable=enum_values, name="reporter_role"), nullable=False)
    reported_technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=True)
    reported_customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    
    report_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    
    status = Column(Enum(ReportStatus, values_callable=enum_values, name="report_status"), default=ReportStatus.PENDING, nullable=False, index=True)
    admin_notes = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("admin_profiles.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<Report(id={self.id}, type='{self.report_type}', status='{self.status.value}')>"
