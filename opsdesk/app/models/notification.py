"""
Notification database model.

System messages delivered to customers and technicians.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Enum
from sqlalchemy.sql import func
from opsdesk.app.db.session import Base
from opsdesk.app.models.enums import enum_values
import enum


class RecipientType(str, enum.Enum):
    CUSTOMER = "customer"
    TECHNICIAN = "technician"


class NotificationType(str, enum.Enum):
    INFO = "info"
    FINANCE_UPDATE = "finance_update"
    REPORT_UPDATE = "report_update"


class Notification(Base):
    __tablename__ = "notifications"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Recipient
    recipient_type = Column(Enum(RecipientType, values_callable=enum_values, name="recipient_type"), nullable=False)
    recipient_id = Column(Integer, nullable=False, index=True)
    
    # Content
    type = Column(Enum(NotificationType, values_callable=enum_values, name="notification_type"), default=NotificationType.INFO, nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    metadata_payload = Column(JSON, nullable=True)
    
    is_read = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Notification(id={self.id}, to={self.recipient_type.value}:{self.recipient_id}, title='{self.title}')>"
