"""
Technician and city models.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Float, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from opsdesk.app.db.session import Base
from opsdesk.app.models.enums import TechnicianStatus, enum_values


class City(Base):
    __tablename__ = "cities"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)


class Technician(Base):
    """
    Technician profile as seen by the back office.
    
    `is_blocked` hides the technician from customers, `is_verified` marks a
    completed identity review.
    """
    __tablename__ = "technicians"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    technician_number = Column(Integer, unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=True, index=True)
    
    is_blocked = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    status = Column(Enum(TechnicianStatus, values_callable=enum_values, name="technician_status"), default=TechnicianStatus.OFFLINE, nullable=False)
    max_travel_distance = Column(Integer, default=10, nullable=False)  # km
    
    # Live status
    current_lat = Column(Float, nullable=True)
    current_lng = Column(Float, nullable=True)
    next_available_at = Column(DateTime(timezone=True), nullable=True)
    cooldown_until = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    city = relationship("City", lazy="selectin")
    
    def __repr__(self):
        return f"<Technician(id={self.id}, number={self.technician_number}, name='{self.name}')>"


class TechnicianWorkSession(Base):
    """One online stretch of a technician; `ended_at` is NULL while still online."""
    __tablename__ = "technician_work_sessions"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    technician_id = Column(Integer, ForeignKey("technicians.id"), nullable=False, index=True)
    started_at = Column(DateTime(timezone=True), nullable=False, index=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
