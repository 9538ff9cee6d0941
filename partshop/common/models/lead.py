"""
Sales leads and their ownership.

A lead has exactly one active assignment row; reassigning updates that row
rather than appending history.
"""
from sqlalchemy import Column, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import relationship
from .base import Base


LEAD_STATUSES = ("new", "contacted", "qualified", "lost", "converted")


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True)
    first_name = Column(String(128), nullable=False)
    last_name = Column(String(128), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    company = Column(String(255), nullable=True)
    interest = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default="new")
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())

    assignment = relationship(
        "LeadAssignment", back_populates="lead", uselist=False, cascade="all, delete-orphan"
    )


class LeadAssignment(Base):
    __tablename__ = "lead_assignments"

    id = Column(String(36), primary_key=True)
    lead_id = Column(String(36), ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, unique=True)
    assigned_to = Column(String(36), ForeignKey("users.id"), nullable=False)
    assigned_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    status = Column(String(32), nullable=False, default="active")
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())

    lead = relationship("Lead", back_populates="assignment")
