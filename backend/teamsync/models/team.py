"""
Team model.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from teamsync.core.database import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey('organizations.id'), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    created_by = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)  # NULL once the creator is removed
    manager_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)  # Always an admin; NULL while unmanaged
    created_at = Column(DateTime(timezone=True), server_default=func.now())
