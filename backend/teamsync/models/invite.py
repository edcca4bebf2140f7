"""
Invite model for email-based membership offers.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.sql import func
from teamsync.core.database import Base


class Invite(Base):
    __tablename__ = "invites"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, index=True)  # Stored lower-case
    organization_id = Column(Integer, ForeignKey('organizations.id'), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey('teams.id'), nullable=True)  # Always NULL for admin invites
    role = Column(String(20), nullable=False)  # 'admin' or 'member'
    invited_by = Column(Integer, ForeignKey('users.id'), nullable=True)
    accepted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    accepted_at = Column(DateTime(timezone=True), nullable=True)
