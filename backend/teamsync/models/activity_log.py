"""
Activity log model: append-only audit trail of membership changes.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from teamsync.core.database import Base


class ActivityLog(Base):
    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey('organizations.id'), nullable=False, index=True)
    action_type = Column(String(50), nullable=False, index=True)  # see services.audit.ActivityType
    target_type = Column(String(20), nullable=False)  # 'user', 'team' or 'organization'
    target_id = Column(Integer, nullable=False)  # No FK: the target may be deleted
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
