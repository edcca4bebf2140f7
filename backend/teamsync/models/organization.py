"""
Tier and Organization models.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from teamsync.core.database import Base


class Tier(Base):
    """Quota plan reference data. A limit of -1 (or NULL) means unlimited."""
    __tablename__ = "tiers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)  # 'free', 'pro', 'enterprise'
    max_members = Column(Integer, nullable=True)
    max_teams = Column(Integer, nullable=True)

    organizations = relationship("Organization", back_populates="tier")


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    tier_id = Column(Integer, ForeignKey('tiers.id'), nullable=False, index=True)
    color_palette = Column(JSON, nullable=True)  # {"primary": "#...", "accent": "#...", "background": "#..."}
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    tier = relationship("Tier", back_populates="organizations")
