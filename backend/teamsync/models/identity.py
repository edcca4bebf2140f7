"""
Identity model backing the local identity provider.
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from teamsync.core.database import Base


class Identity(Base):
    __tablename__ = "identities"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
