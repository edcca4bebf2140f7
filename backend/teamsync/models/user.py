"""
User model: an identity's membership in one organization.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from teamsync.core.database import Base

ROLE_OWNER = 'owner'
ROLE_ADMIN = 'admin'
ROLE_MEMBER = 'member'
ROLES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER)


class User(Base):
    __tablename__ = "users"

    # Same id as the identity that signed up; never autogenerated here
    id = Column(Integer, primary_key=True, autoincrement=False, index=True)
    # NULL only between the two phases of owner signup
    organization_id = Column(Integer, ForeignKey('organizations.id'), nullable=True, index=True)
    team_id = Column(
        Integer,
        ForeignKey('teams.id', use_alter=True, name='fk_users_team_id'),
        nullable=True,
        index=True,
    )
    role = Column(String(20), nullable=False)  # 'owner', 'admin' or 'member'
    display_name = Column(String(255), nullable=False)
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def is_owner(self) -> bool:
        return self.role == ROLE_OWNER

    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def is_member(self) -> bool:
        return self.role == ROLE_MEMBER

    def can_manage_members(self) -> bool:
        """Owners and admins may invite and remove members."""
        return self.role in (ROLE_OWNER, ROLE_ADMIN)
