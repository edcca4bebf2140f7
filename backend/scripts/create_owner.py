"""
Script to create the first organization and its owner.
Run this after migrations when bootstrapping an instance without the signup UI.
"""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from teamsync.core.database import SessionLocal
from teamsync.core.errors import MembershipError
from teamsync.services.identity import LocalIdentityProvider
from teamsync.services.organization import seed_default_tiers, signup_owner


def create_owner(email: str, password: str, first_name: str, last_name: str, organization_name: str):
    """Create an owner account together with its organization."""
    db = SessionLocal()
    try:
        seed_default_tiers(db)
        owner, organization = signup_owner(
            db,
            LocalIdentityProvider(db),
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            organization_name=organization_name,
        )
        print("✅ Owner created successfully!")
        print(f"   Email: {email}")
        print(f"   Organization: {organization.name} (id={organization.id}, tier={organization.tier.name})")
        print(f"   Owner id: {owner.id}")
    except MembershipError as e:
        print(f"❌ Error creating owner: {e.reason}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description='Create an organization owner')
    parser.add_argument('--email', required=True, help='Owner email')
    parser.add_argument('--password', required=True, help='Owner password')
    parser.add_argument('--first-name', default='Org', help='Owner first name')
    parser.add_argument('--last-name', default='Owner', help='Owner last name')
    parser.add_argument('--organization', required=True, help='Organization name')

    args = parser.parse_args()
    create_owner(args.email, args.password, args.first_name, args.last_name, args.organization)
