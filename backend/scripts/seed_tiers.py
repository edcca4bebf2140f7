"""
Seed the default subscription tiers (free, pro, enterprise).

The API also does this on startup; the script is for databases that are
prepared before the first deployment. Existing tiers are left untouched.
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from teamsync.core.database import SessionLocal
from teamsync.models.organization import Tier
from teamsync.services.organization import seed_default_tiers


def main():
    db = SessionLocal()
    try:
        created = seed_default_tiers(db)
        if created:
            for tier in created:
                print(f"✅ Created tier '{tier.name}' (members={tier.max_members}, teams={tier.max_teams})")
        else:
            print("ℹ️  All default tiers already exist")

        print("\nCurrent tiers:")
        for tier in db.query(Tier).order_by(Tier.id).all():
            members = "unlimited" if tier.max_members == -1 else tier.max_members
            teams = "unlimited" if tier.max_teams == -1 else tier.max_teams
            print(f"   {tier.name}: members={members}, teams={teams}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
