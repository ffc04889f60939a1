#!/usr/bin/env python3
"""
UserDesk - Admin Promotion CLI

Give a user the admin role, or take it away.

Usage:
    python scripts/promote_admin.py user@email.com          # promote
    python scripts/promote_admin.py user@email.com --demote  # demote
"""
import sys
import os

# Add project root to path so we can import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import get_resilient_session
from app.auth.models import User


def promote_admin(email: str, demote: bool = False) -> int:
    """Set the role of the account registered under email. Returns an exit code."""
    target_role = "user" if demote else "admin"

    with get_resilient_session() as db:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            print(f"Error: No user found with email '{email}'")
            return 1

        if user.role == target_role:
            print(f"{email} already has role '{target_role}'.")
            return 0

        user.role = target_role

    print(f"Set role of {email} to '{target_role}'.")
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2 or len(sys.argv) > 3:
        print("Usage: python scripts/promote_admin.py <email> [--demote]")
        sys.exit(1)

    sys.exit(promote_admin(sys.argv[1], demote="--demote" in sys.argv))
