#!/usr/bin/env python3
"""
UserDesk - Password Reset CLI

Reset a user's password from the command line.
Useful when there's no email service configured for one-time codes.

Usage:
    python scripts/reset_password.py user@email.com newpassword123
"""
import sys
import os
from datetime import datetime

# Add project root to path so we can import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import get_resilient_session
from app.auth.models import User
from app.auth.service import auth_service

MIN_PASSWORD_LENGTH = 8


def reset_password(email: str, new_password: str) -> int:
    if len(new_password) < MIN_PASSWORD_LENGTH:
        print(f"Error: Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return 1

    with get_resilient_session() as db:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            print(f"Error: No user found with email '{email}'")
            return 1

        user.hashed_password = auth_service.hash_password(new_password)
        user.updated_at = datetime.utcnow()

    print(f"Password reset successfully for {email}")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python scripts/reset_password.py <email> <new_password>")
        print("Example: python scripts/reset_password.py user@example.com MyNewPass123")
        sys.exit(1)

    sys.exit(reset_password(sys.argv[1], sys.argv[2]))
