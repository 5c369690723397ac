"""
Check which numbers already have an account and which don't.
Uses the same lookup as POST /checkUserExists.

Usage:
    python check_number.py 9876543210 +919123456789 ...
"""

import sys

from app.core.database import SessionLocal
from app.core.phone import format_phone_number
from app.services.identity import SQLIdentityProvider
from app.services.user_service import check_user_exists


def run(numbers: list[str]) -> None:
    db = SessionLocal()
    try:
        provider = SQLIdentityProvider(db)
        found = []
        not_found = []

        for number in numbers:
            if check_user_exists(provider, number):
                found.append(number)
                print(f"  [FOUND]     {number} ({format_phone_number(number)})")
            else:
                not_found.append(number)
                print(f"  [NOT FOUND] {number}")

        print(f"\nSummary: {len(found)} found, {len(not_found)} not found out of {len(numbers)} numbers.")

    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python check_number.py <phone> [<phone> ...]")
        sys.exit(1)

    run(sys.argv[1:])
