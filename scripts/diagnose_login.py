"""
Login Diagnosis Script

Explains why an account cannot log in, listing every password hash layout
the system accepts next to the stored hash. Run from project root:

    python scripts/diagnose_login.py <user_name> <password>

The report contains hashes derived from the password typed here. Run it on
the shop's own machine only.
"""

import argparse
import asyncio
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from restaurant_pos.database import async_session_maker, engine
from restaurant_pos.services.account_service import get_account_service


async def diagnose(user_name: str, password: str) -> str:
    async with async_session_maker() as db:
        report = await get_account_service().diagnose_login(db, user_name, password)
    await engine.dispose()
    return report


def main() -> None:
    parser = argparse.ArgumentParser(description="Explain a failing staff login.")
    parser.add_argument("user_name")
    parser.add_argument("password")
    args = parser.parse_args()

    print(asyncio.run(diagnose(args.user_name, args.password)))


if __name__ == "__main__":
    main()
