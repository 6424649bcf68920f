"""
Grant the admin role to an existing account.
Run: python -m scripts.create_admin someone@example.com   (from the project root)
"""
import argparse
import asyncio
import os
import sys

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from database import AsyncSessionLocal, init_db
from models import Role, User
from services.users import set_role


async def promote(email: str) -> int:
    await init_db()
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.email == email.strip().lower()))
        user = result.scalar_one_or_none()
        if not user:
            print(f"No account found for {email}")
            return 1
        await set_role(session, user.id, Role.ADMIN)
        await session.commit()
    print(f"{email} is now an admin")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("email")
    args = parser.parse_args()
    return asyncio.run(promote(args.email))


if __name__ == "__main__":
    sys.exit(main())
