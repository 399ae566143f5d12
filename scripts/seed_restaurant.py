# scripts/seed_restaurant.py
"""
Create a restaurant for a user id and print a bearer token for it.

Usage:
  python -m scripts.seed_restaurant --user owner-1 --name "Chai and Biscuit"
  python -m scripts.seed_restaurant --user owner-1 --token-only
"""
import argparse
import asyncio
import os

from dotenv import load_dotenv
env_file = f".env.{os.getenv('ENV', 'development')}"
load_dotenv(env_file) if os.path.exists(env_file) else load_dotenv()

from app.api.deps import get_store
from app.auth.dependencies import issue_token
from app.db import create_db_and_tables


async def seed(user_id: str, name: str, email: str = None, token_only: bool = False, lifetime: int = 86400):
    store = get_store()
    try:
        if not token_only:
            await create_db_and_tables(store.engine)
            rows = await store.select("restaurants", {"user_id": user_id}, limit=1)
            if rows:
                print(f"Restaurant already exists for {user_id}: {rows[0]['id']}")
            else:
                row = await store.insert_one("restaurants", {"name": name, "email": email, "user_id": user_id})
                print(f"Created restaurant {row['name']} ({row['id']})")
        print(issue_token(user_id, lifetime_seconds=lifetime))
    finally:
        await store.engine.dispose()


def main():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--user", required=True, help="identity provider user id")
    parser.add_argument("--name", default="My Restaurant")
    parser.add_argument("--email")
    parser.add_argument("--token-only", action="store_true")
    parser.add_argument("--lifetime", type=int, default=86400, help="token lifetime in seconds")
    args = parser.parse_args()
    asyncio.run(seed(args.user, args.name, args.email, args.token_only, args.lifetime))


if __name__ == "__main__":
    main()
