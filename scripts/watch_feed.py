import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
from jose import jwt
from feed.hub import NotificationHub
from logging_config import setup_logging
from models.notification import Identity

setup_logging()


def print_feed(session):
    print(f"\n--- {len(session.notifications)} notifications, {session.unread_count} unread ---")
    for n in session.notifications:
        marker = " " if n.read else "*"
        print(f"{marker} {n.occurred_at:%Y-%m-%d %H:%M} [{n.category}] {n.title}: {n.message} -> {n.navigation_target}")


async def watch(token: str, role: str = None, passes: int = 1):
    """Poll the HR backend as the token's owner and print the feed after every pass."""
    claims = jwt.get_unverified_claims(token)
    identity = Identity(user_id=str(claims.get("sub") or claims.get("id")), role=role or claims.get("role"))

    hub = NotificationHub()
    session = await hub.session_for(identity, token)
    try:
        await session.ready()
        print_feed(session)
        for _ in range(passes - 1):
            await asyncio.sleep(hub.poll_interval)
            await session.refresh()
            print_feed(session)
    finally:
        await hub.shutdown()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/watch_feed.py <token> [role] [passes]")
        sys.exit(1)
    token = sys.argv[1]
    role = sys.argv[2] if len(sys.argv) > 2 else None
    passes = int(sys.argv[3]) if len(sys.argv) > 3 else 1
    asyncio.run(watch(token, role, passes))
