"""
Seed Sample Data Script
Populates users, groups, memberships and upcoming sessions for local testing.
Safe to run repeatedly: existing users are reused instead of recreated.
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.database.supabase_client import SupabaseClient
from app.database.document_store import DocumentStore
from app.modules.users.service import UserService
from app.modules.users.schemas import UserResponse
from app.modules.groups.service import GroupService
from app.modules.groups.schemas import GroupResponse
from app.modules.memberships.service import MembershipService
from app.modules.sessions.service import SessionService
from app.modules.sessions.schemas import SessionCreate
from app.core.errors import ErrorCode
from typing import List
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_USERNAMES = ["john_doe", "jane_smith", "mike_wizard", "sarah_rogue", "alex_fighter"]

# (group name, index of host in SAMPLE_USERNAMES)
SAMPLE_GROUPS = [
    ("Weekly D&D Campaign", 0),
    ("Pathfinder Society", 1),
    ("Call of Cthulhu Mystery", 2),
]

# (days from now, host notes, confirmed)
SAMPLE_SESSIONS = [
    (3, "Character creation and campaign introduction. Bring dice and character sheets!", True),
    (7, "Continue exploring the haunted castle. Remember to bring your spell components.", True),
    (14, "Major boss fight scheduled! Make sure characters are leveled up.", False),
]


async def seed_users(users: UserService) -> List[UserResponse]:
    logger.info("Seeding users...")
    created = []
    for username in SAMPLE_USERNAMES:
        result = await users.create_user(username)
        if result.success:
            logger.info(f"Created user: {username}")
            created.append(result.data)
            continue
        if result.error.code != ErrorCode.USERNAME_EXISTS:
            logger.error(f"Error creating user {username}: {result.error.message}")
            continue
        existing = await users.get_user_by_username(username)
        if existing.success:
            logger.info(f"Found existing user: {username}")
            created.append(existing.data)
    return created


async def seed_groups(
    groups: GroupService,
    memberships: MembershipService,
    users: List[UserResponse]
) -> List[GroupResponse]:
    logger.info("Seeding groups...")
    created = []
    for name, host_index in SAMPLE_GROUPS:
        if host_index >= len(users):
            continue
        host = users[host_index]
        result = await groups.create_group(name, host.id)
        if not result.success:
            logger.error(f"Error creating group {name}: {result.error.message}")
            continue
        group = result.data
        created.append(group)
        logger.info(f"Created group: {name}")

        for member in users[1:4]:
            if member.id == host.id:
                continue
            joined = await memberships.join_group(group.id, member.id)
            if joined.success:
                logger.info(f"Added {member.username} to {name}")
            else:
                logger.warning(f"Failed to add {member.username} to {name}: {joined.error.message}")
    return created


async def seed_sessions(sessions: SessionService, groups: List[GroupResponse]) -> int:
    logger.info("Seeding sessions...")
    count = 0
    now = datetime.now(timezone.utc)
    for group, (days, notes, confirmed) in zip(groups, SAMPLE_SESSIONS):
        result = await sessions.create_session(SessionCreate(
            group_id=group.id,
            session_date=now + timedelta(days=days),
            host_notes=notes,
            is_confirmed=confirmed
        ))
        if result.success:
            count += 1
            logger.info(f"Created session for {group.name} in {days} days")
        else:
            logger.error(f"Error creating session for {group.name}: {result.error.message}")
    return count


async def main():
    """Main function to seed sample data"""
    try:
        store = DocumentStore(await SupabaseClient.get_service_client())

        logger.info("Starting sample data seeding...")
        users = await seed_users(UserService(store))
        if not users:
            logger.error("No users available for group creation")
            sys.exit(1)

        groups = await seed_groups(GroupService(store), MembershipService(store), users)
        session_count = await seed_sessions(SessionService(store), groups)

        logger.info("Seeding completed successfully!")
        logger.info(f"Total: {len(users)} users, {len(groups)} groups, {session_count} sessions")
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
