import asyncio
import uuid

import structlog

from studygroup.core import security
from studygroup.core.config import settings
from studygroup.schemas.group import Group
from studygroup.schemas.message import ChatMessage
from studygroup.schemas.student import AccountRecord, StudentProfile
from studygroup.storage.base import StudyStore

logger = structlog.get_logger()

DEMO_PASSWORD = "password123"

DEMO_STUDENTS = [
    {"username": "alice", "name": "Alice Johnson", "courses": ["Data Structures", "Algorithms"], "cgpa": "3.8", "availability": ["Mon Afternoon", "Wed Afternoon"]},
    {"username": "bob", "name": "Bob Williams", "courses": ["Data Structures", "Operating Systems"], "cgpa": "3.5", "availability": ["Tue Morning", "Thu Morning"]},
    {"username": "charlie", "name": "Charlie Brown", "courses": ["Algorithms", "Database Systems", "Intro to CS"], "cgpa": "3.9", "availability": ["Mon Afternoon", "Fri Afternoon"]},
    {"username": "diana", "name": "Diana Prince", "courses": ["Machine Learning", "Artificial Intelligence"], "cgpa": "4.0", "availability": ["Weekends"]},
]

DEMO_GROUPS = [
    {
        "group_name": "Algo Avengers",
        "admin": "alice",
        "members": ["alice", "charlie"],
        "focus_courses": ["Algorithms"],
        "suggested_times": ["Mon Afternoon"],
        "reason": "Initial group for Algorithms course.",
        "messages": [
            {"id": "m1", "sender": "alice", "text": "Hey Charlie, ready for the midterm?", "timestamp": "10:30 AM"},
            {"id": "m2", "sender": "charlie", "text": "You bet! Been studying sorting algorithms all night.", "timestamp": "10:31 AM"},
        ],
    },
    {
        "group_name": "Data Dominators",
        "admin": "bob",
        "members": ["bob"],
        "focus_courses": ["Data Structures"],
        "suggested_times": ["Tue Morning"],
        "reason": "Bob created this group for DS.",
        "messages": [],
    },
]


async def seed_demo_data(store: StudyStore) -> bool:
    """
    Load the demo students, accounts and groups into an empty store.
    Returns False without touching anything if the store already has data.
    """
    if not await store.is_empty():
        logger.info("seed_skipped", reason="store_not_empty")
        return False

    password_hash = security.get_password_hash(DEMO_PASSWORD)
    for data in DEMO_STUDENTS:
        profile = StudentProfile(id=str(uuid.uuid4()), **data)
        account = AccountRecord(username=profile.username, password_hash=password_hash, student_id=profile.id)
        await store.create_account(account, profile)

    for data in DEMO_GROUPS:
        data = dict(data)
        messages = data.pop("messages")
        group = await store.insert_group(Group(id=str(uuid.uuid4()), **data))
        for message in messages:
            await store.insert_message_if_absent(group.id, ChatMessage(**message))

    logger.info("seed_complete", students=len(DEMO_STUDENTS), groups=len(DEMO_GROUPS))
    return True


async def init_models():
    from studygroup.core.logging import setup_logging
    from studygroup.storage.factory import build_store

    setup_logging()
    store = build_store(settings)
    await store.init()
    try:
        await seed_demo_data(store)
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(init_models())
