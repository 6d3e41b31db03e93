from studygroup.core.config import Settings
from studygroup.storage.base import StudyStore


def build_store(config: Settings) -> StudyStore:
    """
    Pick the storage implementation once, at startup.
    """
    if config.STORAGE_BACKEND == "memory":
        from studygroup.storage.memory import InMemoryStore
        return InMemoryStore()

    from studygroup.storage.database import DatabaseStore
    return DatabaseStore(config.DATABASE_URL)
