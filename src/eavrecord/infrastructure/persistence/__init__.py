from eavrecord.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    get_db_manager,
    init_database,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "get_db_manager",
    "init_database",
]
