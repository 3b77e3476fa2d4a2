"""
Persistence Infrastructure.

Cache local de ventanas (SQLite vía SQLAlchemy async).
"""
from marketfeed.infrastructure.persistence.database import Base, DatabaseManager
from marketfeed.infrastructure.persistence.window_cache import WindowCache

__all__ = ["Base", "DatabaseManager", "WindowCache"]
