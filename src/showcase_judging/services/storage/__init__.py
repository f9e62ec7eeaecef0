from .database import create_db_engine
from .repository import AsyncRepository

__all__ = ["AsyncRepository", "create_db_engine"]
