from .user_store import SQLAlchemyUserStore
from .whitelist import SQLWhitelist

__all__ = ["SQLAlchemyUserStore", "SQLWhitelist"]
