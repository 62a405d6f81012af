from gatehouse.models.user import User

__all__ = ["User"]
