from .redis_whitelist import RedisWhitelist

__all__ = ["RedisWhitelist"]
