"""
Centralized environment detection utilities.

All checks read ENV only. Callers must not infer the environment from any
other variable (hostnames, regions) since those can be set freely by the
deployment platform.
"""
import os
from functools import lru_cache


@lru_cache(maxsize=1)
def get_env_name() -> str:
    """
    Get the current environment name from ENV variable.

    Returns:
        Environment name (lowercase): 'local', 'dev', 'test', 'staging', 'prod'.
        Defaults to 'dev' if not set.
    """
    return os.getenv("ENV", "dev").lower()


@lru_cache(maxsize=1)
def is_local_env() -> bool:
    """True if ENV is 'local', 'dev' or 'test'."""
    return get_env_name() in {"local", "dev", "test"}


@lru_cache(maxsize=1)
def is_production_env() -> bool:
    """True if ENV is 'prod' or 'production'."""
    return get_env_name() in {"prod", "production"}


def clear_env_cache() -> None:
    """Reset cached lookups (tests that monkeypatch ENV call this)."""
    get_env_name.cache_clear()
    is_local_env.cache_clear()
    is_production_env.cache_clear()
