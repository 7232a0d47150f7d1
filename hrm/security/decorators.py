from __future__ import annotations

from collections.abc import Callable


def require_level(level: int) -> Callable:
    """
    Attach a minimum role level to an endpoint.

    The decorator does not check anything itself; the global
    ``enforce_security`` dependency reads the metadata after routing.
    The highest level from config and decorators wins.
    """

    def decorator(fn: Callable) -> Callable:
        existing = int(getattr(fn, "__security_min_level__", 0))
        setattr(fn, "__security_min_level__", max(existing, level))
        return fn

    return decorator


def require_permission(action: str, resource: str) -> Callable:
    """
    Attach a target-less permission requirement to an endpoint.

    Checked without a target record, so only grants whose scope is ``all``
    (or unset) pass. Record-level checks belong in the handler.
    """

    def decorator(fn: Callable) -> Callable:
        existing = tuple(getattr(fn, "__security_permissions__", ()))
        setattr(fn, "__security_permissions__", existing + ((action, resource),))
        return fn

    return decorator
