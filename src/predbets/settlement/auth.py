"""Authorization guard: verified caller vs stored owner."""

from __future__ import annotations

from predbets.errors import Unauthorized


def require_owner(caller: str, owner: str, action: str) -> None:
    """Raise Unauthorized unless caller is owner. Runs before any mutation."""
    if not caller or caller != owner:
        raise Unauthorized(f"{caller or 'anonymous'} may not {action}", caller=caller, action=action)
