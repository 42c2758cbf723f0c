# filevault/core/flash.py
"""Read-once messages stored in the session between a redirect and the next page."""
from typing import List, Optional

from fastapi import Request

FLASH_KEY = "_flashes"


def flash(request: Request, message: str, category: str = "info") -> None:
    flashes = request.session.get(FLASH_KEY, [])
    flashes.append([category, message])
    request.session[FLASH_KEY] = flashes


def get_flashed_messages(request: Request, category: Optional[str] = None) -> List[str]:
    """Pop pending messages, all of them or only those of ``category``."""
    flashes = request.session.get(FLASH_KEY, [])
    if category is None:
        taken, remaining = flashes, []
    else:
        taken = [f for f in flashes if f[0] == category]
        remaining = [f for f in flashes if f[0] != category]

    if remaining:
        request.session[FLASH_KEY] = remaining
    else:
        request.session.pop(FLASH_KEY, None)
    return [message for _, message in taken]
