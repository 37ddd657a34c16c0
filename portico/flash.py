# =============================================================================
# portico/flash.py - Flash Messages
# =============================================================================
# One-shot messages stored in the signed session cookie: set on one request,
# read (and removed) on the next, typically across a redirect.
#
# Usage:
#   flash(request, "info", "Saved")
#   ...
#   get_flashed_messages(request, "info")  # -> ["Saved"], then gone
# =============================================================================

from starlette.requests import Request

SESSION_KEY = "_flash"


def flash(request: Request, category: str, message: str) -> int:
    """
    Queue a message under a category.

    Returns:
        Number of messages now queued for that category
    """
    messages = request.session.setdefault(SESSION_KEY, {})
    queue = messages.setdefault(category, [])
    queue.append(message)
    return len(queue)


def get_flashed_messages(request: Request, category: str | None = None) -> list[str] | dict[str, list[str]]:
    """
    Take queued messages out of the session.

    With a category, returns that category's messages and clears only them.
    Without one, returns every category and clears them all.
    """
    messages = request.session.get(SESSION_KEY, {})

    if category is None:
        request.session.pop(SESSION_KEY, None)
        return messages

    taken = messages.pop(category, [])
    if messages:
        request.session[SESSION_KEY] = messages
    else:
        request.session.pop(SESSION_KEY, None)
    return taken
