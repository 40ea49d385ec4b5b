"""
@mention extraction.

Finds ``@token`` references in document content and resolves them to user
ids through a caller-supplied lookup.
"""

import re
from typing import Awaitable, Callable, Optional

# "@" followed by ASCII letters, digits or underscore
MENTION_PATTERN = re.compile(r"@(\w+)", re.ASCII)

UserLookup = Callable[[str], Awaitable[Optional[str]]]


def extract_mention_tokens(content: str) -> list[str]:
    """
    Return the distinct mention tokens in ``content``, in first-seen order.

    Example:
        >>> extract_mention_tokens("Hi @alice, @bob and @alice again")
        ['alice', 'bob']
    """
    if not content:
        return []

    seen: dict[str, None] = {}
    for match in MENTION_PATTERN.finditer(content):
        seen.setdefault(match.group(1), None)
    return list(seen)


async def extract_mentions(content: str, lookup_user: UserLookup) -> set[str]:
    """
    Resolve every mention in ``content`` to a user id.

    Each distinct token is looked up once. Tokens that match no user are
    dropped without error.

    Args:
        content: Document content (plain text or HTML)
        lookup_user: Async callable mapping a token to a user id or None

    Returns:
        Set of mentioned user ids
    """
    user_ids: set[str] = set()
    for token in extract_mention_tokens(content):
        user_id = await lookup_user(token)
        if user_id is not None:
            user_ids.add(user_id)
    return user_ids
