"""
Reaction Ledger - per-message mapping of emoji to the users who applied it.

Invariants kept by every function here:
- a reactor appears at most once per emoji
- an emoji with no reactors is removed, never stored empty
"""

from typing import Dict, List

Reactions = Dict[str, List[str]]


def toggle_reaction(reactions: Reactions, emoji: str, username: str) -> Reactions:
    """
    Return a new mapping with `username` toggled on `emoji`.
    Toggling the same (emoji, username) twice gives back the original mapping.
    The input is not mutated.
    """
    updated = {symbol: list(users) for symbol, users in (reactions or {}).items()}
    reactors = updated.get(emoji, [])

    if username in reactors:
        reactors = [u for u in reactors if u != username]
        if reactors:
            updated[emoji] = reactors
        else:
            updated.pop(emoji, None)
    else:
        updated[emoji] = reactors + [username]

    return updated


def normalize_reactions(reactions: Reactions) -> Reactions:
    """
    Clean a mapping received from outside (seed data, legacy snapshots):
    duplicate reactors collapse, empty symbols disappear.
    """
    cleaned: Reactions = {}
    for emoji, users in (reactions or {}).items():
        unique = list(dict.fromkeys(u for u in users if u))
        if emoji and unique:
            cleaned[emoji] = unique
    return cleaned
