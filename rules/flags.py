from typing import Dict, List

from rules.errors import UnsupportedTypeError


# Filter type bits as used by the mail client (nsMsgFilterType).
# Combined flags are unions of the primitive ones above them.
NONE = 0x00
INBOX_RULE = 0x01
INBOX_JAVASCRIPT = 0x02
INBOX = INBOX_RULE | INBOX_JAVASCRIPT
NEWS_RULE = 0x04
NEWS_JAVASCRIPT = 0x08
NEWS = NEWS_RULE | NEWS_JAVASCRIPT
INCOMING = INBOX | NEWS
MANUAL = 0x10
POST_PLUGIN = 0x20  # after bayes filtering
POST_OUTGOING = 0x40  # after sending
ARCHIVE = 0x80  # before archiving
PERIODIC = 0x100  # on a repeating timer
ALL = INCOMING | MANUAL

RULE_TYPES: Dict[str, int] = {
    "NONE": NONE,
    "INBOX_RULE": INBOX_RULE,
    "INBOX_JAVASCRIPT": INBOX_JAVASCRIPT,
    "INBOX": INBOX,
    "NEWS_RULE": NEWS_RULE,
    "NEWS_JAVASCRIPT": NEWS_JAVASCRIPT,
    "NEWS": NEWS,
    "INCOMING": INCOMING,
    "MANUAL": MANUAL,
    "POST_PLUGIN": POST_PLUGIN,
    "POST_OUTGOING": POST_OUTGOING,
    "ARCHIVE": ARCHIVE,
    "PERIODIC": PERIODIC,
    "ALL": ALL,
}


def _widest_first(flags: Dict[str, int]) -> List[tuple]:
    nonzero = [(name, value) for name, value in flags.items() if value != 0]
    return sorted(nonzero, key=lambda item: (-bin(item[1]).count("1"), item[1]))


_ORDERED_TYPES = _widest_first(RULE_TYPES)


def decompose(value: int, flags: Dict[str, int] = None) -> List[str]:
    """Split a type bitmask into the shortest list of canonical flag names.

    Flags covering more bits are tried first, so a combined flag such as
    INCOMING wins over the primitives it is made of. Raises
    UnsupportedTypeError when some bits don't belong to any flag.
    """
    if flags is None:
        flags, ordered = RULE_TYPES, _ORDERED_TYPES
    else:
        ordered = _widest_first(flags)

    if value == 0:
        for name, flag in flags.items():
            if flag == 0:
                return [name]
        return []

    names = []
    remaining = value
    for name, flag in ordered:
        if remaining & flag == flag:
            names.append(name)
            remaining &= ~flag
            if remaining == 0:
                break

    if remaining != 0:
        raise UnsupportedTypeError(value)
    return names
