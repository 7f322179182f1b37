"""Query string parsing.

Only complete ``key=value`` pairs are kept: entries with no ``=``, an
empty key or an empty value are dropped. When a key repeats, the first
occurrence wins.
"""

from urllib.parse import unquote_plus


def parse_query(query_string: str) -> dict[str, str]:
    """Parse a raw query string (without the leading ``?``)."""
    query: dict[str, str] = {}
    for pair in query_string.split("&"):
        key, sep, value = pair.partition("=")
        if not sep or not key or not value:
            continue
        query.setdefault(unquote_plus(key), unquote_plus(value))
    return query
