from scribble.constants import (
    EXCERPT_ELLIPSIS,
    EXCERPT_LEADING_CHARS,
    EXCERPT_LENGTH,
    EXCERPT_TRAILING_CHARS,
)


def find_match(content: str, query: str) -> int:
    """Case-insensitive position of query in content, or -1.

    Lowercasing can change string length ("İ".lower() is two code points), so
    a match found in the lowered text is only used when lengths agree. An
    empty query matches at 0, as with str.find.
    """
    lowered = content.lower()
    needle = query.lower()
    index = lowered.find(needle)
    if index == -1 or len(lowered) == len(content):
        return index

    width = len(query)
    for i in range(len(content) - width + 1):
        if content[i : i + width].lower() == needle:
            return i
    return -1


def make_excerpt(content: str, query: str, length: int = EXCERPT_LENGTH) -> str:
    """Window of content around the first match of query.

    Without a match the first `length` characters are returned, with a trailing
    ellipsis when truncated.
    """
    if not content:
        return ""

    index = find_match(content, query or "")
    if index == -1:
        return content[:length] + (EXCERPT_ELLIPSIS if len(content) > length else "")

    start = max(0, index - EXCERPT_LEADING_CHARS)
    end = min(len(content), index + len(query) + EXCERPT_TRAILING_CHARS)

    prefix = EXCERPT_ELLIPSIS if start > 0 else ""
    suffix = EXCERPT_ELLIPSIS if end < len(content) else ""
    return prefix + content[start:end] + suffix
