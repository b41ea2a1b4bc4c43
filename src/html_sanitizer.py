"""Allow-list HTML filter applied to post and comment bodies."""

import bleach

ALLOWED_TAGS = [
    "b", "i", "em", "strong", "a", "p", "div", "br",
    "h1", "h2", "h3", "ul", "li", "ol", "img",
]
ALLOWED_ATTRIBUTES = {
    "a": ["href"],
    "img": ["src", "alt"],
}
ALLOWED_PROTOCOLS = ["http", "https", "mailto"]


def sanitize_html(raw):
    """Strip every tag and attribute outside the board's allow-list.

    Disallowed tags are removed while their text is kept (escaped), so
    ``<script>x</script>y`` becomes ``xy``.

    :param raw: User-submitted HTML; ``None`` is treated as empty.
    :type raw: str | None
    :returns: Cleaned HTML safe to render unescaped.
    :rtype: str
    """
    return bleach.clean(
        raw or "",
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
    )
