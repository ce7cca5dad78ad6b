"""Image URL validation shared by the pipeline precondition and the image classifier."""

from urllib.parse import urlparse

ALLOWED_SCHEMES = ("http", "https")


def is_valid_image_url(url: str | None) -> bool:
    """Return True if `url` is an absolute http(s) URL with a host."""
    if not url or not isinstance(url, str):
        return False
    candidate = url.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return False
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.netloc)
