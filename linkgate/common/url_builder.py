"""URL building utilities for the link gate service."""


def build_short_url(
    short_code: str,
    base_url: str,
    path_prefix: str = "",
) -> str:
    """Build complete short URL.

    Args:
        short_code: The short code
        base_url: Base URL (e.g., https://example.com)
        path_prefix: Optional path prefix (e.g., /s)

    Returns:
        Complete short URL
    """
    base = base_url.rstrip("/")
    prefix = path_prefix.strip("/")

    if prefix:
        return f"{base}/{prefix}/{short_code}"
    return f"{base}/{short_code}"


def build_local_path(path: str, path_prefix: str = "") -> str:
    """Join an application path onto the public path prefix ('/verify' -> '/s/verify')."""
    prefix = path_prefix.strip("/")
    path = "/" + path.lstrip("/")
    if prefix:
        return f"/{prefix}{path}"
    return path
