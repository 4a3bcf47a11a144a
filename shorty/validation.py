"""URL validation and normalization.

Only absolute ``http``/``https`` URLs with a host are accepted. The stored
form is canonical: scheme and host lower-cased, default ports dropped and an
empty path replaced by ``/``, so ``HTTPS://Example.com:443`` is stored as
``https://example.com/``.
"""

from urllib.parse import urlsplit, urlunsplit

import validators

from shorty.exceptions import InvalidURLError

__all__ = ["ALLOWED_SCHEMES", "normalize_url"]

ALLOWED_SCHEMES = {"http": 80, "https": 443}


def normalize_url(raw: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidURLError("URL must not be empty")

    candidate = raw.strip()
    # Single-label hosts and bare query keys are valid http(s) URLs.
    if not validators.url(candidate, simple_host=True, strict_query=False):
        raise InvalidURLError("Invalid URL format")

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise InvalidURLError("Invalid URL format") from exc

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidURLError("URL must use http or https scheme")
    if not parts.hostname:
        raise InvalidURLError("URL must have a valid host")

    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != ALLOWED_SCHEMES[scheme]:
        host = f"{host}:{port}"

    userinfo = parts.netloc.rpartition("@")[0] if "@" in parts.netloc else ""
    netloc = f"{userinfo}@{host}" if userinfo else host

    return urlunsplit((scheme, netloc, parts.path or "/", parts.query, parts.fragment))
