"""Response security headers for the browser-facing endpoints."""

from urllib.parse import urlsplit

from payrelay.common.config import RelaySettings


# Hosted pay page, loaded in frames and scripts by the frontend.
PAY_PAGE_ORIGIN = "https://mercury-t2.phonepe.com"


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def content_security_policy(settings: RelaySettings) -> str:
    directives = {
        "default-src": ["'self'"],
        "connect-src": ["'self'", _origin(settings.gateway_base_url), PAY_PAGE_ORIGIN],
        "frame-src": ["'self'", PAY_PAGE_ORIGIN],
        "img-src": ["'self'", "data:", "https:"],
        "script-src": ["'self'", "'unsafe-inline'", PAY_PAGE_ORIGIN],
        "style-src": ["'self'", "'unsafe-inline'"],
        "object-src": ["'none'"],
        "base-uri": ["'self'"],
        "frame-ancestors": ["'self'"],
    }
    return "; ".join(f"{name} {' '.join(values)}" for name, values in directives.items())


def security_headers(settings: RelaySettings) -> dict[str, str]:
    """Headers added to every response."""

    return {
        "Content-Security-Policy": content_security_policy(settings),
        "Cross-Origin-Opener-Policy": "same-origin",
        "Referrer-Policy": "no-referrer",
        "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
        "X-Content-Type-Options": "nosniff",
        "X-DNS-Prefetch-Control": "off",
        "X-Frame-Options": "SAMEORIGIN",
    }
