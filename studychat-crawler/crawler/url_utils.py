from urllib.parse import urlparse, urlunparse

_DEFAULT_PORTS = {"http": 80, "https": 443}

def normalize_url(url: str) -> str:
    """
    Canonical form used as the frontier key:
    - scheme and host lower-cased
    - default port dropped
    - fragment removed
    - empty path becomes "/"
    Path and query are kept as-is (paths are case-sensitive).
    """
    if not url:
        return ""

    p = urlparse(url.strip())
    scheme = p.scheme.lower()
    host = (p.hostname or "").rstrip(".")

    netloc = host
    if ":" in host:
        # IPv6 literal
        netloc = f"[{host}]"
    if p.port and p.port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{p.port}"
    if p.username:
        userinfo = p.username + (f":{p.password}" if p.password else "")
        netloc = f"{userinfo}@{netloc}"

    return urlunparse((
        scheme,
        netloc,
        p.path or "/",
        p.params,
        p.query,
        ""
    ))

def host_of(url: str) -> str:
    """Lower-cased host of a URL, '' if it has none or does not parse."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
