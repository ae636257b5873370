from typing import Optional
from urllib.parse import urlsplit


def normalize_hostname(url: Optional[str]) -> Optional[str]:
    """
    'https://www.Acme.com:443/contact?x=1' -> 'acme.com'.
    Схема, 'www.', порт, путь и регистр отбрасываются.
    """
    if not url:
        return None
    raw = url.strip().lower()
    if not raw:
        return None
    if "://" not in raw:
        raw = "//" + raw.lstrip("/")

    try:
        host = urlsplit(raw).hostname or ""
    except ValueError:
        return None

    host = host.strip(".")
    if host.startswith("www."):
        host = host[4:]
    return host or None
