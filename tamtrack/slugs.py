import re
import secrets

from .config import settings

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str, max_length: int = None) -> str:
    """Lowercase ``name`` and collapse every non-alphanumeric run into a hyphen."""
    max_length = max_length or settings.SLUG_MAX_LENGTH
    slug = _NON_ALNUM.sub("-", name.lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or "model"


def public_slug(name: str) -> str:
    return f"{slugify(name)}-{secrets.token_hex(3)}"
