import re
import unicodedata
from uuid import UUID


def slugify(text: str) -> str:
    """Create URL-safe slug from text."""
    # Fold accents to ascii, then lowercase
    slug = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    # Whitespace and punctuation become hyphens, anything else non-alphanumeric goes
    slug = re.sub(r"[\s\-_.,;:!?/\\|]+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def make_slug(title: str | None, entity_id: UUID) -> str:
    """
    Derive the permanent slug for a new entity.

    Once generated a slug never changes: files in object storage are named
    after it. The id suffix keeps duplicate titles apart.
    """
    base = slugify(title or "")
    if not base:
        return str(entity_id)
    return f"{base}-{entity_id}"
