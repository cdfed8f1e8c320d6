"""Address book: contacts and their tag vocabularies."""

from .models import Contact, ContactKey, ImportantDate, Resolution
from .resolver import ContactResolver
from .store import ContactStore
from .tags import TagStore

__all__ = [
    "Contact",
    "ContactKey",
    "ImportantDate",
    "Resolution",
    "ContactResolver",
    "ContactStore",
    "TagStore",
]
