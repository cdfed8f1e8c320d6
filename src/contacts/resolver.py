"""Resolve mentioned person-names against the owner's contacts."""

import structlog

from .models import ContactKey, Resolution
from .store import ContactStore

logger = structlog.get_logger()


class ContactResolver:
    """Partitions names into matched (name -> contact id) and unmatched.

    Matching is exact equality on ``ContactKey(owner_id, name)``.
    Near-duplicates ("Ana" vs "ana", "Bo" vs "Bob") are left unmatched so the
    user decides, rather than the system guessing.
    """

    def __init__(self, store: ContactStore):
        self.store = store

    async def resolve(self, owner_id: str, names: list[str]) -> Resolution:
        if not names:
            return Resolution()

        keys = [ContactKey(owner_id, name) for name in dict.fromkeys(names)]
        found = await self.store.find_by_keys(keys)
        resolution = Resolution(
            matched={key.name: found[key].id for key in keys if key in found},
            unmatched=[key.name for key in keys if key not in found],
        )
        logger.debug(
            "contacts.resolved",
            matched=len(resolution.matched),
            unmatched=len(resolution.unmatched),
        )
        return resolution
