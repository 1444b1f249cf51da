"""Repository for MileageEntry — append and paged reads only."""

from collections.abc import Iterator

from commerce.domain import commerce
from commerce.errors import DuplicatePosting
from commerce.mileage.entry import MileageEntry

DEFAULT_PAGE_SIZE = 100


def _ordering(descending: bool) -> list[str]:
    # Entries posted in the same instant fall back to key order.
    if descending:
        return ["-created_at", "idempotency_key"]
    return ["created_at", "idempotency_key"]


@commerce.repository(part_of=MileageEntry)
class MileageEntryRepository:
    def find(self, idempotency_key: str) -> MileageEntry | None:
        """Entry posted under ``idempotency_key``, if any."""
        return self._dao.query.filter(idempotency_key=idempotency_key).all().first

    def insert(self, entry: MileageEntry) -> MileageEntry:
        """Append ``entry``. Raises DuplicatePosting with the prior entry when the key exists."""
        existing = self.find(entry.idempotency_key)
        if existing is not None:
            raise DuplicatePosting(existing)
        self.add(entry)
        return entry

    def page(
        self,
        account_id: str | None,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
        reason: str | None = None,
        descending: bool = True,
    ):
        """One page of entries ordered by creation time.

        ``account_id=None`` pages across every account.
        """
        query = self._dao.query
        if account_id is not None:
            query = query.filter(account_id=account_id)
        if reason:
            query = query.filter(reason=reason)
        return query.order_by(_ordering(descending)).offset(offset).limit(limit).all()

    def entries(
        self,
        account_id: str | None,
        offset: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
        reason: str | None = None,
        descending: bool = True,
    ) -> Iterator[MileageEntry]:
        """Lazily walk entries page by page, starting at ``offset``."""
        while True:
            items = self.page(account_id, offset, page_size, reason, descending).items
            yield from items
            if len(items) < page_size:
                return
            offset += page_size
