"""MileageLedger — posting and reading point balances.

Balances are a fold over ledger entries. Postings are at-most-once per
idempotency key: re-posting a key returns the entry recorded the first
time and leaves the balance untouched.
"""

from collections.abc import Iterator
from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from commerce.errors import DuplicatePosting, InsufficientBalance, OverflowRejected
from commerce.mileage.entry import LedgerReason, MileageEntry
from commerce.policy import LoyaltyPolicy, get_policy

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MileageSummary:
    account_id: str
    earned: int
    spent: int
    balance: int


class MileageLedger:
    def __init__(self, policy: LoyaltyPolicy | None = None):
        self.policy = policy or get_policy()

    @property
    def repository(self):
        return current_domain.repository_for(MileageEntry)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def balance_of(self, account_id: str) -> int:
        """Sum of every delta posted to ``account_id``."""
        limit = self.policy.max_safe_points
        balance = 0
        for entry in self.repository.entries(account_id, descending=False):
            balance += entry.delta
            if abs(balance) > limit:
                raise OverflowRejected(f"Balance of {account_id} exceeds the safe integer range")
        return balance

    def history_of(
        self,
        account_id: str,
        offset: int = 0,
        page_size: int = 50,
        reason: str | None = None,
    ) -> Iterator[MileageEntry]:
        """Entries newest first, fetched lazily. Restart at any ``offset``."""
        return self.repository.entries(account_id, offset=offset, page_size=page_size, reason=reason)

    def history_page(
        self,
        account_id: str,
        offset: int = 0,
        limit: int = 50,
        reason: str | None = None,
    ) -> tuple[list[MileageEntry], int]:
        result = self.repository.page(account_id, offset=offset, limit=limit, reason=reason)
        return list(result.items), result.total

    def summary_of(self, account_id: str) -> MileageSummary:
        earned = spent = 0
        for entry in self.repository.entries(account_id, descending=False):
            if entry.delta > 0:
                earned += entry.delta
            else:
                spent -= entry.delta
        return MileageSummary(account_id=account_id, earned=earned, spent=spent, balance=earned - spent)

    def ledger_page(
        self,
        account_id: str | None = None,
        offset: int = 0,
        limit: int = 50,
        reason: str | None = None,
    ) -> tuple[list[MileageEntry], int]:
        """Entries across the whole ledger, newest first, optionally narrowed."""
        result = self.repository.page(account_id, offset=offset, limit=limit, reason=reason)
        return list(result.items), result.total

    def totals(self) -> list[MileageSummary]:
        """Earned, spent and balance for every account with entries."""
        earned: dict[str, int] = {}
        spent: dict[str, int] = {}
        for entry in self.repository.entries(None, descending=False):
            account_id = str(entry.account_id)
            earned.setdefault(account_id, 0)
            spent.setdefault(account_id, 0)
            if entry.delta > 0:
                earned[account_id] += entry.delta
            else:
                spent[account_id] -= entry.delta
        return [
            MileageSummary(
                account_id=account_id,
                earned=earned[account_id],
                spent=spent[account_id],
                balance=earned[account_id] - spent[account_id],
            )
            for account_id in sorted(earned)
        ]

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def check(self, account_id: str, delta: int, balance: int | None = None) -> int:
        """Validate a prospective posting and return the resulting balance.

        Nothing is written. Raises OverflowRejected or InsufficientBalance.
        """
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError({"delta": ["Mileage deltas must be whole points"]})
        if delta == 0:
            raise ValidationError({"delta": ["Mileage delta cannot be zero"]})

        limit = self.policy.max_safe_points
        if abs(delta) > limit:
            raise OverflowRejected(f"Delta {delta} exceeds the safe integer range")

        if balance is None:
            balance = self.balance_of(account_id)
        resulting = balance + delta
        if delta < 0 and resulting < 0:
            raise InsufficientBalance(account_id, balance, delta)
        if resulting > limit:
            raise OverflowRejected(f"Posting {delta} would push the balance of {account_id} past {limit}")
        return resulting

    def post(
        self,
        account_id: str,
        delta: int,
        reason: LedgerReason,
        idempotency_key: str,
        reference_order_id: str | None = None,
        description: str | None = None,
    ) -> MileageEntry:
        """Append an entry, or return the one already posted under ``idempotency_key``."""
        existing = self.repository.find(idempotency_key)
        if existing is not None:
            logger.info(
                "Duplicate mileage posting ignored",
                idempotency_key=idempotency_key,
                account_id=account_id,
            )
            return existing

        self.check(account_id, delta)

        entry = MileageEntry.record(
            account_id=account_id,
            delta=delta,
            reason=reason,
            idempotency_key=idempotency_key,
            reference_order_id=reference_order_id,
            description=description,
        )
        try:
            self.repository.insert(entry)
        except DuplicatePosting as exc:
            return exc.entry

        logger.info(
            "Mileage posted",
            account_id=account_id,
            delta=delta,
            reason=reason.value,
            reference_order_id=reference_order_id,
            idempotency_key=idempotency_key,
        )
        return entry
