# utils/sales_pipeline/state.py
"""
In-memory State Container

Owns the three working collections (accounts, deals, representatives).
Collections are tuples and are only ever swapped whole: id-matched
replacement, whole-collection replacement from the record store, or the
cascade delete which computes both new collections before assigning them.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .constants import COLLECTION_KINDS, KIND_ACCOUNTS, KIND_DEALS, KIND_REPRESENTATIVES
from .models import Account, Deal, Representative, ValidationError

logger = logging.getLogger(__name__)


def _replace_by_id(records: Tuple, record) -> Tuple:
    if not any(r.id == record.id for r in records):
        raise ValidationError(f"No record with id {record.id!r}")
    return tuple(record if r.id == record.id else r for r in records)


def _check_unique(records: Tuple, record) -> None:
    if any(r.id == record.id for r in records):
        raise ValidationError(f"Duplicate id {record.id!r}")


class PipelineState:
    """
    Working copy of the pipeline records.

    Usage:
        state = PipelineState()
        state.replace_all(accounts, deals, representatives)
        state.add_account(account, deal)
        removed = state.delete_account(account.id)
    """

    def __init__(
        self,
        accounts: Iterable[Account] = (),
        deals: Iterable[Deal] = (),
        representatives: Iterable[Representative] = ()
    ):
        self.accounts: Tuple[Account, ...] = tuple(accounts)
        self.deals: Tuple[Deal, ...] = tuple(deals)
        self.representatives: Tuple[Representative, ...] = tuple(representatives)

    @property
    def is_empty(self) -> bool:
        return not self.accounts and not self.deals and not self.representatives

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def find_account(self, account_id: str) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def find_deal(self, deal_id: str) -> Optional[Deal]:
        return next((d for d in self.deals if d.id == deal_id), None)

    def deals_for_account(self, account_id: str) -> List[Deal]:
        return [d for d in self.deals if d.contact_id == account_id]

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_account(self, account: Account, deal: Optional[Deal] = None) -> None:
        """Add an account, optionally with its first deal, in one step."""
        _check_unique(self.accounts, account)
        deals = self.deals
        if deal is not None:
            if deal.contact_id != account.id:
                raise ValidationError(f"Deal {deal.id} does not reference account {account.id}")
            _check_unique(deals, deal)
            deals = deals + (deal,)

        self.accounts = self.accounts + (account,)
        self.deals = deals
        logger.info(f"➕ Account added: {account.company} ({account.id})")

    def update_account(self, account: Account, deal: Optional[Deal] = None) -> None:
        """Replace an account by id; a deal passed along is upserted by id."""
        accounts = _replace_by_id(self.accounts, account)
        deals = self.deals
        if deal is not None:
            if deal.contact_id != account.id:
                raise ValidationError(f"Deal {deal.id} does not reference account {account.id}")
            if any(d.id == deal.id for d in deals):
                deals = _replace_by_id(deals, deal)
            else:
                deals = deals + (deal,)

        self.accounts = accounts
        self.deals = deals

    def delete_account(self, account_id: str) -> int:
        """
        Remove an account and every deal referencing it.

        Returns:
            Number of deals removed
        """
        accounts = tuple(a for a in self.accounts if a.id != account_id)
        deals = tuple(d for d in self.deals if d.contact_id != account_id)
        removed = len(self.deals) - len(deals)

        self.accounts, self.deals = accounts, deals

        logger.info(f"🗑️ Account {account_id} deleted with {removed} deal(s)")
        return removed

    # =========================================================================
    # DEALS
    # =========================================================================

    def add_deal(self, deal: Deal) -> None:
        if self.find_account(deal.contact_id) is None:
            raise ValidationError(f"Unknown account {deal.contact_id!r} for deal {deal.id}")
        _check_unique(self.deals, deal)
        self.deals = self.deals + (deal,)

    def update_deal(self, deal: Deal) -> None:
        self.deals = _replace_by_id(self.deals, deal)

    def delete_deal(self, deal_id: str) -> bool:
        deals = tuple(d for d in self.deals if d.id != deal_id)
        found = len(deals) != len(self.deals)
        self.deals = deals
        return found

    # =========================================================================
    # REPRESENTATIVES
    # =========================================================================

    def add_representative(self, rep: Representative) -> None:
        _check_unique(self.representatives, rep)
        self.representatives = self.representatives + (rep,)

    def update_representative(self, rep: Representative) -> None:
        self.representatives = _replace_by_id(self.representatives, rep)

    def delete_representative(self, rep_id: str) -> bool:
        """Owner strings on accounts and deals are left as they are."""
        reps = tuple(r for r in self.representatives if r.id != rep_id)
        found = len(reps) != len(self.representatives)
        self.representatives = reps
        return found

    # =========================================================================
    # BULK REPLACEMENT
    # =========================================================================

    def replace_collection(self, kind: str, records: Iterable) -> None:
        """Swap one whole collection (used by the sync reconciler)."""
        if kind not in COLLECTION_KINDS:
            raise ValueError(f"Unknown collection: {kind!r}")
        setattr(self, kind, tuple(records))

    def replace_all(
        self,
        accounts: Iterable[Account],
        deals: Iterable[Deal],
        representatives: Iterable[Representative]
    ) -> None:
        self.accounts, self.deals, self.representatives = (
            tuple(accounts), tuple(deals), tuple(representatives)
        )

    def snapshot(self) -> Dict[str, Tuple]:
        """Point-in-time view of all three collections, keyed by kind."""
        return {
            KIND_ACCOUNTS: self.accounts,
            KIND_DEALS: self.deals,
            KIND_REPRESENTATIVES: self.representatives,
        }

    def __repr__(self) -> str:
        return (
            f"PipelineState(accounts={len(self.accounts)}, deals={len(self.deals)}, "
            f"representatives={len(self.representatives)})"
        )
