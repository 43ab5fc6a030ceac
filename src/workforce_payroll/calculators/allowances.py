"""Allowance list operations for a single entry."""

from __future__ import annotations

from collections.abc import Iterable

from workforce_payroll.calculators.types import Allowance
from workforce_payroll.errors import NotFoundError, ValidationError

MAX_NOTES_LENGTH = 500


class AllowanceLedger:
    """Ordered list of extra cash amounts on an entry.

    Operations return a new ledger and never touch the original, so a caller
    can validate and compute the full result before persisting anything.
    Whether the owning period still allows changes is checked by the period
    service, not here.
    """

    def __init__(self, items: Iterable[Allowance] = ()):
        self._items: tuple[Allowance, ...] = tuple(items)

    @property
    def items(self) -> list[Allowance]:
        return list(self._items)

    @property
    def total_cents(self) -> int:
        return sum(a.amount_cents for a in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, amount_cents: int, notes: str = "") -> AllowanceLedger:
        allowance = self._build(amount_cents, notes)
        return AllowanceLedger((*self._items, allowance))

    def edit(self, index: int, amount_cents: int, notes: str = "") -> AllowanceLedger:
        self._check_index(index)
        allowance = self._build(amount_cents, notes)
        items = list(self._items)
        items[index] = allowance
        return AllowanceLedger(items)

    def delete(self, index: int) -> AllowanceLedger:
        self._check_index(index)
        items = list(self._items)
        del items[index]
        return AllowanceLedger(items)

    def to_json(self) -> list[dict]:
        return [a.to_dict() for a in self._items]

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValidationError(f"index must be an integer, got {index!r}", "index")
        if index < 0 or index >= len(self._items):
            raise NotFoundError("allowance", index)

    @staticmethod
    def _build(amount_cents: int, notes: str) -> Allowance:
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
            raise ValidationError(
                f"amount must be whole cents, got {amount_cents!r}", "amount_cents"
            )
        if amount_cents <= 0:
            raise ValidationError("amount must be positive", "amount_cents")
        notes = (notes or "").strip()
        if len(notes) > MAX_NOTES_LENGTH:
            raise ValidationError(
                f"notes longer than {MAX_NOTES_LENGTH} characters", "notes"
            )
        return Allowance(amount_cents=amount_cents, notes=notes)
