"""Organization-level permission flags for payroll operations."""

from __future__ import annotations

from dataclasses import dataclass

from workforce_payroll.errors import PayrollPermissionError


@dataclass(frozen=True)
class PayrollCapabilities:
    """What an organization may do with payroll, computed once per request.

    Previewing (creating periods, generating entries) needs a trial or
    active subscription. Payouts, exports and invoicing additionally need
    a verified organization.
    """

    can_preview: bool = True
    can_payout: bool = True
    can_export: bool = True
    can_invoice: bool = True

    @classmethod
    def full_access(cls) -> PayrollCapabilities:
        return cls()

    @classmethod
    def from_organization(
        cls,
        subscription_status: str,
        is_verified: bool,
    ) -> PayrollCapabilities:
        status = (subscription_status or "").lower()
        in_good_standing = status in ("active", "trial")
        verified_standing = in_good_standing and is_verified
        return cls(
            can_preview=in_good_standing,
            can_payout=verified_standing,
            can_export=verified_standing,
            can_invoice=verified_standing,
        )

    def require(self, capability: str) -> None:
        """Raise PayrollPermissionError unless the named capability holds."""
        if not getattr(self, capability):
            raise PayrollPermissionError(
                f"Organization is not permitted to {capability.removeprefix('can_')}"
            )
