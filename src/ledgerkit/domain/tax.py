"""Tax rate and tax settings domain service."""

import logging
from dataclasses import replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    AccountType,
    TaxBreakdown,
    TaxRate as TaxRateEntity,
    TaxSettings,
    ZERO,
)
from ledgerkit.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    tax_rate_not_found,
)
from ledgerkit.utils.amount_parser import to_amount

logger = logging.getLogger(__name__)

RATE_PLACES = Decimal("0.0001")


class TaxService:
    """Service for managing tax rates and computing tax amounts."""

    def __init__(self, db: Database):
        """Initialize tax service.

        Args:
            db: Database instance
        """
        self.db = db

    def add_tax_rate(
        self,
        name: str,
        rate: Decimal | str | float,
        account_id: int,
        name_en: Optional[str] = None,
        description: Optional[str] = None,
    ) -> int:
        """Create a new tax rate.

        Args:
            name: Display name, e.g. "VAT 15%"
            rate: Rate as a fraction (0.15 for 15%)
            account_id: Liability account the collected tax is credited to

        Returns:
            Tax rate ID

        Raises:
            ValidationError: If name is empty, the rate is outside [0, 1]
                or the account is not a liability
            NotFoundError: If account not found
        """
        name = name.strip()
        if not name:
            raise ValidationError("Tax rate name cannot be empty")
        try:
            rate = Decimal(str(rate)).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)
        except ArithmeticError:
            raise ValidationError(f"Invalid tax rate: {rate}")
        if rate < 0 or rate > 1:
            raise ValidationError("Tax rate must be a fraction between 0 and 1")

        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if account.account_type != AccountType.LIABILITY:
            raise ValidationError(
                f"Tax account {account.code} must be a liability account, "
                f"not {account.account_type.value}"
            )

        tax_rate_id = self.db.create_tax_rate(
            name=name,
            rate=rate,
            account_id=account_id,
            name_en=name_en,
            description=description,
        )
        logger.info("Created tax rate %s '%s' at %s", tax_rate_id, name, rate)
        return tax_rate_id

    def get_tax_rate(self, tax_rate_id: int) -> Optional[TaxRateEntity]:
        return self.db.get_tax_rate(tax_rate_id)

    def require_tax_rate(self, tax_rate_id: int) -> TaxRateEntity:
        """Get tax rate by ID, raising NotFoundError when missing."""
        tax_rate = self.db.get_tax_rate(tax_rate_id)
        if tax_rate is None:
            raise NotFoundError(tax_rate_not_found(tax_rate_id))
        return tax_rate

    def list_tax_rates(self, include_inactive: bool = False) -> list[TaxRateEntity]:
        return self.db.list_tax_rates(include_inactive=include_inactive)

    def deactivate_tax_rate(self, tax_rate_id: int) -> None:
        """Deactivate a tax rate; it stays attached to existing invoices."""
        self.require_tax_rate(tax_rate_id)
        with self.db.transaction():
            self.db.update_tax_rate_active(tax_rate_id, False)
            settings = self.db.get_tax_settings()
            if settings.default_tax_rate_id == tax_rate_id:
                self.db.save_tax_settings(replace(settings, default_tax_rate_id=None))
        logger.info("Deactivated tax rate %s", tax_rate_id)

    def get_settings(self) -> TaxSettings:
        return self.db.get_tax_settings()

    def update_settings(
        self,
        enabled: Optional[bool] = None,
        default_tax_rate_id: Optional[int] = None,
        include_tax_in_price: Optional[bool] = None,
        show_tax_on_receipts: Optional[bool] = None,
    ) -> TaxSettings:
        """Update tax settings. Arguments left as None keep their value.

        Returns:
            The stored settings

        Raises:
            NotFoundError: If the default tax rate does not exist
            ValidationError: If the default tax rate is inactive
        """
        settings = self.db.get_tax_settings()
        changes = {}
        if enabled is not None:
            changes["enabled"] = enabled
        if include_tax_in_price is not None:
            changes["include_tax_in_price"] = include_tax_in_price
        if show_tax_on_receipts is not None:
            changes["show_tax_on_receipts"] = show_tax_on_receipts
        if default_tax_rate_id is not None:
            tax_rate = self.require_tax_rate(default_tax_rate_id)
            if not tax_rate.is_active:
                raise ValidationError(f"Tax rate {default_tax_rate_id} is inactive")
            changes["default_tax_rate_id"] = default_tax_rate_id

        settings = replace(settings, **changes)
        self.db.save_tax_settings(settings)
        return settings

    def resolve_rate(self, tax_rate_id: Optional[int] = None) -> Optional[TaxRateEntity]:
        """Return the given tax rate, or the default one when no ID is given."""
        if tax_rate_id is not None:
            return self.require_tax_rate(tax_rate_id)
        settings = self.db.get_tax_settings()
        if settings.default_tax_rate_id is None:
            return None
        return self.db.get_tax_rate(settings.default_tax_rate_id)

    def calculate_tax(
        self,
        amount: Decimal | str | int,
        tax_rate_id: Optional[int] = None,
        include_tax_in_price: Optional[bool] = None,
    ) -> TaxBreakdown:
        """Split an amount into subtotal, tax and total.

        When tax is included in the price the amount is the gross total and
        the tax is extracted from it; otherwise tax is added on top.

        Args:
            amount: Price as entered
            tax_rate_id: Rate to apply (defaults to the configured default rate)
            include_tax_in_price: Override the stored setting

        Returns:
            Tax breakdown; zero tax when tax is disabled or no rate applies

        Raises:
            ValidationError: If the amount is not a number
        """
        try:
            amount = to_amount(amount)
        except ValueError as e:
            raise ValidationError(str(e))
        settings = self.db.get_tax_settings()
        tax_rate = self.resolve_rate(tax_rate_id) if settings.enabled else None
        if tax_rate is None:
            return TaxBreakdown(subtotal=amount, tax=ZERO, total=amount, rate=Decimal("0"))

        inclusive = (
            settings.include_tax_in_price if include_tax_in_price is None else include_tax_in_price
        )
        if inclusive:
            subtotal = to_amount(amount / (1 + tax_rate.rate))
            tax = amount - subtotal
            total = amount
        else:
            subtotal = amount
            tax = to_amount(amount * tax_rate.rate)
            total = subtotal + tax
        return TaxBreakdown(
            subtotal=subtotal,
            tax=tax,
            total=total,
            rate=tax_rate.rate,
            tax_rate_id=tax_rate.id,
        )
