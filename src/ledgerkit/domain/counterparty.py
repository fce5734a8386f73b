"""Customer and vendor domain service."""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    Customer as CustomerEntity,
    Invoice,
    InvoiceStatus,
    Vendor as VendorEntity,
    ZERO,
)
from ledgerkit.domain.errors import (
    HasOpenInvoicesError,
    NotFoundError,
    ValidationError,
    customer_not_found,
    vendor_not_found,
)
from ledgerkit.utils.amount_parser import to_amount

logger = logging.getLogger(__name__)

OPEN_STATUSES = (InvoiceStatus.ISSUED, InvoiceStatus.PARTIALLY_PAID)


def outstanding_total(invoices: list[Invoice]) -> Decimal:
    """Sum what is still owed on issued and partially paid invoices."""
    return sum(
        (inv.outstanding for inv in invoices if inv.status in OPEN_STATUSES),
        ZERO,
    )


def _clean_details(details: dict) -> dict:
    cleaned = {}
    for key, value in details.items():
        if isinstance(value, str):
            value = value.strip() or None
        if key == "credit_limit" and value is not None:
            try:
                value = to_amount(value)
            except ValueError as e:
                raise ValidationError(str(e))
            if value < ZERO:
                raise ValidationError("Credit limit cannot be negative")
        if key == "payment_terms" and value is not None:
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid payment terms: {value!r}")
            if value < 0:
                raise ValidationError("Payment terms cannot be negative")
        cleaned[key] = value
    return cleaned


class CounterpartyService:
    """Service for managing customers and vendors.

    Balances are never stored; they are derived from outstanding invoices
    each time a counterparty is read.
    """

    def __init__(self, db: Database):
        """Initialize counterparty service.

        Args:
            db: Database instance
        """
        self.db = db

    # Customers

    def create_customer(self, name: str, **details) -> int:
        """Create a new customer.

        Args:
            name: Customer name
            **details: email, phone, address, tax_id, credit_limit,
                payment_terms (days), notes

        Returns:
            Customer ID

        Raises:
            ValidationError: If name is empty or a detail is invalid
        """
        name = name.strip()
        if not name:
            raise ValidationError("Customer name cannot be empty")
        try:
            customer_id = self.db.create_customer(name, **_clean_details(details))
        except ValueError as e:
            raise ValidationError(str(e))
        logger.info("Created customer %s '%s'", customer_id, name)
        return customer_id

    def get_customer(self, customer_id: int) -> Optional[CustomerEntity]:
        """Get customer by ID, with the derived balance filled in."""
        customer = self.db.get_customer(customer_id)
        if customer is None:
            return None
        return replace(customer, balance=self.customer_balance(customer_id))

    def require_customer(self, customer_id: int) -> CustomerEntity:
        customer = self.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(customer_not_found(customer_id))
        return customer

    def list_customers(self, include_inactive: bool = False) -> list[CustomerEntity]:
        with self.db.locked():
            customers = self.db.list_customers(include_inactive=include_inactive)
            return [replace(c, balance=self.customer_balance(c.id)) for c in customers]

    def customer_balance(self, customer_id: int) -> Decimal:
        """Amount the customer still owes on open invoices."""
        return outstanding_total(self.db.list_invoices(customer_id=customer_id))

    def update_customer(self, customer_id: int, **fields) -> None:
        """Update customer fields.

        Raises:
            NotFoundError: If customer not found
            ValidationError: If a field is unknown or invalid
        """
        if self.db.get_customer(customer_id) is None:
            raise NotFoundError(customer_not_found(customer_id))
        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationError("Customer name cannot be empty")
        try:
            self.db.update_customer(customer_id, **_clean_details(fields))
        except ValueError as e:
            raise ValidationError(str(e))

    def deactivate_customer(self, customer_id: int) -> None:
        self.update_customer(customer_id, is_active=False)
        logger.info("Deactivated customer %s", customer_id)

    def delete_customer(self, customer_id: int) -> None:
        """Delete a customer that no invoice references.

        Raises:
            NotFoundError: If customer not found
            HasOpenInvoicesError: If any invoice references the customer
        """
        with self.db.transaction():
            if self.db.get_customer(customer_id) is None:
                raise NotFoundError(customer_not_found(customer_id))
            invoices = self.db.list_invoices(customer_id=customer_id)
            if invoices:
                raise HasOpenInvoicesError("customer", customer_id, len(invoices))
            self.db.delete_customer(customer_id)
        logger.info("Deleted customer %s", customer_id)

    # Vendors

    def create_vendor(self, name: str, **details) -> int:
        """Create a new vendor.

        Args:
            name: Vendor name
            **details: email, phone, address, tax_id, credit_limit,
                payment_terms (days), notes

        Returns:
            Vendor ID
        """
        name = name.strip()
        if not name:
            raise ValidationError("Vendor name cannot be empty")
        try:
            vendor_id = self.db.create_vendor(name, **_clean_details(details))
        except ValueError as e:
            raise ValidationError(str(e))
        logger.info("Created vendor %s '%s'", vendor_id, name)
        return vendor_id

    def get_vendor(self, vendor_id: int) -> Optional[VendorEntity]:
        vendor = self.db.get_vendor(vendor_id)
        if vendor is None:
            return None
        return replace(vendor, balance=self.vendor_balance(vendor_id))

    def require_vendor(self, vendor_id: int) -> VendorEntity:
        vendor = self.get_vendor(vendor_id)
        if vendor is None:
            raise NotFoundError(vendor_not_found(vendor_id))
        return vendor

    def list_vendors(self, include_inactive: bool = False) -> list[VendorEntity]:
        with self.db.locked():
            vendors = self.db.list_vendors(include_inactive=include_inactive)
            return [replace(v, balance=self.vendor_balance(v.id)) for v in vendors]

    def vendor_balance(self, vendor_id: int) -> Decimal:
        """Amount still owed to the vendor on open bills."""
        return outstanding_total(self.db.list_invoices(vendor_id=vendor_id))

    def update_vendor(self, vendor_id: int, **fields) -> None:
        if self.db.get_vendor(vendor_id) is None:
            raise NotFoundError(vendor_not_found(vendor_id))
        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationError("Vendor name cannot be empty")
        try:
            self.db.update_vendor(vendor_id, **_clean_details(fields))
        except ValueError as e:
            raise ValidationError(str(e))

    def deactivate_vendor(self, vendor_id: int) -> None:
        self.update_vendor(vendor_id, is_active=False)
        logger.info("Deactivated vendor %s", vendor_id)

    def delete_vendor(self, vendor_id: int) -> None:
        """Delete a vendor that no invoice references.

        Raises:
            NotFoundError: If vendor not found
            HasOpenInvoicesError: If any invoice references the vendor
        """
        with self.db.transaction():
            if self.db.get_vendor(vendor_id) is None:
                raise NotFoundError(vendor_not_found(vendor_id))
            invoices = self.db.list_invoices(vendor_id=vendor_id)
            if invoices:
                raise HasOpenInvoicesError("vendor", vendor_id, len(invoices))
            self.db.delete_vendor(vendor_id)
        logger.info("Deleted vendor %s", vendor_id)
