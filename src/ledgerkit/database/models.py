"""SQLAlchemy models for the ledgerkit database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.pool import StaticPool

Base = declarative_base()

MONEY = Numeric(18, 2)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Chart of accounts model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    name_en = Column(String, nullable=True)
    account_type = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    description = Column(String, nullable=True)
    balance = Column(MONEY, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_current = Column(Boolean, default=True, nullable=False)
    is_cash = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    lines = relationship("JournalLine", back_populates="account")


class JournalEntry(Base):
    """Journal entry header model."""

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    description = Column(String, nullable=False)
    reference = Column(String, nullable=True, index=True)
    reference_type = Column(String, nullable=True)
    is_automatic = Column(Boolean, default=False, nullable=False)
    is_reversed = Column(Boolean, default=False, nullable=False)
    reversal_of = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    lines = relationship(
        "JournalLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.position",
    )


class JournalLine(Base):
    """Journal line model."""

    __tablename__ = "journal_lines"

    id = Column(Integer, primary_key=True)
    entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=False)
    position = Column(Integer, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    debit = Column(MONEY, default=0, nullable=False)
    credit = Column(MONEY, default=0, nullable=False)
    description = Column(String, nullable=True)

    entry = relationship("JournalEntry", back_populates="lines")
    account = relationship("Account", back_populates="lines")


class _CounterpartyColumns:
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    tax_id = Column(String, nullable=True)
    credit_limit = Column(MONEY, nullable=True)
    payment_terms = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Customer(_CounterpartyColumns, Base):
    """Customer model."""

    __tablename__ = "customers"


class Vendor(_CounterpartyColumns, Base):
    """Vendor model."""

    __tablename__ = "vendors"


class Invoice(Base):
    """Sale or purchase invoice model."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    invoice_number = Column(String, unique=True, nullable=False)
    invoice_type = Column(String, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    subtotal = Column(MONEY, nullable=False)
    tax_amount = Column(MONEY, default=0, nullable=False)
    total_amount = Column(MONEY, nullable=False)
    paid_amount = Column(MONEY, default=0, nullable=False)
    status = Column(String, nullable=False)
    tax_rate_id = Column(Integer, ForeignKey("tax_rates.id"), nullable=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    notes = Column(String, nullable=True)
    reference = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    payments = relationship("Payment", back_populates="invoice", order_by="Payment.id")


class Payment(Base):
    """Invoice payment model."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False)
    amount = Column(MONEY, nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String, nullable=False)
    reference = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    invoice = relationship("Invoice", back_populates="payments")


class TaxRate(Base):
    """Tax rate model."""

    __tablename__ = "tax_rates"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    name_en = Column(String, nullable=True)
    rate = Column(Numeric(8, 6), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class TaxSettings(Base):
    """Single-row tax settings model."""

    __tablename__ = "tax_settings"

    id = Column(Integer, primary_key=True)
    enabled = Column(Boolean, default=True, nullable=False)
    default_tax_rate_id = Column(Integer, ForeignKey("tax_rates.id"), nullable=True)
    include_tax_in_price = Column(Boolean, default=False, nullable=False)
    show_tax_on_receipts = Column(Boolean, default=True, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise each checkout sees an empty database
        engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
