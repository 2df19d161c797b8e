"""
Typed records adapted from GiveWP database rows.

Rows are converted into these frozen dataclasses once, at the store boundary
(give_store.queries).  Everything downstream works against this closed set of
record and value types; the flattener in give_store.flatten knows how to turn
each of them into JSON-safe structures.

Records expose ``attributes()`` which returns their fields in declaration
order.  Value objects (Address, DonationFormLevel) expose ``to_dict()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

# ISO 4217 currencies whose minor unit is not 2 digits.  GiveWP formats
# amounts with the same exponents.
_ZERO_DECIMAL = frozenset({
    "BIF", "CLP", "DJF", "GNF", "ISK", "JPY", "KMF", "KRW", "PYG", "RWF",
    "UGX", "UYI", "VND", "VUV", "XAF", "XOF", "XPF",
})
_THREE_DECIMAL = frozenset({"BHD", "IQD", "JOD", "KWD", "LYD", "OMR", "TND"})


def minor_unit_digits(currency: str) -> int:
    """Number of decimal digits in the currency's minor unit (USD -> 2)."""
    code = currency.upper()
    if code in _ZERO_DECIMAL:
        return 0
    if code in _THREE_DECIMAL:
        return 3
    return 2


# ── Value objects ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Money:
    """An amount in the currency's minor unit (cents for USD)."""

    amount: int
    currency: str

    @classmethod
    def from_decimal(cls, value: Any, currency: str) -> "Money":
        """Build Money from a decimal string as GiveWP stores it ("10.50").

        Empty or malformed values become zero.
        """
        digits = minor_unit_digits(currency)
        try:
            dec = Decimal(str(value).strip() or "0")
        except InvalidOperation:
            dec = Decimal(0)
        if not dec.is_finite():
            dec = Decimal(0)
        minor = (dec * (10 ** digits)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return cls(amount=int(minor), currency=currency.upper())

    def format_to_decimal(self) -> str:
        """Return the amount as a decimal string, e.g. 1050 USD -> "10.50"."""
        digits = minor_unit_digits(self.currency)
        value = Decimal(self.amount).scaleb(-digits)
        return f"{value:.{digits}f}"

    def __str__(self) -> str:
        return f"{self.format_to_decimal()} {self.currency}"


@dataclass(frozen=True)
class Address:
    """Billing address captured with a donation."""

    country: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

    def to_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class DonationFormLevel:
    """One preset amount on a multi-level donation form."""

    id: str
    amount: Money
    label: str = ""
    is_default: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amount": self.amount,
            "label": self.label,
            "is_default": self.is_default,
        }


# ── Enumerations ──────────────────────────────────────────────────────────────

class _StrEnum(str, Enum):
    """Enum whose string form is its stored value."""

    def __str__(self) -> str:
        return str(self.value)


class DonationStatus(_StrEnum):
    COMPLETE = "publish"
    PENDING = "pending"
    PROCESSING = "processing"
    REFUNDED = "refunded"
    REVOKED = "revoked"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ABANDONED = "abandoned"
    PREAPPROVAL = "preapproval"
    RENEWAL = "give_subscription"
    TRASH = "trash"


class DonationMode(_StrEnum):
    LIVE = "live"
    TEST = "test"


class DonationType(_StrEnum):
    SINGLE = "single"
    SUBSCRIPTION = "subscription"
    RENEWAL = "renewal"


class SubscriptionStatus(_StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILING = "failing"
    CANCELLED = "cancelled"
    ABANDONED = "abandoned"
    SUSPENDED = "suspended"
    PAUSED = "paused"


class SubscriptionPeriod(_StrEnum):
    DAY = "day"
    WEEK = "week"
    QUARTER = "quarter"
    MONTH = "month"
    YEAR = "year"


class CampaignStatus(_StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"
    PENDING = "pending"
    PROCESSING = "processing"
    FAILED = "failed"
    ARCHIVED = "archived"


class CampaignGoalType(_StrEnum):
    AMOUNT = "amount"
    DONATIONS = "donations"
    DONORS = "donors"
    AMOUNT_FROM_SUBSCRIPTIONS = "amountFromSubscriptions"
    SUBSCRIPTIONS = "subscriptions"
    DONORS_FROM_SUBSCRIPTIONS = "donorsFromSubscriptions"


def coerce_enum(enum_cls: type[Enum], value: Any) -> Any:
    """Return ``enum_cls(value)`` or the raw value when it is not a member."""
    try:
        return enum_cls(value)
    except ValueError:
        return value


# ── Records ───────────────────────────────────────────────────────────────────

class _Record:
    """Mixin giving dataclass records an ordered ``attributes()`` export."""

    def attributes(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}  # type: ignore[arg-type]


@dataclass(frozen=True)
class Donation(_Record):
    id: int
    form_id: int
    form_title: str
    purchase_key: str
    donor_ip: str
    created_at: datetime | None
    updated_at: datetime | None
    status: DonationStatus | str
    type: DonationType
    mode: DonationMode | str
    amount: Money
    fee_amount_recovered: Money | None
    exchange_rate: str
    gateway_id: str
    donor_id: int
    honorific: str
    first_name: str
    last_name: str
    email: str
    phone: str
    subscription_id: int
    parent_id: int
    billing_address: Address
    anonymous: bool
    level_id: str
    gateway_transaction_id: str
    company: str
    comment: str


@dataclass(frozen=True)
class Donor(_Record):
    id: int
    user_id: int
    created_at: datetime | None
    name: str
    prefix: str
    first_name: str
    last_name: str
    email: str
    phone: str
    additional_emails: list[str] = field(default_factory=list)
    total_amount_donated: Money | None = None
    total_number_of_donations: int = 0


@dataclass(frozen=True)
class Subscription(_Record):
    id: int
    donation_form_id: int
    created_at: datetime | None
    renews_at: datetime | None
    donor_id: int
    period: SubscriptionPeriod | str
    frequency: int
    installments: int
    transaction_id: str
    amount: Money
    fee_amount_recovered: Money
    status: SubscriptionStatus | str
    gateway_subscription_id: str
    parent_donation_id: int


@dataclass(frozen=True)
class Campaign(_Record):
    id: int
    page_id: int
    default_form_id: int
    type: str
    title: str
    url: str
    short_description: str
    long_description: str
    logo: str
    image: str
    primary_color: str
    secondary_color: str
    goal: int
    goal_type: CampaignGoalType | str
    status: CampaignStatus | str
    start_date: datetime | None
    end_date: datetime | None
    created_at: datetime | None


@dataclass(frozen=True)
class DonationForm(_Record):
    id: int
    title: str
    status: str
    created_at: datetime | None
    updated_at: datetime | None
    levels: list[DonationFormLevel]
    goal_option: bool
    total_number_of_donations: int
    total_amount_donated: Money
