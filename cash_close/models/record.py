"""
Core Data Models for Cash Close

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce non-negative, two-decimal money everywhere
2. Provide clear validation error messages
3. Be serializable for storage (one JSON document per date)
4. Carry the audit trail with the record it describes

DESIGN DECISION: Money is Decimal, quantized to cents on the way in.
Floats from the UI are converted through their string form so that
12.1 stays 12.10 and never becomes 12.0999...
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from cash_close.models.audit import AuditEntry, utc_now


CENTS = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """
    Quantize a currency value to two decimals (ROUND_HALF_UP).

    Accepts Decimal, int, float or strings using either '.' or ','
    as the decimal separator.
    """
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, bool):
        raise ValueError("Boolean is not a currency amount")
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", ".")
        try:
            amount = Decimal(cleaned or "0")
        except InvalidOperation:
            raise ValueError(f"Not a currency amount: {value!r}")
    else:
        raise ValueError(f"Not a currency amount: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Not a currency amount: {value!r}")
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


Money = Annotated[Decimal, BeforeValidator(to_money), Field(ge=0)]
PositiveMoney = Annotated[Decimal, BeforeValidator(to_money), Field(gt=0)]


def new_item_id() -> str:
    return uuid4().hex[:12]


def validate_iso_date(value: str) -> str:
    """Closing dates are zero-padded ISO strings, so string order is date order."""
    try:
        parsed = date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid closing date: {value!r} (expected YYYY-MM-DD)")
    if parsed.isoformat() != value:
        raise ValueError(f"Invalid closing date: {value!r} (expected YYYY-MM-DD)")
    return value


def format_display_date(iso_date: str) -> str:
    """2024-01-10 -> 10/01/2024"""
    return "/".join(reversed(iso_date.split("-")))


def format_money(amount: Decimal, symbol: str = "R$") -> str:
    return f"{symbol} {to_money(amount):.2f}"


# =============================================================================
# ENUMS
# =============================================================================

class StaffRole(str, Enum):
    """Roles in the staff directory."""
    MOTOBOY = "Motoboy"
    KITCHEN = "Cozinha"
    ATTENDANT = "Atendente"


class StaffShift(str, Enum):
    DAY = "Diurno"
    NIGHT = "Noturno"


class SalesChannel(str, Enum):
    """
    The three sales channels of a closing.

    Order here is the order channels are compared and printed.
    """
    IFOOD = "ifood"
    KCMS = "kcms"
    SGV = "sgv"

    @property
    def label(self) -> str:
        return _CHANNEL_LABELS[self]


_CHANNEL_LABELS = {
    SalesChannel.IFOOD: "iFood",
    SalesChannel.KCMS: "KCMS",
    SalesChannel.SGV: "SGV",
}


# =============================================================================
# STAFF DIRECTORY
# =============================================================================

class StaffMember(BaseModel):
    """An entry of the staff directory (managed outside this package)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    pix_key: str = ""
    phone: str = ""
    role: StaffRole = StaffRole.ATTENDANT
    shift: StaffShift = StaffShift.DAY


def staff_name_map(staff: list[StaffMember]) -> dict[str, str]:
    return {member.id: member.name for member in staff}


# =============================================================================
# RECORD PARTS
# =============================================================================

class SalesChannels(BaseModel):
    """Gross sales per channel for one day."""

    ifood: Money = Decimal("0.00")
    kcms: Money = Decimal("0.00")
    sgv: Money = Decimal("0.00")

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_keys(cls, data: Any) -> Any:
        """Older records stored KCMS and SGV as app2 and app3."""
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("kcms") and data.get("app2"):
                data["kcms"] = data.pop("app2")
            if not data.get("sgv") and data.get("app3"):
                data["sgv"] = data.pop("app3")
        return data

    def amount_for(self, channel: SalesChannel) -> Decimal:
        return getattr(self, channel.value)

    @property
    def total(self) -> Decimal:
        return self.ifood + self.kcms + self.sgv


class StaffPayment(BaseModel):
    """Money owed to one staff member for the day."""

    staff_id: str = Field(..., min_length=1)
    amount: Money
    delivery_count: Optional[int] = Field(
        default=None,
        ge=0,
        description="Deliveries made (riders only)"
    )
    is_paid: Optional[bool] = Field(
        default=None,
        description="Whether the amount was already handed over"
    )


class DebtItem(BaseModel):
    """Money a customer owes the business (fiado)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_item_id)
    name: str = Field(..., min_length=1, max_length=200)
    amount: PositiveMoney


class PendingItem(BaseModel):
    """
    Money the business owes someone (a pendency).

    Informational only: it does not reduce the cash balance.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_item_id)
    name: str = Field(..., min_length=1, max_length=200)
    amount: PositiveMoney
    reference_date: Optional[str] = Field(
        default=None,
        description="Date the obligation refers to (YYYY-MM-DD)"
    )

    @field_validator("reference_date")
    @classmethod
    def validate_reference_date(cls, v: Optional[str]) -> Optional[str]:
        if v:
            return validate_iso_date(v)
        return None


class RiderLedger(BaseModel):
    """Per-ride costs of third-party (iFood) riders; count and total are derived."""

    rides: list[Money] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def accept_total_only(cls, data: Any) -> Any:
        """Records saved before per-ride tracking only kept a total."""
        if isinstance(data, dict) and not data.get("rides"):
            total = data.get("total_cost", data.get("totalCost"))
            if total and to_money(total) > 0:
                return {"rides": [total]}
        return data

    @computed_field
    @property
    def count(self) -> int:
        return len(self.rides)

    @computed_field
    @property
    def total_cost(self) -> Decimal:
        return sum(self.rides, Decimal("0.00"))


class DeliveryCommand(BaseModel):
    """One order ticket delivered by an in-house rider."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_item_id)
    code: str = Field(..., min_length=1, max_length=50)
    type: str = Field(default="Cartão", max_length=50)
    payment_method: Optional[str] = None
    amount: Money
    delivery_fee: Optional[Money] = None
    timestamp: datetime = Field(default_factory=utc_now)


# =============================================================================
# DAILY RECORD
# =============================================================================

class DailyRecord(BaseModel):
    """
    The full financial snapshot for one calendar date.

    The date string is both identity and natural key: there is at most one
    record per date in any store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: str = Field(..., description="Closing date (YYYY-MM-DD)")
    sales: SalesChannels = Field(default_factory=SalesChannels)
    payments: list[StaffPayment] = Field(default_factory=list)
    debts: list[DebtItem] = Field(default_factory=list)
    pending_payables: list[PendingItem] = Field(default_factory=list)
    rider_ledger: Optional[RiderLedger] = None
    rider_commands: dict[str, list[DeliveryCommand]] = Field(default_factory=dict)
    notes: str = ""
    closed_by_staff_id: Optional[str] = None
    is_closed: bool = True

    audit_log: list[AuditEntry] = Field(default_factory=list)
    reconciled_prior_dates: list[str] = Field(
        default_factory=list,
        description="Prior closing dates whose unpaid staff were carried into this record"
    )

    # Optimistic concurrency stamp, incremented on every save
    version: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return validate_iso_date(v)

    @model_validator(mode="after")
    def validate_unique_payments(self) -> "DailyRecord":
        seen = set()
        for payment in self.payments:
            if payment.staff_id in seen:
                raise ValueError(f"Duplicate payment for staff {payment.staff_id}")
            seen.add(payment.staff_id)
        return self

    @property
    def total_staff_payments(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal("0.00"))

    @property
    def total_debts(self) -> Decimal:
        return sum((d.amount for d in self.debts), Decimal("0.00"))

    @property
    def total_pending(self) -> Decimal:
        return sum((p.amount for p in self.pending_payables), Decimal("0.00"))

    def payment_for(self, staff_id: str) -> Optional[StaffPayment]:
        for payment in self.payments:
            if payment.staff_id == staff_id:
                return payment
        return None


# =============================================================================
# EDIT BUFFER
# =============================================================================

class ClosingDraft(BaseModel):
    """
    The operator's in-progress edit of one day's closing.

    Mirrors the form state: payments are keyed by staff id and a staff id
    can be "active" without an amount yet. `base_version` is the stored
    version the draft was loaded from (None for a new day).
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    date: str
    sales: SalesChannels = Field(default_factory=SalesChannels)
    payments: dict[str, Money] = Field(default_factory=dict)
    delivery_counts: dict[str, int] = Field(default_factory=dict)
    paid_flags: dict[str, bool] = Field(default_factory=dict)
    active_staff_ids: list[str] = Field(default_factory=list)
    debts: list[DebtItem] = Field(default_factory=list)
    pending_payables: list[PendingItem] = Field(default_factory=list)
    notes: str = ""
    closed_by_staff_id: str = ""
    rides: list[Money] = Field(default_factory=list)
    rider_commands: dict[str, list[DeliveryCommand]] = Field(default_factory=dict)
    reconciled_prior_dates: list[str] = Field(default_factory=list)
    base_version: Optional[int] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        return validate_iso_date(v)

    def activate_staff(self, staff_id: str, amount: Any = None, delivery_count: Optional[int] = None) -> None:
        """Add a staff member to the day's payment list (idempotent)."""
        if staff_id not in self.active_staff_ids:
            self.active_staff_ids = [*self.active_staff_ids, staff_id]
        if amount is not None:
            self.payments = {**self.payments, staff_id: amount}
        if delivery_count is not None:
            self.delivery_counts = {**self.delivery_counts, staff_id: delivery_count}

    def deactivate_staff(self, staff_id: str) -> None:
        """Remove a staff member and forget their amount and delivery count."""
        self.active_staff_ids = [sid for sid in self.active_staff_ids if sid != staff_id]
        self.payments = {k: v for k, v in self.payments.items() if k != staff_id}
        self.delivery_counts = {k: v for k, v in self.delivery_counts.items() if k != staff_id}
        self.paid_flags = {k: v for k, v in self.paid_flags.items() if k != staff_id}

    @property
    def total_sales(self) -> Decimal:
        return self.sales.total
