from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from flask_login import UserMixin
from sqlalchemy import CheckConstraint, Enum as SAEnum, ForeignKey, Index, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from werkzeug.security import generate_password_hash

from app.core.errors import BadRequestError
from app.core.extensions import db

CENTS = Decimal("0.01")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_money(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(CENTS)


class PricingSection(str, Enum):
    MUHACHA = "MUHACHA"
    LAWN = "LAWN"
    DONHODZO = "DONHODZO"
    FAMILY = "FAMILY"


class AgeBand(str, Enum):
    UNDER_60 = "UNDER_60"
    OVER_60 = "OVER_60"


class PurchaseKind(str, Enum):
    IMMEDIATE = "IMMEDIATE"
    FUTURE = "FUTURE"


class PurchaseStatus(str, Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    REDEEMED = "REDEEMED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    MANUAL = "MANUAL"
    PAYNOW = "PAYNOW"
    LEGACY = "LEGACY"


class PaymentStatus(str, Enum):
    INITIATED = "INITIATED"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"


class BurialStatus(str, Enum):
    PENDING_WAIVER_APPROVAL = "PENDING_WAIVER_APPROVAL"
    PENDING_GRAVE_ASSIGNMENT = "PENDING_GRAVE_ASSIGNMENT"
    GRAVE_ASSIGNED = "GRAVE_ASSIGNED"
    BURIED = "BURIED"


class WaiverType(str, Enum):
    DONATION = "DONATION"
    HARDSHIP = "HARDSHIP"
    OTHER = "OTHER"


class WaiverStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AssignmentRequestStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class OutboxStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


PURCHASE_TRANSITIONS: dict[PurchaseStatus, set[PurchaseStatus]] = {
    PurchaseStatus.PENDING_PAYMENT: {
        PurchaseStatus.PARTIALLY_PAID,
        PurchaseStatus.PAID,
        PurchaseStatus.CANCELLED,
    },
    PurchaseStatus.PARTIALLY_PAID: {
        PurchaseStatus.PARTIALLY_PAID,
        PurchaseStatus.PAID,
        PurchaseStatus.CANCELLED,
    },
    PurchaseStatus.PAID: {PurchaseStatus.REDEEMED},
    PurchaseStatus.REDEEMED: set(),
    PurchaseStatus.CANCELLED: set(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.INITIATED: {PaymentStatus.SUCCESS, PaymentStatus.FAILED, PaymentStatus.EXPIRED},
    PaymentStatus.SUCCESS: set(),
    PaymentStatus.FAILED: set(),
    PaymentStatus.EXPIRED: set(),
}

BURIAL_TRANSITIONS: dict[BurialStatus, set[BurialStatus]] = {
    BurialStatus.PENDING_WAIVER_APPROVAL: {BurialStatus.PENDING_GRAVE_ASSIGNMENT},
    BurialStatus.PENDING_GRAVE_ASSIGNMENT: {BurialStatus.GRAVE_ASSIGNED},
    BurialStatus.GRAVE_ASSIGNED: {BurialStatus.BURIED},
    BurialStatus.BURIED: set(),
}

WAIVER_TRANSITIONS: dict[WaiverStatus, set[WaiverStatus]] = {
    WaiverStatus.PENDING: {WaiverStatus.APPROVED, WaiverStatus.REJECTED},
    WaiverStatus.APPROVED: set(),
    WaiverStatus.REJECTED: set(),
}

ASSIGNMENT_REQUEST_TRANSITIONS: dict[AssignmentRequestStatus, set[AssignmentRequestStatus]] = {
    AssignmentRequestStatus.PENDING: {AssignmentRequestStatus.COMPLETED},
    AssignmentRequestStatus.COMPLETED: set(),
}


def check_transition(table: dict, current: Enum, target: Enum, label: str) -> None:
    if target not in table.get(current, set()):
        raise BadRequestError(f"Invalid {label} transition: {current.value} -> {target.value}")


class Staff(UserMixin, db.Model):
    __tablename__ = "staff"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(db.String(120), nullable=False)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    level: Mapped[int] = mapped_column(nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class Member(db.Model):
    __tablename__ = "member"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(db.String(60), nullable=False)
    last_name: Mapped[str] = mapped_column(db.String(120), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    phone: Mapped[str] = mapped_column(db.String(30), nullable=False, default="")
    date_of_birth: Mapped[date | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    purchases = relationship("Purchase", back_populates="member", foreign_keys="Purchase.member_id")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Product(db.Model):
    __tablename__ = "product"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(db.String(120), nullable=False)
    amount: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False)
    active: Mapped[bool] = mapped_column(default=True, nullable=False)
    pricing_section: Mapped[PricingSection | None] = mapped_column(
        SAEnum(PricingSection, name="pricing_section"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class InstallmentPlan(db.Model):
    __tablename__ = "installment_plan"
    __table_args__ = (CheckConstraint("months > 0", name="ck_installment_plan_months"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(db.String(60), unique=True, nullable=False)
    months: Mapped[int] = mapped_column(nullable=False)

    prices = relationship("PlanPrice", back_populates="plan", cascade="all, delete-orphan")


class PlanPrice(db.Model):
    # Monthly installment matrix: one row per (plan, section, age band)
    __tablename__ = "plan_price"
    __table_args__ = (
        UniqueConstraint("plan_id", "section", "age_band", name="uq_plan_price_cell"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    plan_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("installment_plan.id"), nullable=False)
    section: Mapped[PricingSection] = mapped_column(SAEnum(PricingSection, name="pricing_section"), nullable=False)
    age_band: Mapped[AgeBand] = mapped_column(SAEnum(AgeBand, name="age_band"), nullable=False)
    monthly_amount: Mapped[Decimal | None] = mapped_column(db.Numeric(10, 2), nullable=True)

    plan = relationship("InstallmentPlan", back_populates="prices")


class Purchase(db.Model):
    __tablename__ = "purchase"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_purchase_balance"),
        CheckConstraint("paid_amount >= 0", name="ck_purchase_paid"),
        CheckConstraint("plan_id IS NULL OR kind = 'FUTURE'", name="ck_purchase_plan_kind"),
        Index("ix_purchase_kind_status_created", "kind", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    member_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("member.id"), nullable=False, index=True)
    product_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("product.id"), nullable=False)
    kind: Mapped[PurchaseKind] = mapped_column(SAEnum(PurchaseKind, name="purchase_kind"), nullable=False)
    plan_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("installment_plan.id"), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    balance: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False)
    status: Mapped[PurchaseStatus] = mapped_column(
        SAEnum(PurchaseStatus, name="purchase_status"),
        nullable=False,
        default=PurchaseStatus.PENDING_PAYMENT,
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    redeemed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    redeemed_by_member_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("member.id"), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)

    member = relationship("Member", back_populates="purchases", foreign_keys=[member_id])
    product = relationship("Product")
    plan = relationship("InstallmentPlan")
    payments = relationship("Payment", back_populates="purchase", order_by="Payment.created_at")
    burial_case = relationship("BurialCase", back_populates="purchase", uselist=False)
    plot_slot = relationship("PlotSlot", back_populates="purchase", uselist=False)


class Payment(db.Model):
    __tablename__ = "payment"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount"),
        Index("ix_payment_status_created", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    purchase_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("purchase.id"), nullable=False, index=True)
    member_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("member.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(db.Numeric(10, 2), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(SAEnum(PaymentMethod, name="payment_method"), nullable=False)
    reference: Mapped[str] = mapped_column(db.String(80), unique=True, nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.INITIATED,
    )
    poll_url: Mapped[str | None] = mapped_column(db.String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    purchase = relationship("Purchase", back_populates="payments")


@dataclass(frozen=True)
class PurchaseFunding:
    purchase_id: uuid.UUID


@dataclass(frozen=True)
class WaiverFunding:
    waiver_type: WaiverType
    reason: str


class BurialCase(db.Model):
    # One decedent; funded by exactly one of purchase or waiver.
    __tablename__ = "burial_case"
    __table_args__ = (Index("ix_burial_case_status_created", "status", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    purchase_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("purchase.id"), unique=True, nullable=True)
    full_name: Mapped[str] = mapped_column(db.String(160), nullable=False)
    date_of_birth: Mapped[date | None] = mapped_column(nullable=True)
    gender: Mapped[str] = mapped_column(db.String(20), nullable=False, default="")
    address: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")
    relationship_to_member: Mapped[str] = mapped_column("relationship", db.String(60), nullable=False, default="")
    cause_of_death: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    funeral_parlor: Mapped[str | None] = mapped_column(db.String(120), nullable=True)
    date_of_death: Mapped[date] = mapped_column(nullable=False)
    expected_burial: Mapped[datetime | None] = mapped_column(nullable=True)
    burial_date: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    status: Mapped[BurialStatus] = mapped_column(SAEnum(BurialStatus, name="burial_status"), nullable=False)
    created_by_staff_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("staff.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    purchase = relationship("Purchase", back_populates="burial_case")
    next_of_kin = relationship("NextOfKin", back_populates="burial_case", uselist=False, cascade="all, delete-orphan")
    waiver = relationship("Waiver", back_populates="burial_case", uselist=False, cascade="all, delete-orphan")
    plot_slot = relationship("PlotSlot", back_populates="burial_case", uselist=False)
    assignment_requests = relationship(
        "AssignmentRequest",
        back_populates="burial_case",
        order_by="AssignmentRequest.created_at",
        cascade="all, delete-orphan",
    )

    @property
    def funding(self) -> PurchaseFunding | WaiverFunding | None:
        if self.purchase_id is not None:
            return PurchaseFunding(self.purchase_id)
        if self.waiver is not None:
            return WaiverFunding(self.waiver.waiver_type, self.waiver.reason)
        return None


class NextOfKin(db.Model):
    __tablename__ = "next_of_kin"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("burial_case.id"), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(db.String(160), nullable=False)
    relationship_to_deceased: Mapped[str] = mapped_column("relationship", db.String(60), nullable=False)
    phone: Mapped[str] = mapped_column(db.String(30), nullable=False)
    email: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    address: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")
    is_buyer: Mapped[bool] = mapped_column(nullable=False, default=False)

    burial_case = relationship("BurialCase", back_populates="next_of_kin")


class Waiver(db.Model):
    __tablename__ = "waiver"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("burial_case.id"), unique=True, nullable=False)
    waiver_type: Mapped[WaiverType] = mapped_column(SAEnum(WaiverType, name="waiver_type"), nullable=False)
    reason: Mapped[str] = mapped_column(db.String(500), nullable=False, default="")
    status: Mapped[WaiverStatus] = mapped_column(
        SAEnum(WaiverStatus, name="waiver_status"),
        nullable=False,
        default=WaiverStatus.PENDING,
    )
    approved_by_staff_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("staff.id"), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejected_by_staff_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("staff.id"), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(db.String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    burial_case = relationship("BurialCase", back_populates="waiver")


class AssignmentRequest(db.Model):
    __tablename__ = "assignment_request"
    __table_args__ = (Index("ix_assignment_request_case_status", "case_id", "status", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    case_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("burial_case.id"), nullable=False)
    requested_section: Mapped[PricingSection | None] = mapped_column(
        SAEnum(PricingSection, name="pricing_section"),
        nullable=True,
    )
    status: Mapped[AssignmentRequestStatus] = mapped_column(
        SAEnum(AssignmentRequestStatus, name="assignment_request_status"),
        nullable=False,
        default=AssignmentRequestStatus.PENDING,
    )
    requested_by_staff_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("staff.id"), nullable=True)
    assigned_by_staff_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("staff.id"), nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(db.String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    burial_case = relationship("BurialCase", back_populates="assignment_requests")


class Grave(db.Model):
    __tablename__ = "grave"
    __table_args__ = (
        UniqueConstraint("section", "grave_number", name="uq_grave_location"),
        CheckConstraint("capacity > 0", name="ck_grave_capacity"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    section: Mapped[PricingSection] = mapped_column(SAEnum(PricingSection, name="pricing_section"), nullable=False)
    grave_number: Mapped[str] = mapped_column(db.String(30), nullable=False)
    capacity: Mapped[int] = mapped_column(nullable=False, default=2)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    slots = relationship("PlotSlot", back_populates="grave", order_by="PlotSlot.slot_number")

    @property
    def location_label(self) -> str:
        return f"{self.section.value} / G{self.grave_number}"


class PlotSlot(db.Model):
    __tablename__ = "plot_slot"
    __table_args__ = (
        UniqueConstraint("grave_id", "slot_number", name="uq_plot_slot_grave_number"),
        CheckConstraint("slot_number >= 1", name="ck_plot_slot_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    grave_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("grave.id"), nullable=False)
    slot_number: Mapped[int] = mapped_column(nullable=False)
    purchase_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("purchase.id"), unique=True, nullable=True)
    case_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("burial_case.id"), unique=True, nullable=True)
    price_at_assignment: Mapped[Decimal | None] = mapped_column(db.Numeric(10, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    grave = relationship("Grave", back_populates="slots")
    purchase = relationship("Purchase", back_populates="plot_slot")
    burial_case = relationship("BurialCase", back_populates="plot_slot")


class NotificationOutbox(db.Model):
    __tablename__ = "notification_outbox"
    __table_args__ = (Index("ix_notification_outbox_status_created", "status", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    event_type: Mapped[str] = mapped_column(db.String(60), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[OutboxStatus] = mapped_column(
        SAEnum(OutboxStatus, name="outbox_status"),
        nullable=False,
        default=OutboxStatus.PENDING,
    )
    attempts: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)


def _plan_prices(plan: InstallmentPlan, matrix: dict[PricingSection, tuple[str, str]]) -> list[PlanPrice]:
    rows: list[PlanPrice] = []
    for section, (under_60, over_60) in matrix.items():
        rows.append(PlanPrice(plan=plan, section=section, age_band=AgeBand.UNDER_60, monthly_amount=Decimal(under_60)))
        rows.append(PlanPrice(plan=plan, section=section, age_band=AgeBand.OVER_60, monthly_amount=Decimal(over_60)))
    return rows


def seed_demo_data(session) -> None:
    admin = Staff(
        email="admin@memorialpark.local",
        full_name="Park Administrator",
        password_hash=generate_password_hash("admin123"),
        level=5,
    )
    office = Staff(
        email="office@memorialpark.local",
        full_name="Office Clerk",
        password_hash=generate_password_hash("office123"),
        level=2,
    )
    site = Staff(
        email="site@memorialpark.local",
        full_name="Site Operations",
        password_hash=generate_password_hash("site123"),
        level=3,
    )
    session.add_all([admin, office, site])

    lawn = Product(title="Lawn Grave", amount=Decimal("1000.00"), pricing_section=PricingSection.LAWN)
    family = Product(title="Family Grave", amount=Decimal("2500.00"), pricing_section=PricingSection.FAMILY)
    muhacha = Product(title="Muhacha Grave", amount=Decimal("800.00"), pricing_section=PricingSection.MUHACHA)
    donhodzo = Product(title="Donhodzo Grave", amount=Decimal("1200.00"), pricing_section=PricingSection.DONHODZO)
    chapel = Product(title="Chapel Service", amount=Decimal("150.00"))
    retired = Product(
        title="Legacy Lawn Grave (retired)",
        amount=Decimal("900.00"),
        pricing_section=PricingSection.LAWN,
        active=False,
    )
    session.add_all([lawn, family, muhacha, donhodzo, chapel, retired])

    ten_months = InstallmentPlan(name="10 Months", months=10)
    twelve_months = InstallmentPlan(name="12 Months", months=12)
    twenty_four_months = InstallmentPlan(name="24 Months", months=24)
    session.add_all([ten_months, twelve_months, twenty_four_months])
    session.add_all(
        _plan_prices(
            ten_months,
            {
                PricingSection.LAWN: ("120.00", "135.00"),
                PricingSection.FAMILY: ("280.00", "310.00"),
                PricingSection.MUHACHA: ("95.00", "105.00"),
            },
        )
        + _plan_prices(
            twelve_months,
            {
                PricingSection.LAWN: ("100.00", "115.00"),
                PricingSection.FAMILY: ("235.00", "260.00"),
                PricingSection.MUHACHA: ("80.00", "90.00"),
                PricingSection.DONHODZO: ("115.00", "125.00"),
            },
        )
        + _plan_prices(
            twenty_four_months,
            {
                PricingSection.LAWN: ("55.00", "62.50"),
                PricingSection.FAMILY: ("125.00", "140.00"),
            },
        )
    )

    session.add_all(
        [
            Member(
                first_name="Tendai",
                last_name="Moyo",
                email="tendai.moyo@example.com",
                phone="0771234567",
                date_of_birth=date(1980, 5, 14),
            ),
            Member(
                first_name="Rudo",
                last_name="Chikore",
                email="rudo.chikore@example.com",
                phone="0772345678",
                date_of_birth=date(1950, 11, 2),
            ),
            Member(
                first_name="Farai",
                last_name="Ncube",
                phone="0773456789",
                date_of_birth=None,
            ),
        ]
    )
    session.commit()
