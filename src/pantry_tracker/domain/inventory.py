"""Domain models for inventory locations and their movements."""

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, model_validator

from pantry_tracker.domain.products import Product

EXPIRING_SOON_DAYS = 3
_SECONDS_PER_DAY = 86400


class StorageLocation(StrEnum):
    """Where a quantity of a product sits."""

    FRIDGE = "fridge"
    FREEZER = "freezer"
    PANTRY = "pantry"
    SHOPPING = "shopping"


class MovementType(StrEnum):
    """Kind of inventory transition recorded in the movement log."""

    ADD = "add"
    MOVE = "move"
    CONSUME = "consume"
    REMOVE = "remove"


class LocationState(StrEnum):
    """Lifecycle state of a location row."""

    ACTIVE = "active"
    CONSUMED = "consumed"
    REMOVED = "removed"


@dataclass(frozen=True)
class UserProduct:
    """Per-user relationship to a catalog product."""

    id: UUID
    user_id: UUID
    product_id: UUID
    first_added: datetime
    last_used: datetime | None
    is_active: bool


@dataclass(frozen=True)
class InventoryLocation:
    """A quantity of a user product sitting in one location."""

    id: UUID
    user_product_id: UUID
    user_id: UUID
    product_id: UUID
    location: StorageLocation
    quantity: float
    unit: str
    added_at: datetime
    purchase_date: datetime | None = None
    expiry_date: datetime | None = None
    price: float | None = None
    store: str | None = None
    notes: str | None = None
    is_consumed: bool = False
    consumed_at: datetime | None = None
    removed_at: datetime | None = None

    @property
    def state(self) -> LocationState:
        if self.removed_at is not None:
            return LocationState.REMOVED
        if self.is_consumed:
            return LocationState.CONSUMED
        return LocationState.ACTIVE


@dataclass(frozen=True)
class LocationDraft:
    """Fields for a new active location row."""

    user_product_id: UUID
    user_id: UUID
    product_id: UUID
    location: StorageLocation
    quantity: float
    unit: str
    purchase_date: datetime | None = None
    expiry_date: datetime | None = None
    price: float | None = None
    store: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class LocationView:
    """Location row annotated with its product and expiry urgency."""

    location: InventoryLocation
    product: Product | None
    days_until_expiry: int | None
    is_expiring_soon: bool


@dataclass(frozen=True)
class ItemMovement:
    """Immutable audit record of an inventory transition."""

    id: UUID
    user_id: UUID
    product_id: UUID
    movement_type: MovementType
    quantity: float
    from_location: StorageLocation | None
    to_location: StorageLocation | None
    note: str | None
    created_at: datetime


@dataclass(frozen=True)
class InventoryChange:
    """Result of a state transition on a location."""

    location: LocationView
    movements: list[ItemMovement]
    audit_failures: list[str]


@dataclass(frozen=True)
class LocationFilters:
    """Filters for listing inventory locations."""

    location: StorageLocation | None = None
    category: str | None = None
    is_consumed: bool | None = False
    expiring_before: datetime | None = None


@dataclass(frozen=True)
class LocationPage:
    """A page of annotated locations."""

    items: list[LocationView]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


@dataclass(frozen=True)
class UserProductSummary:
    """A user's product with its on-hand totals across active locations."""

    user_product: UserProduct
    product: Product | None
    total_quantity: float
    active_locations: int


class LocationPatch(BaseModel):
    """Partial update for a location row; only explicitly set fields apply."""

    quantity: float | None = None
    unit: str | None = None
    location: StorageLocation | None = None
    expiry_date: datetime | None = None
    price: float | None = None
    store: str | None = None
    notes: str | None = None
    is_consumed: bool | None = None
    consumed_quantity: float | None = None

    @model_validator(mode="after")
    def _consistent_consumption(self) -> "LocationPatch":
        if self.is_consumed is False and self.consumed_quantity is not None:
            raise ValueError("consumed_quantity conflicts with is_consumed=false")
        return self


def days_until_expiry(expiry_date: datetime | None, now: datetime) -> int | None:
    """Whole days until expiry, rounded up; None without an expiry date."""
    if expiry_date is None:
        return None
    if expiry_date.tzinfo is None:
        expiry_date = expiry_date.replace(tzinfo=UTC)
    seconds = (expiry_date - now).total_seconds()
    return math.ceil(seconds / _SECONDS_PER_DAY)


def is_expiring_soon(days: int | None) -> bool:
    """Return True when expiry is at most three days away."""
    if days is None:
        return False
    return days <= EXPIRING_SOON_DAYS
