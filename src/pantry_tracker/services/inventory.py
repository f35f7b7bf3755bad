"""Inventory location state machine.

A location row is ``active`` until it is consumed or removed; both are
terminal. Every transition writes an ``ItemMovement``. Movement writes are
best effort: a failure is logged and reported on the returned change, but the
location change itself is kept.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import UUID

from pantry_tracker.domain.inventory import (
    InventoryChange,
    InventoryLocation,
    ItemMovement,
    LocationDraft,
    LocationFilters,
    LocationPage,
    LocationPatch,
    LocationView,
    MovementType,
    StorageLocation,
    UserProduct,
    UserProductSummary,
    days_until_expiry,
    is_expiring_soon,
)
from pantry_tracker.domain.products import Product, ProductDraft, ProductSource
from pantry_tracker.errors import (
    InfrastructureError,
    InvalidQuantityError,
    InvalidTransitionError,
    LocationNotFoundError,
    ProductNotFoundError,
)
from pantry_tracker.services.movements import MovementService
from pantry_tracker.services.products import ProductRepository
from pantry_tracker.services.resolution import ProductResolutionService
from pantry_tracker.services.tokens import looks_like_barcode

_logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
_EDITABLE_FIELDS = ("unit", "expiry_date", "price", "store", "notes")


class InventoryRepository(Protocol):
    """Persistence interface for user products and their locations."""

    def get_user_product(self, user_id: UUID, product_id: UUID) -> UserProduct | None:
        """Return the user's relationship to a product, if any."""

    def create_user_product(
        self, user_id: UUID, product_id: UUID, added_at: datetime
    ) -> UserProduct:
        """Create a user product row."""

    def touch_user_product(self, user_product_id: UUID, used_at: datetime) -> None:
        """Mark a user product as recently used and active."""

    def list_user_products(self, user_id: UUID) -> list[UserProduct]:
        """Return active user products, most recently used first."""

    def create_location(self, draft: LocationDraft) -> InventoryLocation:
        """Create an active location row."""

    def get_location(self, location_id: UUID) -> InventoryLocation | None:
        """Return a location row by id, removed rows included."""

    def update_location(
        self, location_id: UUID, payload: dict[str, object]
    ) -> InventoryLocation:
        """Update a location row; payload keys are ``InventoryLocation`` fields."""

    def list_locations(  # noqa: PLR0913
        self,
        user_id: UUID,
        filters: LocationFilters,
        *,
        product_ids: list[UUID] | None,
        offset: int,
        limit: int,
    ) -> tuple[list[InventoryLocation], int]:
        """Return one page of non-removed rows and the total match count.

        Rows are ordered by expiry ascending (no expiry last), then newest first.
        """

    def list_expiring(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[InventoryLocation]:
        """Return active rows expiring within ``[start, end]``, soonest first."""

    def list_active_locations(self, user_id: UUID) -> list[InventoryLocation]:
        """Return every active row for a user."""


@dataclass(frozen=True)
class _MovementSpec:
    movement_type: MovementType
    quantity: float
    from_location: StorageLocation | None = None
    to_location: StorageLocation | None = None
    note: str | None = None


@dataclass
class InventoryService:
    """Application service for a user's inventory locations."""

    repository: InventoryRepository
    products: ProductRepository
    resolver: ProductResolutionService
    movements: MovementService

    async def add_location(  # noqa: PLR0913
        self,
        user_id: UUID,
        location: StorageLocation,
        quantity: float,
        unit: str = "units",
        *,
        product_id: UUID | None = None,
        barcode: str | None = None,
        name: str | None = None,
        language: str = "es",
        purchase_date: datetime | None = None,
        expiry_date: datetime | None = None,
        price: float | None = None,
        store: str | None = None,
        notes: str | None = None,
    ) -> InventoryChange:
        """Place a quantity of a product in a location."""
        if quantity is None or not quantity > 0:
            raise InvalidQuantityError(f"Quantity must be positive, got {quantity}")
        product = await self._resolve_product(product_id, barcode, name, language)
        now = datetime.now(tz=UTC)
        user_product = self._ensure_user_product(user_id, product.id, now)
        row = self.repository.create_location(
            LocationDraft(
                user_product_id=user_product.id,
                user_id=user_id,
                product_id=product.id,
                location=location,
                quantity=quantity,
                unit=unit,
                purchase_date=purchase_date,
                expiry_date=expiry_date,
                price=price,
                store=store,
                notes=notes,
            )
        )
        _logger.info(
            "Location added: id=%s user_id=%s product_id=%s location=%s",
            row.id,
            user_id,
            product.id,
            location,
        )
        movements, failures = self._record(
            row, [_MovementSpec(MovementType.ADD, quantity, to_location=location)]
        )
        return InventoryChange(
            location=_view(row, product, now),
            movements=movements,
            audit_failures=failures,
        )

    def update_location(
        self, user_id: UUID, location_id: UUID, patch: LocationPatch
    ) -> InventoryChange:
        """Apply a partial update: edits, a move, or a consumption."""
        row = self._owned_location(user_id, location_id)
        if row.is_consumed:
            raise InvalidTransitionError(f"Location {location_id} is already consumed")
        fields = patch.model_fields_set
        now = datetime.now(tz=UTC)
        payload: dict[str, object] = {}
        specs: list[_MovementSpec] = []

        if "quantity" in fields:
            if patch.quantity is None or not patch.quantity > 0:
                raise InvalidQuantityError(
                    f"Quantity must be positive, got {patch.quantity}"
                )
            payload["quantity"] = patch.quantity
        for name in _EDITABLE_FIELDS:
            if name in fields:
                payload[name] = getattr(patch, name)

        target = row.location
        if patch.location is not None and patch.location != row.location:
            target = patch.location
            payload["location"] = target
            specs.append(
                _MovementSpec(
                    MovementType.MOVE,
                    float(payload.get("quantity", row.quantity)),
                    from_location=row.location,
                    to_location=target,
                )
            )

        if patch.is_consumed or patch.consumed_quantity is not None:
            on_hand = float(payload.get("quantity", row.quantity))
            amount = (
                on_hand if patch.consumed_quantity is None else patch.consumed_quantity
            )
            if not amount > 0:
                raise InvalidQuantityError(
                    f"Consumed quantity must be positive, got {amount}"
                )
            if amount >= on_hand:
                payload.update(is_consumed=True, consumed_at=now, quantity=0.0)
                amount = on_hand
            else:
                payload["quantity"] = on_hand - amount
            specs.append(
                _MovementSpec(MovementType.CONSUME, amount, from_location=target)
            )

        if not payload:
            return InventoryChange(
                location=self._annotate([row], now)[0],
                movements=[],
                audit_failures=[],
            )
        updated = self.repository.update_location(location_id, payload)
        _logger.info(
            "Location updated: id=%s user_id=%s fields=%s",
            location_id,
            user_id,
            sorted(payload),
        )
        movements, failures = self._record(updated, specs)
        return InventoryChange(
            location=self._annotate([updated], now)[0],
            movements=movements,
            audit_failures=failures,
        )

    def delete_location(self, user_id: UUID, location_id: UUID) -> InventoryChange:
        """Soft-delete a location row."""
        row = self._owned_location(user_id, location_id)
        if row.is_consumed:
            raise InvalidTransitionError(f"Location {location_id} is already consumed")
        now = datetime.now(tz=UTC)
        updated = self.repository.update_location(location_id, {"removed_at": now})
        _logger.info("Location removed: id=%s user_id=%s", location_id, user_id)
        movements, failures = self._record(
            updated,
            [
                _MovementSpec(
                    MovementType.REMOVE, row.quantity, from_location=row.location
                )
            ],
        )
        return InventoryChange(
            location=self._annotate([updated], now)[0],
            movements=movements,
            audit_failures=failures,
        )

    def list_locations(
        self,
        user_id: UUID,
        filters: LocationFilters | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> LocationPage:
        """Return a page of the user's rows annotated with expiry urgency."""
        filters = filters or LocationFilters()
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        product_ids = None
        if filters.category:
            product_ids = self.products.find_ids_by_category(filters.category)
            if not product_ids:
                return LocationPage(items=[], page=page, limit=limit, total=0)
        rows, total = self.repository.list_locations(
            user_id,
            filters,
            product_ids=product_ids,
            offset=(page - 1) * limit,
            limit=limit,
        )
        now = datetime.now(tz=UTC)
        return LocationPage(
            items=self._annotate(rows, now), page=page, limit=limit, total=total
        )

    def list_expiring(self, user_id: UUID, within_days: int = 3) -> list[LocationView]:
        """Return active rows expiring between now and now + ``within_days``."""
        now = datetime.now(tz=UTC)
        end = now + timedelta(days=max(within_days, 0))
        rows = self.repository.list_expiring(user_id, now, end)
        return self._annotate(rows, now)

    def list_movements(self, user_id: UUID, limit: int = 50) -> list[ItemMovement]:
        """Return the user's most recent inventory movements."""
        return self.movements.list_recent(user_id, min(max(limit, 1), MAX_PAGE_SIZE))

    def list_user_products(self, user_id: UUID) -> list[UserProductSummary]:
        """Return the user's products with on-hand totals over active rows."""
        user_products = self.repository.list_user_products(user_id)
        totals: dict[UUID, float] = defaultdict(float)
        counts: dict[UUID, int] = defaultdict(int)
        for row in self.repository.list_active_locations(user_id):
            totals[row.user_product_id] += row.quantity
            counts[row.user_product_id] += 1
        products = _by_id(
            self.products.get_products([item.product_id for item in user_products])
        )
        return [
            UserProductSummary(
                user_product=item,
                product=products.get(item.product_id),
                total_quantity=totals[item.id],
                active_locations=counts[item.id],
            )
            for item in user_products
        ]

    async def _resolve_product(
        self,
        product_id: UUID | None,
        barcode: str | None,
        name: str | None,
        language: str,
    ) -> Product:
        if product_id is not None:
            product = self.products.get_product(product_id)
            if product is None:
                raise ProductNotFoundError(f"Product {product_id} not found")
            return product
        code = (barcode or "").strip()
        if code:
            product = await self.resolver.lookup_barcode(code, language)
            if product is not None:
                return product
        label = (name or "").strip()
        if not label:
            raise ProductNotFoundError(
                f"No product found for barcode {code}" if code else "No product given"
            )
        existing = self.products.find_by_name(label)
        if existing is not None:
            return existing
        product = self.products.create_product(
            ProductDraft(
                name=label,
                source=ProductSource.MANUAL,
                barcode=code if looks_like_barcode(code) else None,
                is_verified=False,
            )
        )
        _logger.info("Product created from name: id=%s name=%s", product.id, label)
        return product

    def _ensure_user_product(
        self, user_id: UUID, product_id: UUID, now: datetime
    ) -> UserProduct:
        existing = self.repository.get_user_product(user_id, product_id)
        if existing is None:
            return self.repository.create_user_product(user_id, product_id, now)
        self.repository.touch_user_product(existing.id, now)
        return existing

    def _owned_location(self, user_id: UUID, location_id: UUID) -> InventoryLocation:
        row = self.repository.get_location(location_id)
        # Foreign rows look missing so their existence is not leaked.
        if row is None or row.user_id != user_id or row.removed_at is not None:
            raise LocationNotFoundError(f"Location {location_id} not found")
        return row

    def _record(
        self, row: InventoryLocation, specs: list[_MovementSpec]
    ) -> tuple[list[ItemMovement], list[str]]:
        movements: list[ItemMovement] = []
        failures: list[str] = []
        for spec in specs:
            try:
                movements.append(
                    self.movements.record(
                        user_id=row.user_id,
                        product_id=row.product_id,
                        movement_type=spec.movement_type,
                        quantity=spec.quantity,
                        from_location=spec.from_location,
                        to_location=spec.to_location,
                        note=spec.note,
                    )
                )
            except InfrastructureError as exc:
                _logger.exception(
                    "Movement write failed: location_id=%s type=%s",
                    row.id,
                    spec.movement_type,
                )
                failures.append(f"{spec.movement_type}: {exc}")
        return movements, failures

    def _annotate(
        self, rows: list[InventoryLocation], now: datetime
    ) -> list[LocationView]:
        products = _by_id(
            self.products.get_products(list({row.product_id for row in rows}))
        )
        return [_view(row, products.get(row.product_id), now) for row in rows]


def _view(
    row: InventoryLocation, product: Product | None, now: datetime
) -> LocationView:
    days = days_until_expiry(row.expiry_date, now)
    return LocationView(
        location=row,
        product=product,
        days_until_expiry=days,
        is_expiring_soon=is_expiring_soon(days),
    )


def _by_id(products: list[Product]) -> dict[UUID, Product]:
    return {product.id: product for product in products}
