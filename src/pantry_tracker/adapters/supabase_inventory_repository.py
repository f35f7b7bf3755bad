"""Supabase repository for user products and their locations."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from supabase import Client

from pantry_tracker.adapters.supabase_support import (
    execute,
    first_row,
    parse_datetime,
    parse_float,
    to_row,
)
from pantry_tracker.domain.inventory import (
    InventoryLocation,
    LocationDraft,
    LocationFilters,
    StorageLocation,
    UserProduct,
)
from pantry_tracker.services.inventory import InventoryRepository

_USER_PRODUCTS = "user_products"
_LOCATIONS = "user_product_locations"


@dataclass
class SupabaseInventoryRepository(InventoryRepository):
    """Supabase-backed inventory repository."""

    client: Client

    def get_user_product(self, user_id: UUID, product_id: UUID) -> UserProduct | None:
        """Return the user's relationship to a product, if any."""
        response = execute(
            self.client.table(_USER_PRODUCTS)
            .select("*")
            .eq("user_id", str(user_id))
            .eq("product_id", str(product_id))
            .limit(1),
            "get user product",
        )
        if not response.data:
            return None
        return _parse_user_product(response.data[0])

    def create_user_product(
        self, user_id: UUID, product_id: UUID, added_at: datetime
    ) -> UserProduct:
        """Create a user product row."""
        response = execute(
            self.client.table(_USER_PRODUCTS).insert(
                {
                    "user_id": str(user_id),
                    "product_id": str(product_id),
                    "first_added": added_at.isoformat(),
                    "last_used": added_at.isoformat(),
                    "is_active": True,
                }
            ),
            "create user product",
        )
        return _parse_user_product(first_row(response, "create user product"))

    def touch_user_product(self, user_product_id: UUID, used_at: datetime) -> None:
        """Mark a user product as recently used and active."""
        execute(
            self.client.table(_USER_PRODUCTS)
            .update({"last_used": used_at.isoformat(), "is_active": True})
            .eq("id", str(user_product_id)),
            "touch user product",
        )

    def list_user_products(self, user_id: UUID) -> list[UserProduct]:
        """Return active user products, most recently used first."""
        response = execute(
            self.client.table(_USER_PRODUCTS)
            .select("*")
            .eq("user_id", str(user_id))
            .eq("is_active", "true")
            .order("last_used", desc=True),
            "list user products",
        )
        return [_parse_user_product(row) for row in response.data or []]

    def create_location(self, draft: LocationDraft) -> InventoryLocation:
        """Create an active location row."""
        response = execute(
            self.client.table(_LOCATIONS).insert(to_row(asdict(draft))),
            "create location",
        )
        return _parse_location(first_row(response, "create location"))

    def get_location(self, location_id: UUID) -> InventoryLocation | None:
        """Return a location row by id, removed rows included."""
        response = execute(
            self.client.table(_LOCATIONS)
            .select("*")
            .eq("id", str(location_id))
            .limit(1),
            "get location",
        )
        if not response.data:
            return None
        return _parse_location(response.data[0])

    def update_location(
        self, location_id: UUID, payload: dict[str, object]
    ) -> InventoryLocation:
        """Update a location row and return it."""
        response = execute(
            self.client.table(_LOCATIONS)
            .update(to_row(payload))
            .eq("id", str(location_id)),
            "update location",
        )
        return _parse_location(first_row(response, "update location"))

    def list_locations(  # noqa: PLR0913
        self,
        user_id: UUID,
        filters: LocationFilters,
        *,
        product_ids: list[UUID] | None,
        offset: int,
        limit: int,
    ) -> tuple[list[InventoryLocation], int]:
        """Return one page of non-removed rows and the total match count."""
        query = (
            self.client.table(_LOCATIONS)
            .select("*", count="exact")
            .eq("user_id", str(user_id))
            .is_("removed_at", "null")
        )
        if filters.location is not None:
            query = query.eq("location", filters.location.value)
        if filters.is_consumed is not None:
            query = query.eq("is_consumed", _bool(filters.is_consumed))
        if filters.expiring_before is not None:
            query = query.lte("expiry_date", filters.expiring_before.isoformat())
        if product_ids is not None:
            query = query.in_("product_id", [str(item) for item in product_ids])
        response = execute(
            query.order("expiry_date")
            .order("added_at", desc=True)
            .range(offset, offset + limit - 1),
            "list locations",
        )
        rows = [_parse_location(row) for row in response.data or []]
        total = response.count if response.count is not None else len(rows)
        return rows, total

    def list_expiring(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[InventoryLocation]:
        """Return active rows expiring within ``[start, end]``, soonest first."""
        response = execute(
            self.client.table(_LOCATIONS)
            .select("*")
            .eq("user_id", str(user_id))
            .eq("is_consumed", "false")
            .is_("removed_at", "null")
            .gte("expiry_date", start.isoformat())
            .lte("expiry_date", end.isoformat())
            .order("expiry_date"),
            "list expiring locations",
        )
        return [_parse_location(row) for row in response.data or []]

    def list_active_locations(self, user_id: UUID) -> list[InventoryLocation]:
        """Return every active row for a user."""
        response = execute(
            self.client.table(_LOCATIONS)
            .select("*")
            .eq("user_id", str(user_id))
            .eq("is_consumed", "false")
            .is_("removed_at", "null"),
            "list active locations",
        )
        return [_parse_location(row) for row in response.data or []]


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _parse_user_product(row: dict[str, Any]) -> UserProduct:
    """Parse a user_products row into a domain model."""
    return UserProduct(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        product_id=UUID(str(row["product_id"])),
        first_added=parse_datetime(row.get("first_added")) or datetime.min,
        last_used=parse_datetime(row.get("last_used")),
        is_active=bool(row.get("is_active", True)),
    )


def _parse_location(row: dict[str, Any]) -> InventoryLocation:
    """Parse a user_product_locations row into a domain model."""
    return InventoryLocation(
        id=UUID(str(row["id"])),
        user_product_id=UUID(str(row["user_product_id"])),
        user_id=UUID(str(row["user_id"])),
        product_id=UUID(str(row["product_id"])),
        location=StorageLocation(row["location"]),
        quantity=float(row.get("quantity") or 0.0),
        unit=str(row.get("unit") or "units"),
        added_at=parse_datetime(row.get("added_at")) or datetime.min,
        purchase_date=parse_datetime(row.get("purchase_date")),
        expiry_date=parse_datetime(row.get("expiry_date")),
        price=parse_float(row.get("price")),
        store=row.get("store"),
        notes=row.get("notes"),
        is_consumed=bool(row.get("is_consumed", False)),
        consumed_at=parse_datetime(row.get("consumed_at")),
        removed_at=parse_datetime(row.get("removed_at")),
    )
