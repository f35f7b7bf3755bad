"""Supabase repository for item movements."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from supabase import Client

from pantry_tracker.adapters.supabase_support import execute, first_row, parse_datetime
from pantry_tracker.domain.inventory import ItemMovement, MovementType, StorageLocation
from pantry_tracker.services.movements import MovementRepository

_TABLE = "item_movements"


@dataclass
class SupabaseMovementRepository(MovementRepository):
    """Supabase-backed movement log."""

    client: Client

    def create_movement(  # noqa: PLR0913
        self,
        user_id: UUID,
        product_id: UUID,
        movement_type: MovementType,
        quantity: float,
        from_location: StorageLocation | None,
        to_location: StorageLocation | None,
        note: str | None,
    ) -> ItemMovement:
        """Create a movement row and return it."""
        response = execute(
            self.client.table(_TABLE).insert(
                {
                    "user_id": str(user_id),
                    "product_id": str(product_id),
                    "movement_type": movement_type.value,
                    "quantity": quantity,
                    "from_location": from_location.value if from_location else None,
                    "to_location": to_location.value if to_location else None,
                    "note": note,
                }
            ),
            "record movement",
        )
        return _parse_movement(first_row(response, "record movement"))

    def list_movements(self, user_id: UUID, limit: int) -> list[ItemMovement]:
        """Return the most recent movements for a user, newest first."""
        response = execute(
            self.client.table(_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(limit),
            "list movements",
        )
        return [_parse_movement(row) for row in response.data or []]


def _parse_movement(row: dict[str, Any]) -> ItemMovement:
    from_location = row.get("from_location")
    to_location = row.get("to_location")
    return ItemMovement(
        id=UUID(str(row["id"])),
        user_id=UUID(str(row["user_id"])),
        product_id=UUID(str(row["product_id"])),
        movement_type=MovementType(row["movement_type"]),
        quantity=float(row.get("quantity") or 0.0),
        from_location=StorageLocation(from_location) if from_location else None,
        to_location=StorageLocation(to_location) if to_location else None,
        note=row.get("note"),
        created_at=parse_datetime(row.get("created_at")) or datetime.min,
    )
