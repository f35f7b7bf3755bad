"""Inventory movement log service."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from pantry_tracker.domain.inventory import ItemMovement, MovementType, StorageLocation


class MovementRepository(Protocol):
    """Persistence interface for item movements."""

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

    def list_movements(self, user_id: UUID, limit: int) -> list[ItemMovement]:
        """Return the most recent movements for a user, newest first."""


@dataclass
class MovementService:
    """Service for recording inventory transitions."""

    repository: MovementRepository

    def record(  # noqa: PLR0913
        self,
        user_id: UUID,
        product_id: UUID,
        movement_type: MovementType,
        quantity: float,
        from_location: StorageLocation | None = None,
        to_location: StorageLocation | None = None,
        note: str | None = None,
    ) -> ItemMovement:
        """Persist a movement."""
        return self.repository.create_movement(
            user_id=user_id,
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            from_location=from_location,
            to_location=to_location,
            note=note,
        )

    def list_recent(self, user_id: UUID, limit: int = 50) -> list[ItemMovement]:
        """Return recent movements for a user."""
        return self.repository.list_movements(user_id, limit)
