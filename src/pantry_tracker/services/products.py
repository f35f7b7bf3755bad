"""Services for the shared product catalog."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from pantry_tracker.domain.products import Product, ProductDraft, ProductSource
from pantry_tracker.errors import DuplicateBarcodeError, ProductNotFoundError

_logger = logging.getLogger(__name__)


class ProductRepository(Protocol):
    """Persistence interface for catalog products."""

    def get_product(self, product_id: UUID) -> Product | None:
        """Return a product by id, if present."""

    def get_products(self, product_ids: list[UUID]) -> list[Product]:
        """Return the products with the given ids."""

    def find_by_barcode(self, barcode: str) -> Product | None:
        """Return the product with this barcode, if present."""

    def find_by_name(self, name: str) -> Product | None:
        """Return a product whose name equals ``name`` case-insensitively."""

    def search_products(
        self, query: str, *, prefix: bool, include_category: bool, limit: int
    ) -> list[Product]:
        """Case-insensitive prefix or substring search over name and brand.

        Category is searched too when ``include_category`` is set.
        """

    def find_ids_by_category(self, category: str) -> list[UUID]:
        """Return ids of products in a category."""

    def create_product(self, draft: ProductDraft) -> Product:
        """Create a product and return it."""

    def update_product(self, product_id: UUID, payload: dict[str, object]) -> Product:
        """Update a product and return it."""


@dataclass
class ProductService:
    """Application service for manual catalog maintenance."""

    repository: ProductRepository

    def get_product(self, product_id: UUID) -> Product:
        """Return a product or raise if it does not exist."""
        product = self.repository.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(f"Product {product_id} not found")
        return product

    def create_manual_product(self, draft: ProductDraft) -> Product:
        """Create a manually entered product; barcodes must be unique."""
        if draft.barcode and self.repository.find_by_barcode(draft.barcode):
            raise DuplicateBarcodeError(
                f"A product with barcode {draft.barcode} already exists"
            )
        manual = ProductDraft(
            name=draft.name.strip(),
            source=ProductSource.MANUAL,
            barcode=draft.barcode,
            brand=draft.brand,
            category=draft.category,
            subcategory=draft.subcategory,
            description=draft.description,
            ingredients=draft.ingredients,
            nutrition=draft.nutrition,
            allergens=draft.allergens,
            image_url=draft.image_url,
            is_verified=True,
        )
        product = self.repository.create_product(manual)
        _logger.info("Product created: id=%s name=%s", product.id, product.name)
        return product

    def update_product(self, product_id: UUID, payload: dict[str, object]) -> Product:
        """Apply manual edits to a product."""
        product = self.get_product(product_id)
        if "barcode" in payload:
            payload = {**payload, "barcode": _clean_barcode(payload["barcode"])}
        barcode = payload.get("barcode")
        if barcode and barcode != product.barcode:
            existing = self.repository.find_by_barcode(str(barcode))
            if existing is not None and existing.id != product_id:
                raise DuplicateBarcodeError(
                    f"A product with barcode {barcode} already exists"
                )
        return self.repository.update_product(
            product_id, _confirmed(product, payload)
        )

    def verify_product(self, product_id: UUID) -> Product:
        """Mark a product as confirmed by a person."""
        product = self.get_product(product_id)
        return self.repository.update_product(
            product_id, _confirmed(product, {"is_verified": True})
        )


def _confirmed(product: Product, payload: dict[str, object]) -> dict[str, object]:
    """Verified records cannot keep the generated provenance tag."""
    generated = product.source == ProductSource.GENERATIVE_FALLBACK
    if generated and payload.get("is_verified"):
        return {**payload, "source": ProductSource.MANUAL.value}
    return payload


def _clean_barcode(value: object) -> str | None:
    """Blank barcodes are stored as NULL so they never collide."""
    if value is None:
        return None
    return str(value).strip() or None
