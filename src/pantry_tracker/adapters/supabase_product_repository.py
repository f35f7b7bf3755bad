"""Supabase repository for the shared product catalog."""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from supabase import Client

from pantry_tracker.adapters.supabase_support import (
    escape_like,
    execute,
    first_row,
    parse_datetime,
)
from pantry_tracker.domain.products import (
    NutritionInfo,
    Product,
    ProductDraft,
    ProductSource,
)
from pantry_tracker.services.products import ProductRepository

_TABLE = "products"


@dataclass
class SupabaseProductRepository(ProductRepository):
    """Supabase-backed product repository."""

    client: Client

    def get_product(self, product_id: UUID) -> Product | None:
        """Return a product by id, if present."""
        response = execute(
            self.client.table(_TABLE).select("*").eq("id", str(product_id)).limit(1),
            "get product",
        )
        if not response.data:
            return None
        return _parse_product(response.data[0])

    def get_products(self, product_ids: list[UUID]) -> list[Product]:
        """Return the products with the given ids."""
        if not product_ids:
            return []
        response = execute(
            self.client.table(_TABLE)
            .select("*")
            .in_("id", [str(product_id) for product_id in product_ids]),
            "get products",
        )
        return [_parse_product(row) for row in response.data or []]

    def find_by_barcode(self, barcode: str) -> Product | None:
        """Return the product with this barcode, if present."""
        response = execute(
            self.client.table(_TABLE).select("*").eq("barcode", barcode).limit(1),
            "find product by barcode",
        )
        if not response.data:
            return None
        return _parse_product(response.data[0])

    def find_by_name(self, name: str) -> Product | None:
        """Return a product whose name equals ``name`` case-insensitively."""
        response = execute(
            self.client.table(_TABLE)
            .select("*")
            .ilike("name", escape_like(name.strip()))
            .limit(1),
            "find product by name",
        )
        if not response.data:
            return None
        return _parse_product(response.data[0])

    def search_products(
        self, query: str, *, prefix: bool, include_category: bool, limit: int
    ) -> list[Product]:
        """Search name and brand, and category when asked, merging the results."""
        term = escape_like(query.strip())
        pattern = f"{term}%" if prefix else f"%{term}%"
        columns = ["name", "brand"]
        if include_category:
            columns.append("category")
        products: dict[str, Product] = {}
        for column in columns:
            response = execute(
                self.client.table(_TABLE)
                .select("*")
                .ilike(column, pattern)
                .limit(limit),
                f"search products by {column}",
            )
            for row in response.data or []:
                products.setdefault(str(row["id"]), _parse_product(row))
        return list(products.values())[:limit]

    def find_ids_by_category(self, category: str) -> list[UUID]:
        """Return ids of products in a category."""
        response = execute(
            self.client.table(_TABLE).select("id").eq("category", category),
            "find products by category",
        )
        return [UUID(str(row["id"])) for row in response.data or []]

    def create_product(self, draft: ProductDraft) -> Product:
        """Create a product and return it."""
        response = execute(
            self.client.table(_TABLE).insert(draft.to_payload()), "create product"
        )
        return _parse_product(first_row(response, "create product"))

    def update_product(self, product_id: UUID, payload: dict[str, object]) -> Product:
        """Update a product and return it."""
        response = execute(
            self.client.table(_TABLE).update(payload).eq("id", str(product_id)),
            "update product",
        )
        return _parse_product(first_row(response, "update product"))


def _parse_product(row: dict[str, Any]) -> Product:
    """Parse a products row into a domain model."""
    allergens = row.get("allergens") or []
    return Product(
        id=UUID(str(row["id"])),
        name=str(row.get("name", "")),
        source=ProductSource(row.get("source") or ProductSource.MANUAL),
        barcode=row.get("barcode"),
        brand=row.get("brand"),
        category=row.get("category"),
        subcategory=row.get("subcategory"),
        description=row.get("description"),
        ingredients=row.get("ingredients"),
        nutrition=NutritionInfo.from_dict(row.get("nutritional_info")),
        allergens=tuple(str(item) for item in allergens),
        image_url=row.get("image_url"),
        is_verified=bool(row.get("is_verified", False)),
        created_at=parse_datetime(row.get("created_at")),
    )
