"""Request bodies for the HTTP API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from pantry_tracker.domain.inventory import StorageLocation
from pantry_tracker.domain.products import NutritionInfo, ProductDraft, ProductSource


class ProductCreateRequest(BaseModel):
    """Manually entered product."""

    name: str = Field(min_length=1)
    barcode: str | None = None
    brand: str | None = None
    category: str | None = None
    subcategory: str | None = None
    description: str | None = None
    ingredients: str | None = None
    nutritional_info: dict[str, float] | None = None
    allergens: list[str] = Field(default_factory=list)
    image_url: str | None = None

    def to_draft(self) -> ProductDraft:
        return ProductDraft(
            name=self.name,
            source=ProductSource.MANUAL,
            barcode=self.barcode or None,
            brand=self.brand,
            category=self.category,
            subcategory=self.subcategory,
            description=self.description,
            ingredients=self.ingredients,
            nutrition=NutritionInfo.from_dict(self.nutritional_info),
            allergens=tuple(self.allergens),
            image_url=self.image_url,
            is_verified=True,
        )


class ProductUpdateRequest(BaseModel):
    """Partial edit of a product; only fields sent are applied."""

    name: str | None = Field(default=None, min_length=1)
    barcode: str | None = None
    brand: str | None = None
    category: str | None = None
    subcategory: str | None = None
    description: str | None = None
    ingredients: str | None = None
    nutritional_info: dict[str, float] | None = None
    allergens: list[str] | None = None
    image_url: str | None = None
    is_verified: bool | None = None

    @field_validator("name")
    @classmethod
    def _name_present(cls, value: str | None) -> str:
        if value is None or not value.strip():
            raise ValueError("name cannot be cleared")
        return value.strip()

    @field_validator("barcode")
    @classmethod
    def _blank_barcode(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class LocationCreateRequest(BaseModel):
    """New inventory location; the product is given by id, barcode or name."""

    location: StorageLocation
    quantity: float
    unit: str = "units"
    product_id: UUID | None = None
    barcode: str | None = None
    name: str | None = None
    language: str | None = None
    purchase_date: datetime | None = None
    expiry_date: datetime | None = None
    price: float | None = None
    store: str | None = None
    notes: str | None = None
