"""Product catalog domain models."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class ProductSource(StrEnum):
    """Where a product record came from."""

    EXTERNAL_CATALOG = "external_catalog"
    MANUAL = "manual"
    GENERATIVE_FALLBACK = "generative_fallback"


@dataclass(frozen=True)
class NutritionInfo:
    """Per-100g nutrition estimates; every field is optional."""

    calories: float | None = None
    protein: float | None = None
    carbohydrates: float | None = None
    fat: float | None = None
    fiber: float | None = None
    sugar: float | None = None
    sodium: float | None = None
    saturated_fat: float | None = None
    trans_fat: float | None = None
    cholesterol: float | None = None
    calcium: float | None = None
    iron: float | None = None
    vitamin_c: float | None = None
    vitamin_a: float | None = None

    def to_dict(self) -> dict[str, float]:
        """Return only the populated nutrients."""
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, raw: object) -> "NutritionInfo":
        """Build nutrition info from a stored JSON object, ignoring unknown keys."""
        if not isinstance(raw, dict):
            return cls()
        values: dict[str, float] = {}
        for key in cls.__dataclass_fields__:
            value = raw.get(key)
            if isinstance(value, int | float) and not isinstance(value, bool):
                values[key] = float(value)
        return cls(**values)


@dataclass(frozen=True)
class ProductDraft:
    """Canonical product shape before it is persisted."""

    name: str
    source: ProductSource
    barcode: str | None = None
    brand: str | None = None
    category: str | None = None
    subcategory: str | None = None
    description: str | None = None
    ingredients: str | None = None
    nutrition: NutritionInfo = field(default_factory=NutritionInfo)
    allergens: tuple[str, ...] = ()
    image_url: str | None = None
    is_verified: bool = False

    def to_payload(self) -> dict[str, object]:
        """Return a row payload for the products table."""
        return {
            "name": self.name,
            "barcode": self.barcode,
            "brand": self.brand,
            "category": self.category,
            "subcategory": self.subcategory,
            "description": self.description,
            "ingredients": self.ingredients,
            "nutritional_info": self.nutrition.to_dict(),
            "allergens": list(self.allergens),
            "image_url": self.image_url,
            "source": self.source.value,
            "is_verified": self.is_verified,
        }


@dataclass(frozen=True)
class Product:
    """Persisted catalog entry."""

    id: UUID
    name: str
    source: ProductSource
    barcode: str | None = None
    brand: str | None = None
    category: str | None = None
    subcategory: str | None = None
    description: str | None = None
    ingredients: str | None = None
    nutrition: NutritionInfo = field(default_factory=NutritionInfo)
    allergens: tuple[str, ...] = ()
    image_url: str | None = None
    is_verified: bool = False
    created_at: datetime | None = None

    @property
    def is_placeholder(self) -> bool:
        """Generated records with neither image nor description are placeholders."""
        return (
            self.source == ProductSource.GENERATIVE_FALLBACK
            and not self.image_url
            and not self.description
        )
