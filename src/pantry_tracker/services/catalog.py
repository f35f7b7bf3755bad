"""External food catalog lookups normalized into the canonical product shape."""

import logging
from dataclasses import dataclass

from pantry_tracker.adapters.off_client import OpenFoodFactsClient
from pantry_tracker.domain.products import NutritionInfo, ProductDraft, ProductSource
from pantry_tracker.errors import UpstreamUnavailableError

_logger = logging.getLogger(__name__)

_NUTRIENT_KEYS = {
    "calories": "energy-kcal",
    "protein": "proteins",
    "carbohydrates": "carbohydrates",
    "fat": "fat",
    "fiber": "fiber",
    "sugar": "sugars",
    "sodium": "sodium",
    "saturated_fat": "saturated-fat",
    "trans_fat": "trans-fat",
    "cholesterol": "cholesterol",
    "calcium": "calcium",
    "iron": "iron",
    "vitamin_c": "vitamin-c",
    "vitamin_a": "vitamin-a",
}

# Checked in order; first keyword hit wins.
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("beverages", ("bebidas", "beverages", "drinks")),
    ("dairy", ("lacteos", "lácteos", "dairy", "dairies")),
    ("meat", ("carne", "meat")),
    ("fish", ("pescado", "fish", "seafood")),
    ("vegetables", ("verduras", "vegetables")),
    ("fruits", ("frutas", "fruits")),
    ("cereals", ("cereales", "cereals")),
    ("bakery", ("panaderia", "panadería", "bakery", "breads")),
    ("sweets", ("dulces", "sweets", "chocolates")),
    ("snacks", ("aperitivos", "snacks")),
    ("condiments", ("condimentos", "condiments", "sauces")),
    ("canned", ("conservas", "canned")),
)
DEFAULT_CATEGORY = "other"

ALLERGEN_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("milk", "milk"),
    ("leche", "milk"),
    ("eggs", "eggs"),
    ("huevo", "eggs"),
    ("fish", "fish"),
    ("pescado", "fish"),
    ("crustaceans", "crustaceans"),
    ("molluscs", "molluscs"),
    ("peanuts", "peanuts"),
    ("cacahuete", "peanuts"),
    ("nuts", "tree_nuts"),
    ("frutos secos", "tree_nuts"),
    ("sesame", "sesame"),
    ("soybeans", "soy"),
    ("soja", "soy"),
    ("celery", "celery"),
    ("mustard", "mustard"),
    ("lupin", "lupin"),
    ("sulphites", "sulphites"),
    ("sulfitos", "sulphites"),
    ("gluten", "gluten"),
)


@dataclass
class CatalogService:
    """Barcode and free-text lookups against the external catalog."""

    client: OpenFoodFactsClient

    async def lookup_by_barcode(
        self, barcode: str, language: str = "es"
    ) -> ProductDraft | None:
        """Return the catalog product for a barcode, or None if it is unknown."""
        try:
            payload = await self.client.get_product(barcode)
        except Exception as exc:
            raise UpstreamUnavailableError(
                f"Catalog barcode lookup failed for {barcode}: {exc}"
            ) from exc
        raw_product = payload.get("product")
        if payload.get("status") != 1 or not isinstance(raw_product, dict):
            _logger.info("Catalog barcode not found: barcode=%s", barcode)
            return None
        return normalize_product(raw_product, barcode=barcode, language=language)

    async def search_by_text(
        self, query: str, language: str = "es", max_results: int = 10
    ) -> list[ProductDraft]:
        """Search the catalog; an empty list means no results."""
        try:
            payload = await self.client.search_products(
                query, language=language, page_size=max_results
            )
        except Exception as exc:
            raise UpstreamUnavailableError(
                f"Catalog search failed for {query!r}: {exc}"
            ) from exc
        raw_products = payload.get("products") or []
        drafts = [
            normalize_product(
                raw, barcode=str(raw.get("code") or "") or None, language=language
            )
            for raw in raw_products
            if isinstance(raw, dict)
        ]
        return drafts[:max_results]


def normalize_product(
    raw: dict[str, object], *, barcode: str | None, language: str
) -> ProductDraft:
    """Map a raw Open Food Facts record to a product draft."""
    categories = _text(raw.get("categories"))
    return ProductDraft(
        name=pick_name(raw, language),
        source=ProductSource.EXTERNAL_CATALOG,
        barcode=barcode,
        brand=_first_brand(raw.get("brands")),
        category=map_category(categories),
        subcategory=_first_entry(categories),
        description=_localized(raw, "generic_name", language),
        ingredients=_localized(raw, "ingredients_text", language),
        nutrition=extract_nutrition(raw.get("nutriments")),
        allergens=extract_allergens(_text(raw.get("allergens"))),
        image_url=_text(raw.get("image_url")) or _text(raw.get("image_front_url")),
        is_verified=True,
    )


def pick_name(raw: dict[str, object], language: str) -> str:
    """Pick the best available localized product name."""
    return (
        _localized(raw, "product_name", language)
        or _localized(raw, "generic_name", language)
        or "Unnamed product"
    )


def extract_nutrition(nutriments: object) -> NutritionInfo:
    """Map OFF nutriment keys to canonical nutrition fields."""
    if not isinstance(nutriments, dict):
        return NutritionInfo()
    values: dict[str, float] = {}
    for field_name, key in _NUTRIENT_KEYS.items():
        for candidate in (f"{key}_100g", key):
            amount = _number(nutriments.get(candidate))
            if amount is not None:
                values[field_name] = amount
                break
    return NutritionInfo(**values)


def list_categories() -> list[str]:
    """Return the fixed category taxonomy, fallback last."""
    return [category for category, _ in CATEGORY_KEYWORDS] + [DEFAULT_CATEGORY]


def map_category(categories: str | None) -> str:
    """Map a free-text category list onto the fixed taxonomy."""
    if not categories:
        return DEFAULT_CATEGORY
    lowered = categories.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def extract_allergens(declaration: str | None) -> tuple[str, ...]:
    """Map a free-text allergen declaration onto the fixed allergen tags."""
    if not declaration:
        return ()
    remaining = declaration.lower()
    found: list[str] = []
    for keyword, allergen in ALLERGEN_KEYWORDS:
        if keyword not in remaining:
            continue
        # Consume the match so "peanuts" does not also count as tree nuts.
        remaining = remaining.replace(keyword, " ")
        if allergen not in found:
            found.append(allergen)
    return tuple(found)


def _localized(raw: dict[str, object], key: str, language: str) -> str | None:
    for candidate in (f"{key}_{language}", key, f"{key}_es", f"{key}_en"):
        value = _text(raw.get(candidate))
        if value:
            return value
    return None


def _first_brand(value: object) -> str | None:
    return _first_entry(_text(value))


def _first_entry(value: str | None) -> str | None:
    if not value:
        return None
    first = value.split(",")[0].strip()
    return first or None


def _text(value: object) -> str | None:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def _number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None
