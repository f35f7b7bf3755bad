"""Brand and generic-term classification for search queries."""

from collections.abc import Iterable
from dataclasses import dataclass

from pantry_tracker.services.tokens import normalize

DEFAULT_GENERIC_TERMS = frozenset(
    {
        # Spanish staples
        "lechuga",
        "ensalada",
        "tomate",
        "pepino",
        "pimiento",
        "zanahoria",
        "cebolla",
        "ajo",
        "manzana",
        "platano",
        "banana",
        "naranja",
        "limon",
        "pera",
        "uva",
        "fresa",
        "melon",
        "sandia",
        "carne",
        "pollo",
        "pescado",
        "cerdo",
        "ternera",
        "cordero",
        "huevo",
        "huevos",
        "pan",
        "harina",
        "arroz",
        "lentejas",
        "garbanzos",
        "judias",
        "frijoles",
        "avena",
        "pasta",
        "leche",
        "yogur",
        "queso",
        "mantequilla",
        "aceite",
        "sal",
        "azucar",
        # English staples
        "lettuce",
        "salad",
        "tomato",
        "cucumber",
        "pepper",
        "carrot",
        "onion",
        "garlic",
        "apple",
        "orange",
        "lemon",
        "pear",
        "grape",
        "strawberry",
        "watermelon",
        "meat",
        "chicken",
        "fish",
        "pork",
        "beef",
        "lamb",
        "egg",
        "eggs",
        "bread",
        "flour",
        "rice",
        "lentils",
        "chickpeas",
        "beans",
        "oats",
        "milk",
        "yogurt",
        "cheese",
        "butter",
        "oil",
        "salt",
        "sugar",
    }
)

DEFAULT_BRANDS = frozenset(
    {
        "coca cola",
        "coca-cola",
        "pepsi",
        "fanta",
        "nestle",
        "danone",
        "hacendado",
        "pascual",
        "central lechera",
        "puleva",
        "kinder",
        "ferrero",
        "nutella",
        "heinz",
        "kellogg",
        "gallo",
        "barilla",
        "campofrio",
        "el pozo",
        "bimbo",
        "oreo",
        "milka",
        "lays",
        "pringles",
        "red bull",
        "activia",
        "carbonell",
        "carrefour",
    }
)


@dataclass(frozen=True)
class QueryClassifier:
    """Classifies queries as generic fresh food or branded products."""

    generic_terms: frozenset[str] = DEFAULT_GENERIC_TERMS
    brands: frozenset[str] = DEFAULT_BRANDS

    @classmethod
    def with_extra(
        cls, generic_terms: Iterable[str] = (), brands: Iterable[str] = ()
    ) -> "QueryClassifier":
        """Build a classifier from the defaults plus configured keywords."""
        return cls(
            generic_terms=DEFAULT_GENERIC_TERMS | {normalize(t) for t in generic_terms},
            brands=DEFAULT_BRANDS | {normalize(b) for b in brands},
        )

    def looks_generic_or_fresh(self, query: str) -> bool:
        """Exact match only, so "huevo kinder" is not treated as generic."""
        return normalize(query) in self.generic_terms

    def has_brand_indicators(self, query: str) -> bool:
        """Return True if any known brand appears in the query."""
        normalized = normalize(query)
        return any(brand in normalized for brand in self.brands)
