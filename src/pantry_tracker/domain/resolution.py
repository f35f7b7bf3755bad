"""Domain models for product resolution outcomes."""

from dataclasses import dataclass
from enum import StrEnum

from pantry_tracker.domain.products import Product, ProductDraft


class ResolutionDecision(StrEnum):
    """Tag of a search resolution."""

    FOUND = "found"
    LIST = "list"
    CLARIFY = "clarify"
    GENERATED = "generated"
    NONE = "none"


class ResolutionSource(StrEnum):
    """Tier that produced a resolution."""

    LOCAL = "local"
    EXTERNAL = "external"
    GENERATIVE = "generative"
    NONE = "none"


class SearchMode(StrEnum):
    """How many resolution tiers to consult."""

    FAST = "fast"
    EXTERNAL = "external"
    SMART = "smart"

    @classmethod
    def parse(cls, raw: str | None) -> "SearchMode":
        """Parse a mode name; ``all`` is accepted as an alias for ``smart``."""
        if not raw:
            return cls.SMART
        value = raw.strip().lower()
        if value == "all":
            return cls.SMART
        return cls(value)


CatalogItem = Product | ProductDraft


@dataclass(frozen=True)
class SearchResolution:
    """Outcome of resolving a query to a product."""

    decision: ResolutionDecision
    source: ResolutionSource
    product: CatalogItem | None = None
    products: tuple[CatalogItem, ...] = ()
    questions: tuple[str, ...] = ()
    message: str | None = None

    @classmethod
    def found(
        cls, product: CatalogItem, source: ResolutionSource
    ) -> "SearchResolution":
        return cls(ResolutionDecision.FOUND, source, product=product)

    @classmethod
    def listing(
        cls, products: list[CatalogItem], source: ResolutionSource
    ) -> "SearchResolution":
        return cls(ResolutionDecision.LIST, source, products=tuple(products))

    @classmethod
    def generated(cls, product: ProductDraft) -> "SearchResolution":
        return cls(
            ResolutionDecision.GENERATED,
            ResolutionSource.GENERATIVE,
            product=product,
        )

    @classmethod
    def clarify(cls, questions: list[str], message: str) -> "SearchResolution":
        return cls(
            ResolutionDecision.CLARIFY,
            ResolutionSource.NONE,
            questions=tuple(questions),
            message=message,
        )

    @classmethod
    def none(cls, message: str) -> "SearchResolution":
        return cls(ResolutionDecision.NONE, ResolutionSource.NONE, message=message)
