"""Product resolution across the local store, external catalog and generative model.

Tiers run strictly in order, cheapest and most trustworthy first:

1. barcode lookup (only for EAN/UPC style queries)
2. local exact name match
3. local fuzzy match
4. external catalog search
5. generative fallback

Each tier returns a ``SearchResolution`` to stop the waterfall or ``None`` to
pass to the next one. Upstream failures are logged and treated as ``None``.
"""

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from pantry_tracker.domain.products import Product, ProductDraft
from pantry_tracker.domain.resolution import (
    ResolutionSource,
    SearchMode,
    SearchResolution,
)
from pantry_tracker.errors import UpstreamUnavailableError
from pantry_tracker.services.cache import Cache
from pantry_tracker.services.catalog import CatalogService
from pantry_tracker.services.classification import QueryClassifier
from pantry_tracker.services.generation import ProductSynthesizer
from pantry_tracker.services.products import ProductRepository
from pantry_tracker.services.tokens import looks_like_barcode, normalize, tokenize

_logger = logging.getLogger(__name__)

MAX_LIST_RESULTS = 10
MIN_QUERY_LENGTH = 2
SHORT_QUERY_LENGTH = 3

_WORD_SPLIT = re.compile(r"[^\w]+")

_CLARIFY_QUESTIONS = {
    "es": [
        "¿Es un producto de supermercado con marca o un producto fresco sin marca?",
        "¿Cuál es la marca, si la tiene?",
    ],
    "en": [
        "Is this a branded supermarket product or a fresh/unbranded item?",
        "What is the brand, if any?",
    ],
}


@dataclass(frozen=True)
class _Query:
    raw: str
    normalized: str
    language: str
    mode: SearchMode
    is_generic: bool
    has_brand: bool


_Tier = Callable[[_Query], Awaitable[SearchResolution | None]]


@dataclass
class ProductResolutionService:
    """Decides which product, if any, a free-text query or barcode refers to."""

    products: ProductRepository
    catalog: CatalogService
    classifier: QueryClassifier
    synthesizer: ProductSynthesizer
    cache: Cache
    generated_ttl_seconds: int = 600
    max_results: int = MAX_LIST_RESULTS

    async def resolve(
        self,
        query: str,
        language: str = "es",
        user_id: UUID | None = None,
        mode: SearchMode = SearchMode.SMART,
    ) -> SearchResolution:
        """Run the resolution waterfall for a query."""
        raw = (query or "").strip()
        normalized = normalize(raw)
        if not normalized:
            return SearchResolution.none("Empty query")
        if len(normalized) < MIN_QUERY_LENGTH:
            _logger.info("Resolution skipped: query too short query=%s", raw)
            return SearchResolution.none("Query too short")

        ctx = _Query(
            raw=raw,
            normalized=normalized,
            language=language,
            mode=mode,
            is_generic=self.classifier.looks_generic_or_fresh(normalized),
            has_brand=self.classifier.has_brand_indicators(normalized),
        )
        for tier_name, tier in self._tiers(ctx):
            resolution = await tier(ctx)
            if resolution is not None:
                _log_resolution(tier_name, ctx, resolution, user_id)
                return resolution

        resolution = self._fallback(ctx)
        _log_resolution("fallback", ctx, resolution, user_id)
        return resolution

    async def lookup_barcode(
        self, barcode: str, language: str = "es", *, allow_external: bool = True
    ) -> Product | None:
        """Return the product for a barcode, fetching it from the catalog if needed."""
        product = self.products.find_by_barcode(barcode)
        if product is not None or not allow_external:
            return product
        return await self._fetch_barcode(barcode, language)

    def materialize(self, draft: ProductDraft) -> Product:
        """Persist a draft, reusing an existing record with the same identity."""
        if draft.barcode:
            existing = self.products.find_by_barcode(draft.barcode)
            if existing is not None:
                return existing
        else:
            existing = self.products.find_by_name(draft.name)
            if existing is not None and not existing.is_placeholder:
                return existing
        product = self.products.create_product(draft)
        _logger.info(
            "Product stored: id=%s name=%s source=%s",
            product.id,
            product.name,
            product.source,
        )
        return product

    def _tiers(self, ctx: _Query) -> list[tuple[str, _Tier]]:
        if looks_like_barcode(ctx.raw):
            return [("barcode", self._barcode_tier)]
        if ctx.mode == SearchMode.EXTERNAL:
            return [("external", self._external_tier)]
        tiers: list[tuple[str, _Tier]] = [
            ("local_exact", self._local_exact_tier),
            ("local_fuzzy", self._local_fuzzy_tier),
        ]
        if ctx.mode == SearchMode.SMART:
            tiers.append(("external", self._external_tier))
        tiers.append(("generative", self._generative_tier))
        return tiers

    async def _barcode_tier(self, ctx: _Query) -> SearchResolution | None:
        if ctx.mode != SearchMode.EXTERNAL:
            local = self.products.find_by_barcode(ctx.raw)
            if local is not None:
                return SearchResolution.found(local, ResolutionSource.LOCAL)
        if ctx.mode == SearchMode.FAST:
            return None
        product = await self._fetch_barcode(ctx.raw, ctx.language)
        if product is None:
            return None
        return SearchResolution.found(product, ResolutionSource.EXTERNAL)

    async def _local_exact_tier(self, ctx: _Query) -> SearchResolution | None:
        product = self.products.find_by_name(ctx.raw)
        if product is None:
            return None
        if product.is_placeholder:
            _logger.info("Skipping placeholder product: id=%s", product.id)
            return None
        return SearchResolution.found(product, ResolutionSource.LOCAL)

    async def _local_fuzzy_tier(self, ctx: _Query) -> SearchResolution | None:
        candidates = [
            product
            for product in self.products.search_products(
                ctx.raw,
                prefix=len(ctx.normalized) < SHORT_QUERY_LENGTH,
                include_category=not ctx.is_generic,
                limit=self.max_results,
            )
            if not product.is_placeholder
        ]
        for product in candidates:
            if normalize(product.name) == ctx.normalized:
                return SearchResolution.found(product, ResolutionSource.LOCAL)
        if ctx.mode == SearchMode.FAST and candidates:
            return SearchResolution.listing(candidates, ResolutionSource.LOCAL)
        return None

    async def _external_tier(self, ctx: _Query) -> SearchResolution | None:
        if ctx.mode == SearchMode.SMART and ctx.is_generic:
            _logger.info("External search skipped for generic query=%s", ctx.raw)
            return None
        try:
            results = await self.catalog.search_by_text(
                ctx.raw, ctx.language, self.max_results
            )
        except UpstreamUnavailableError as exc:
            _logger.warning("External tier unavailable: %s", exc)
            return None
        if not results:
            return None
        return self._rank_external(ctx, results)

    def _rank_external(
        self, ctx: _Query, results: list[ProductDraft]
    ) -> SearchResolution:
        tokens = tokenize(ctx.normalized)
        scored = [(_relevance(tokens, draft), draft) for draft in results]
        relevant = [(score, draft) for score, draft in scored if score > 0]
        if not relevant:
            branded = [draft for draft in results if draft.brand]
            top = (branded or results)[: self.max_results]
            _logger.info("External results kept without relevance match: %s", len(top))
            return SearchResolution.listing(top, ResolutionSource.EXTERNAL)

        relevant.sort(key=lambda item: (-item[0], not item[1].brand))
        ranked = [draft for _, draft in relevant]
        branded = [draft for draft in ranked if draft.brand]
        branded_scores = [score for score, draft in relevant if draft.brand]
        if len(branded) == 1 and _covers_query(branded_scores[0], tokens):
            product = self.materialize(branded[0])
            return SearchResolution.found(product, ResolutionSource.EXTERNAL)
        top = (branded or ranked)[: self.max_results]
        return SearchResolution.listing(top, ResolutionSource.EXTERNAL)

    async def _generative_tier(self, ctx: _Query) -> SearchResolution | None:
        if ctx.mode == SearchMode.SMART and ctx.has_brand and not ctx.is_generic:
            _logger.info("Generative tier skipped for branded query=%s", ctx.raw)
            return None
        cache_key = f"{ctx.normalized}|{ctx.language}|llm"
        cached = self.cache.get(cache_key)
        if isinstance(cached, SearchResolution):
            _logger.info("Generative cache hit: key=%s", cache_key)
            return cached
        draft = await self.synthesizer.generate_generic_product(ctx.raw, ctx.language)
        if draft is None:
            return None
        resolution = SearchResolution.generated(draft)
        self.cache.set(cache_key, resolution, ttl_seconds=self.generated_ttl_seconds)
        return resolution

    def _fallback(self, ctx: _Query) -> SearchResolution:
        if looks_like_barcode(ctx.raw):
            return SearchResolution.none(f"Barcode {ctx.raw} not found")
        if ctx.mode == SearchMode.FAST:
            return SearchResolution.none("No quick results")
        if ctx.mode == SearchMode.EXTERNAL:
            return SearchResolution.none("No external results")
        questions = _CLARIFY_QUESTIONS.get(ctx.language, _CLARIFY_QUESTIONS["en"])
        return SearchResolution.clarify(
            questions, "No clear match. Is this branded or fresh?"
        )

    async def _fetch_barcode(self, barcode: str, language: str) -> Product | None:
        try:
            draft = await self.catalog.lookup_by_barcode(barcode, language)
        except UpstreamUnavailableError as exc:
            _logger.warning("Barcode tier unavailable: %s", exc)
            return None
        if draft is None:
            return None
        return self.materialize(draft)


def _relevance(tokens: list[str], draft: ProductDraft) -> int:
    """Count query tokens found in the candidate's name or brand."""
    haystacks = [normalize(draft.name), normalize(draft.brand)]
    return sum(
        1
        for token in tokens
        if any(_token_matches(token, haystack) for haystack in haystacks)
    )


def _covers_query(score: int, tokens: list[str]) -> bool:
    """A hit is trusted alone only when it matches most query tokens."""
    return 2 * score > len(tokens)


def _token_matches(token: str, text: str) -> bool:
    # Short tokens must match a whole word; substring hits are mostly noise.
    if len(token) < SHORT_QUERY_LENGTH:
        return token in _WORD_SPLIT.split(text)
    return token in text


def _log_resolution(
    tier: str, ctx: _Query, resolution: SearchResolution, user_id: UUID | None
) -> None:
    _logger.info(
        "Resolution: tier=%s decision=%s source=%s mode=%s query=%s user_id=%s",
        tier,
        resolution.decision,
        resolution.source,
        ctx.mode,
        ctx.raw,
        user_id,
    )
