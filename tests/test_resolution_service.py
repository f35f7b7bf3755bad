"""Tests for the product resolution waterfall."""

import asyncio

import httpx
import pytest

from pantry_tracker.domain.products import Product, ProductDraft, ProductSource
from pantry_tracker.domain.resolution import (
    ResolutionDecision,
    ResolutionSource,
    SearchMode,
)
from pantry_tracker.services.resolution import ProductResolutionService
from tests.conftest import (
    FakeOpenFoodFactsClient,
    FakeTextClient,
    InMemoryProductRepository,
    make_product,
    off_record,
)


def test_exact_name_match_is_found_locally(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
    off_client: FakeOpenFoodFactsClient,
    text_client: FakeTextClient,
) -> None:
    milk = product_repository.add(make_product("Leche entera"))

    result = asyncio.run(resolution_service.resolve("leche ENTERA"))

    assert result.decision == ResolutionDecision.FOUND
    assert result.source == ResolutionSource.LOCAL
    assert result.product == milk
    assert off_client.calls == 0
    assert text_client.prompts == []


def test_generated_placeholder_falls_through_to_next_tier(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
) -> None:
    product_repository.add(
        make_product(
            "Lechuga", source=ProductSource.GENERATIVE_FALLBACK, is_verified=False
        )
    )

    result = asyncio.run(resolution_service.resolve("Lechuga"))

    assert result.decision == ResolutionDecision.GENERATED
    assert result.source == ResolutionSource.GENERATIVE


def test_generated_record_with_description_is_trusted(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
    text_client: FakeTextClient,
) -> None:
    product_repository.add(
        make_product(
            "Lechuga",
            source=ProductSource.GENERATIVE_FALLBACK,
            description="Lechuga iceberg",
        )
    )

    result = asyncio.run(resolution_service.resolve("lechuga"))

    assert result.decision == ResolutionDecision.FOUND
    assert result.source == ResolutionSource.LOCAL
    assert text_client.prompts == []


@pytest.mark.parametrize("query", ["lechuga", "Huevos", "sandía", "watermelon"])
def test_generic_queries_never_call_external_catalog(
    resolution_service: ProductResolutionService,
    off_client: FakeOpenFoodFactsClient,
    query: str,
) -> None:
    off_client.search_results = [off_record("Something", brands="Brand")]

    asyncio.run(resolution_service.resolve(query))

    assert off_client.calls == 0


@pytest.mark.parametrize("query", ["", "   ", "a", "é", "1"])
def test_short_queries_end_in_none_without_generation(
    resolution_service: ProductResolutionService,
    text_client: FakeTextClient,
    off_client: FakeOpenFoodFactsClient,
    query: str,
) -> None:
    result = asyncio.run(resolution_service.resolve(query))

    assert result.decision == ResolutionDecision.NONE
    assert text_client.prompts == []
    assert off_client.calls == 0


def test_generative_result_is_served_from_cache(
    resolution_service: ProductResolutionService,
    text_client: FakeTextClient,
) -> None:
    first = asyncio.run(resolution_service.resolve("lechuga", "es"))
    second = asyncio.run(resolution_service.resolve("lechuga", "es"))

    assert first.decision == ResolutionDecision.GENERATED
    assert second is first
    assert len(text_client.prompts) == 1


def test_cache_is_keyed_by_language(
    resolution_service: ProductResolutionService,
    text_client: FakeTextClient,
) -> None:
    asyncio.run(resolution_service.resolve("lechuga", "es"))
    asyncio.run(resolution_service.resolve("lechuga", "en"))

    assert len(text_client.prompts) == 2


def test_lettuce_scenario_generates_unbranded_unverified_product(
    resolution_service: ProductResolutionService,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    result = asyncio.run(resolution_service.resolve("lechuga"))

    assert result.decision == ResolutionDecision.GENERATED
    assert isinstance(result.product, ProductDraft)
    assert result.product.is_verified is False
    assert result.product.brand is None
    assert result.product.source == ProductSource.GENERATIVE_FALLBACK
    assert off_client.calls == 0


def test_branded_query_consults_external_catalog(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    off_client.search_results = [
        off_record(
            "Coca-Cola Original 500ml",
            code="5449000000996",
            brands="Coca-Cola",
            categories="Bebidas, Refrescos",
        ),
        off_record("Agua mineral", code="8410000000001", brands="Font Vella"),
    ]

    result = asyncio.run(resolution_service.resolve("Coca Cola 500ml"))

    assert off_client.search_calls == ["Coca Cola 500ml"]
    assert result.decision == ResolutionDecision.FOUND
    assert result.source == ResolutionSource.EXTERNAL
    assert isinstance(result.product, Product)
    assert result.product.barcode == "5449000000996"
    assert product_repository.find_by_barcode("5449000000996") is not None


def test_several_branded_hits_are_listed_by_relevance(
    resolution_service: ProductResolutionService,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    off_client.search_results = [
        off_record("Cola light", brands="Pepsi"),
        off_record("Coca-Cola Zero", brands="Coca-Cola"),
        off_record("Refresco de cola", brands=""),
    ]

    result = asyncio.run(resolution_service.resolve("coca cola zero"))

    assert result.decision == ResolutionDecision.LIST
    assert result.source == ResolutionSource.EXTERNAL
    assert [item.name for item in result.products] == [
        "Coca-Cola Zero",
        "Cola light",
    ]


def test_irrelevant_external_results_fall_back_to_branded_raw_results(
    resolution_service: ProductResolutionService,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    off_client.search_results = [
        off_record("Agua mineral", brands="Font Vella"),
        off_record("Pan de molde", brands=""),
    ]

    result = asyncio.run(resolution_service.resolve("zumo tropical"))

    assert result.decision == ResolutionDecision.LIST
    assert [item.name for item in result.products] == ["Agua mineral"]


def test_short_tokens_need_whole_word_match(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    off_client.search_results = [
        off_record("Queso manchego", brands="García Baquero"),
        off_record("Chocolate 7up edition", brands="Milka"),
        off_record("7 cereales", brands="Kellogg"),
    ]

    result = asyncio.run(resolution_service.resolve("7 up"))

    # "up" only appears inside "7up", and "7" is a whole word in one product.
    assert result.decision == ResolutionDecision.LIST
    assert [item.name for item in result.products] == ["7 cereales"]
    assert product_repository.products == {}


def test_single_branded_hit_matching_half_the_query_is_not_stored(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    off_client.search_results = [
        off_record("Galletas digestive", code="8410000000020", brands="Gullón"),
    ]

    partial = asyncio.run(resolution_service.resolve("Gullón chocolate"))
    full = asyncio.run(resolution_service.resolve("Gullón digestive"))

    assert partial.decision == ResolutionDecision.LIST
    assert full.decision == ResolutionDecision.FOUND
    assert len(product_repository.products) == 1


def test_external_failure_degrades_to_clarify(
    resolution_service: ProductResolutionService,
    off_client: FakeOpenFoodFactsClient,
    text_client: FakeTextClient,
) -> None:
    off_client.error = httpx.ConnectTimeout("timed out")

    result = asyncio.run(resolution_service.resolve("Kinder Bueno"))

    assert result.decision == ResolutionDecision.CLARIFY
    assert len(result.questions) == 2
    assert off_client.search_calls == ["Kinder Bueno"]
    # Branded queries never reach the generative tier in smart mode.
    assert text_client.prompts == []


def test_unresolved_query_asks_for_clarification_in_language(
    resolution_service: ProductResolutionService,
    text_client: FakeTextClient,
) -> None:
    text_client.text = "Sorry, I cannot help with that."

    spanish = asyncio.run(resolution_service.resolve("cosa rara", "es"))
    english = asyncio.run(resolution_service.resolve("odd thing", "en"))

    assert spanish.decision == ResolutionDecision.CLARIFY
    assert spanish.questions[1] == "¿Cuál es la marca, si la tiene?"
    assert english.questions[1] == "What is the brand, if any?"


def test_barcode_query_found_locally_without_network(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    product = product_repository.add(
        make_product("Galletas María", barcode="8410000810004")
    )

    result = asyncio.run(resolution_service.resolve("8410000810004"))

    assert result.decision == ResolutionDecision.FOUND
    assert result.source == ResolutionSource.LOCAL
    assert result.product == product
    assert off_client.calls == 0


def test_barcode_query_fetched_from_catalog_is_stored(
    resolution_service: ProductResolutionService,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    off_client.barcodes["3017620422003"] = off_record(
        "Nutella", brands="Ferrero", categories="Spreads, Sweets"
    )

    first = asyncio.run(resolution_service.resolve("3017620422003"))
    second = asyncio.run(resolution_service.resolve("3017620422003"))

    assert first.decision == ResolutionDecision.FOUND
    assert first.source == ResolutionSource.EXTERNAL
    assert isinstance(first.product, Product)
    assert first.product.is_verified is True
    assert second.source == ResolutionSource.LOCAL
    assert off_client.barcode_calls == ["3017620422003"]


def test_unknown_barcode_ends_in_none(
    resolution_service: ProductResolutionService,
    text_client: FakeTextClient,
) -> None:
    result = asyncio.run(resolution_service.resolve("0000000000000"))

    assert result.decision == ResolutionDecision.NONE
    assert text_client.prompts == []


def test_fast_mode_lists_local_candidates(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    product_repository.add(make_product("Yogur natural"))
    product_repository.add(make_product("Yogur griego"))

    result = asyncio.run(resolution_service.resolve("yogur", mode=SearchMode.FAST))

    assert result.decision == ResolutionDecision.LIST
    assert result.source == ResolutionSource.LOCAL
    assert len(result.products) == 2
    assert off_client.calls == 0


def test_fast_mode_without_results_returns_none(
    resolution_service: ProductResolutionService,
    off_client: FakeOpenFoodFactsClient,
    text_client: FakeTextClient,
) -> None:
    text_client.error = RuntimeError("model down")

    result = asyncio.run(
        resolution_service.resolve("producto raro", mode=SearchMode.FAST)
    )

    assert result.decision == ResolutionDecision.NONE
    assert result.message == "No quick results"
    assert off_client.calls == 0


def test_external_mode_skips_local_and_generative_tiers(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
    off_client: FakeOpenFoodFactsClient,
    text_client: FakeTextClient,
) -> None:
    product_repository.add(make_product("Lechuga"))

    result = asyncio.run(
        resolution_service.resolve("lechuga", mode=SearchMode.EXTERNAL)
    )

    assert result.decision == ResolutionDecision.NONE
    assert off_client.search_calls == ["lechuga"]
    assert text_client.prompts == []


def test_fuzzy_match_ignores_stray_whitespace_in_names(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
) -> None:
    product = product_repository.add(make_product("Pan de pueblo "))

    result = asyncio.run(resolution_service.resolve("pan de pueblo"))

    assert result.decision == ResolutionDecision.FOUND
    assert result.product == product


def test_lookup_barcode_without_external_access(
    resolution_service: ProductResolutionService,
    off_client: FakeOpenFoodFactsClient,
) -> None:
    product = asyncio.run(
        resolution_service.lookup_barcode("12345678", allow_external=False)
    )

    assert product is None
    assert off_client.calls == 0


def test_materialize_reuses_existing_barcode(
    resolution_service: ProductResolutionService,
    product_repository: InMemoryProductRepository,
) -> None:
    existing = product_repository.add(make_product("Atún", barcode="8410000000002"))
    draft = ProductDraft(
        name="Atún claro",
        source=ProductSource.EXTERNAL_CATALOG,
        barcode="8410000000002",
    )

    assert resolution_service.materialize(draft) == existing
    assert len(product_repository.products) == 1
