"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from pantry_tracker.adapters.off_client import HttpxOpenFoodFactsClient
from pantry_tracker.adapters.openai_text_client import OpenAITextClient
from pantry_tracker.adapters.supabase_inventory_repository import (
    SupabaseInventoryRepository,
)
from pantry_tracker.adapters.supabase_movement_repository import (
    SupabaseMovementRepository,
)
from pantry_tracker.adapters.supabase_product_repository import (
    SupabaseProductRepository,
)
from pantry_tracker.config import Settings, parse_keyword_list
from pantry_tracker.services.cache import InMemoryCache
from pantry_tracker.services.catalog import CatalogService
from pantry_tracker.services.classification import QueryClassifier
from pantry_tracker.services.generation import ProductSynthesizer
from pantry_tracker.services.inventory import InventoryService
from pantry_tracker.services.movements import MovementService
from pantry_tracker.services.products import ProductService
from pantry_tracker.services.resolution import ProductResolutionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    product_service: ProductService
    resolution_service: ProductResolutionService
    inventory_service: InventoryService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    product_repository = SupabaseProductRepository(supabase_client)
    inventory_repository = SupabaseInventoryRepository(supabase_client)
    movement_repository = SupabaseMovementRepository(supabase_client)

    off_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.off_base_url,
        user_agent=resolved_settings.off_user_agent,
        timeout_seconds=resolved_settings.off_timeout_seconds,
    )
    text_client = (
        OpenAITextClient.create(
            resolved_settings.openai_api_key,
            timeout_seconds=resolved_settings.openai_timeout_seconds,
        )
        if resolved_settings.openai_api_key
        else None
    )
    resolution_service = ProductResolutionService(
        products=product_repository,
        catalog=CatalogService(off_client),
        classifier=QueryClassifier.with_extra(
            generic_terms=parse_keyword_list(resolved_settings.extra_generic_terms),
            brands=parse_keyword_list(resolved_settings.extra_brands),
        ),
        synthesizer=ProductSynthesizer(
            client=text_client,
            model=resolved_settings.openai_model,
            timeout_seconds=resolved_settings.openai_timeout_seconds,
        ),
        cache=InMemoryCache(),
        generated_ttl_seconds=resolved_settings.search_cache_ttl_seconds,
    )
    inventory_service = InventoryService(
        repository=inventory_repository,
        products=product_repository,
        resolver=resolution_service,
        movements=MovementService(movement_repository),
    )

    async def close_resources() -> None:
        await off_client.close()
        if text_client is not None:
            await text_client.close()

    return AppContainer(
        settings=resolved_settings,
        product_service=ProductService(product_repository),
        resolution_service=resolution_service,
        inventory_service=inventory_service,
        close_resources=close_resources,
    )
