"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING, Literal
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from pantry_tracker.api.models import (  # noqa: TC001
    LocationCreateRequest,
    ProductCreateRequest,
    ProductUpdateRequest,
)
from pantry_tracker.app_logging import configure_logging
from pantry_tracker.domain.inventory import (  # noqa: TC001
    LocationFilters,
    LocationPatch,
    StorageLocation,
)
from pantry_tracker.domain.resolution import SearchMode
from pantry_tracker.errors import (
    DuplicateBarcodeError,
    InfrastructureError,
    InvalidQuantityError,
    InvalidTransitionError,
    NotFoundError,
    PantryError,
    ProductNotFoundError,
    UpstreamUnavailableError,
)
from pantry_tracker.services.catalog import list_categories

if TYPE_CHECKING:
    from pantry_tracker.containers import AppContainer

_ERROR_STATUS: tuple[tuple[type[PantryError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidQuantityError, status.HTTP_400_BAD_REQUEST),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (DuplicateBarcodeError, status.HTTP_409_CONFLICT),
    (UpstreamUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InfrastructureError, status.HTTP_503_SERVICE_UNAVAILABLE),
)
_CONSUMED_FILTER: dict[str, bool | None] = {"false": False, "true": True, "all": None}


def _get_api_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.api_token


async def require_user(
    x_api_token: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
    api_token: str = Depends(_get_api_token),
) -> UUID:
    """Check the shared API token and return the calling user's id."""
    if not x_api_token or x_api_token != api_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    try:
        return UUID(x_user_id or "")
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id must be a UUID",
        ) from exc


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(PantryError)
    async def pantry_error(request: Request, exc: PantryError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request failed: path=%s error=%s", request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/products/search")
    async def search_products(
        request: Request,
        q: str = "",
        language: str | None = None,
        mode: str | None = None,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Resolve a free-text query or barcode to a product."""
        state_container: AppContainer = request.app.state.container
        try:
            search_mode = SearchMode.parse(mode)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown search mode: {mode}",
            ) from exc
        resolution = await state_container.resolution_service.resolve(
            q,
            language=language or state_container.settings.default_language,
            user_id=user_id,
            mode=search_mode,
        )
        return jsonable_encoder(resolution)

    @app.get("/products/scan/{barcode}")
    async def scan_barcode(
        barcode: str,
        request: Request,
        language: str | None = None,
        _user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Return the product for a scanned barcode."""
        state_container: AppContainer = request.app.state.container
        product = await state_container.resolution_service.lookup_barcode(
            barcode.strip(),
            language or state_container.settings.default_language,
        )
        if product is None:
            raise ProductNotFoundError(f"No product found for barcode {barcode}")
        return {"product": jsonable_encoder(product)}

    @app.get("/products/categories")
    async def list_product_categories(
        _user_id: UUID = Depends(require_user),
    ) -> dict[str, list[str]]:
        """Return the category taxonomy products are mapped onto."""
        return {"categories": list_categories()}

    @app.get("/products/{product_id}")
    async def get_product(
        product_id: UUID,
        request: Request,
        _user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Return a product by id."""
        state_container: AppContainer = request.app.state.container
        product = state_container.product_service.get_product(product_id)
        return {"product": jsonable_encoder(product)}

    @app.post("/products", status_code=status.HTTP_201_CREATED)
    async def create_product(
        body: ProductCreateRequest,
        request: Request,
        _user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Create a manually entered product."""
        state_container: AppContainer = request.app.state.container
        product = state_container.product_service.create_manual_product(
            body.to_draft()
        )
        return {"product": jsonable_encoder(product)}

    @app.patch("/products/{product_id}")
    async def update_product(
        product_id: UUID,
        body: ProductUpdateRequest,
        request: Request,
        _user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Apply manual edits to a product."""
        state_container: AppContainer = request.app.state.container
        product = state_container.product_service.update_product(
            product_id, body.model_dump(exclude_unset=True)
        )
        return {"product": jsonable_encoder(product)}

    @app.post("/products/{product_id}/verify")
    async def verify_product(
        product_id: UUID,
        request: Request,
        _user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Confirm a product's data."""
        state_container: AppContainer = request.app.state.container
        product = state_container.product_service.verify_product(product_id)
        return {"product": jsonable_encoder(product)}

    @app.get("/inventory")
    async def list_inventory(  # noqa: PLR0913
        request: Request,
        location: StorageLocation | None = None,
        category: str | None = None,
        consumed: Literal["false", "true", "all"] = "false",
        expiring_before: datetime | None = None,
        page: int = 1,
        limit: int = 20,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Return a page of the user's inventory locations."""
        state_container: AppContainer = request.app.state.container
        result = state_container.inventory_service.list_locations(
            user_id,
            LocationFilters(
                location=location,
                category=category,
                is_consumed=_CONSUMED_FILTER[consumed],
                expiring_before=expiring_before,
            ),
            page=page,
            limit=limit,
        )
        return {
            "items": jsonable_encoder(result.items),
            "page": result.page,
            "limit": result.limit,
            "total": result.total,
            "total_pages": result.total_pages,
        }

    @app.post("/inventory", status_code=status.HTTP_201_CREATED)
    async def add_inventory(
        body: LocationCreateRequest,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Place a quantity of a product in a location."""
        state_container: AppContainer = request.app.state.container
        change = await state_container.inventory_service.add_location(
            user_id,
            body.location,
            body.quantity,
            body.unit,
            product_id=body.product_id,
            barcode=body.barcode,
            name=body.name,
            language=body.language or state_container.settings.default_language,
            purchase_date=body.purchase_date,
            expiry_date=body.expiry_date,
            price=body.price,
            store=body.store,
            notes=body.notes,
        )
        return jsonable_encoder(change)

    @app.get("/inventory/expiring")
    async def list_expiring(
        request: Request,
        days: int = 3,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Return rows expiring within the given number of days."""
        state_container: AppContainer = request.app.state.container
        items = state_container.inventory_service.list_expiring(user_id, days)
        return {"items": jsonable_encoder(items)}

    @app.get("/inventory/movements")
    async def list_movements(
        request: Request,
        limit: int = 50,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Return the user's recent inventory movements."""
        state_container: AppContainer = request.app.state.container
        movements = state_container.inventory_service.list_movements(user_id, limit)
        return {"movements": jsonable_encoder(movements)}

    @app.get("/inventory/products")
    async def list_user_products(
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Return the user's products with on-hand totals."""
        state_container: AppContainer = request.app.state.container
        summaries = state_container.inventory_service.list_user_products(user_id)
        return {"products": jsonable_encoder(summaries)}

    @app.patch("/inventory/{location_id}")
    async def update_inventory(
        location_id: UUID,
        patch: LocationPatch,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Edit, move or consume a location."""
        state_container: AppContainer = request.app.state.container
        change = state_container.inventory_service.update_location(
            user_id, location_id, patch
        )
        return jsonable_encoder(change)

    @app.delete("/inventory/{location_id}")
    async def delete_inventory(
        location_id: UUID,
        request: Request,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Soft-delete a location."""
        state_container: AppContainer = request.app.state.container
        change = state_container.inventory_service.delete_location(
            user_id, location_id
        )
        return jsonable_encoder(change)

    return app


def _status_for(exc: PantryError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
