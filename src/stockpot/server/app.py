"""ASGI application for Stockpot."""
# mypy: ignore-errors

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from stockpot import __version__, metrics
from stockpot.config import Settings, get_settings
from stockpot.errors import FulfillmentFailed, StockpotError, StorageError, ValidationError
from stockpot.fulfillment import FulfillmentEngine, OrderIntake
from stockpot.inventory import InventoryLedger, classify_stock_level, import_inventory_csv
from stockpot.logging_utils import configure_from_settings
from stockpot.models import (
    BulkUploadResult,
    FulfillmentRequest,
    FulfillmentResult,
    InventoryItem,
    LowStockItem,
    Notification,
    OrderOutcome,
    Recipe,
    RecipeCost,
    RecipeIngredient,
    RecipeItem,
    StockAdjustment,
    parse_payload,
)
from stockpot.notifications import NotificationDispatcher
from stockpot.recipes import RecipeCatalog
from stockpot.server import deps
from stockpot.storage import StorageBackend

logger = logging.getLogger(__name__)

GENERIC_STORAGE_MESSAGE = "Storage backend error"


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value.hex()
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _normalize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Ensure validation error payloads can be serialized to JSON."""

    normalized: list[dict[str, Any]] = []
    for error in errors:
        normalized.append({key: _json_safe(value) for key, value in error.items()})
    return normalized


def _error_body(exc: StockpotError) -> dict[str, Any]:
    content: dict[str, Any] = {"detail": exc.message}
    if isinstance(exc, ValidationError) and exc.fields:
        content["fields"] = exc.fields
    if isinstance(exc, StorageError):
        content["detail"] = GENERIC_STORAGE_MESSAGE
    if isinstance(exc, FulfillmentFailed):
        if isinstance(exc.cause, StorageError):
            content["detail"] = f"{GENERIC_STORAGE_MESSAGE} during fulfillment; applied adjustments were not rolled back"
        content["failedInventoryId"] = exc.failed_inventory_id
        content["applied"] = [adjustment.model_dump(mode="json", by_alias=True) for adjustment in exc.applied]
    return content


def create_app(settings: Optional[Settings] = None, storage: Optional[StorageBackend] = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    ``storage`` overrides the backend named in settings; the application closes
    whichever backend it ends up using on shutdown.
    """

    settings = settings or get_settings()
    configure_from_settings(settings)

    application = FastAPI(title="Stockpot Inventory Service", version=__version__)
    application.state.resources = deps.AppResources(settings, storage)

    @application.on_event("shutdown")
    def close_storage() -> None:
        application.state.resources.close()

    logger.debug("Application created with log level %s", settings.log_level)

    if settings.log_requests:
        access_logger = logging.getLogger("stockpot.access")

        @application.middleware("http")
        async def log_request_response(request: Request, call_next):
            """Log request/response details without leaking sensitive data."""

            request_id = request.headers.get("X-Request-ID") or uuid4().hex
            request.state.request_id = request_id
            start = perf_counter()
            path = request.url.path
            method = request.method
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (perf_counter() - start) * 1000
                access_logger.exception(
                    "HTTP %s %s status=500 duration_ms=%.2f",
                    method,
                    path,
                    duration_ms,
                    extra={"request_id": request_id},
                )
                metrics.REQUEST_COUNT.labels(method=method, path=path, status="500").inc()
                metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)
                raise

            duration_ms = (perf_counter() - start) * 1000
            response.headers.setdefault("X-Request-ID", request_id)
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                path,
                response.status_code,
                duration_ms,
                extra={"request_id": request_id},
            )
            metrics.REQUEST_COUNT.labels(method=method, path=path, status=str(response.status_code)).inc()
            metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)
            return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        log_kwargs: dict[str, Any] = {}
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            log_kwargs["extra"] = {"request_id": request_id}

        logger.warning(
            "Validation error on %s %s: %s",
            request.method,
            request.url.path,
            exc.errors(),
            **log_kwargs,
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": _normalize_validation_errors(exc.errors())},
        )

    @application.exception_handler(StockpotError)
    async def stockpot_exception_handler(request: Request, exc: StockpotError):
        log_extra: dict[str, Any] = {}
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            log_extra["request_id"] = request_id

        if exc.status_code >= 500:
            logger.error(
                "%s on %s %s: %s",
                type(exc).__name__,
                request.method,
                request.url.path,
                exc.message,
                exc_info=exc,
                extra=log_extra,
            )
        else:
            logger.info(
                "%s on %s %s: %s",
                type(exc).__name__,
                request.method,
                request.url.path,
                exc.message,
                extra=log_extra,
            )
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc))

    # Inventory -------------------------------------------------------------------

    @application.get(
        "/inventory",
        response_model=list[InventoryItem],
        summary="List inventory items",
    )
    def inventory_list(
        category: Optional[str] = Query(default=None, min_length=1, max_length=128),
        ledger: InventoryLedger = Depends(deps.get_ledger),
    ) -> list[InventoryItem]:
        if category:
            return ledger.list_by_category(category)
        return ledger.list_items()

    @application.get(
        "/inventory/low-stock",
        response_model=list[LowStockItem],
        summary="List items below their ideal quantity",
    )
    def inventory_low_stock(
        ledger: InventoryLedger = Depends(deps.get_ledger),
    ) -> list[LowStockItem]:
        return [
            LowStockItem(**item.model_dump(), stock_level=classify_stock_level(item))
            for item in ledger.low_stock()
        ]

    @application.post(
        "/inventory/bulk-upload",
        response_model=BulkUploadResult,
        response_model_exclude_none=True,
        summary="Import inventory items from CSV",
    )
    def inventory_bulk_upload(
        payload: BulkUploadRequest,
        auth: None = Depends(deps.require_api_token),
        ledger: InventoryLedger = Depends(deps.get_ledger),
    ) -> BulkUploadResult:
        return import_inventory_csv(ledger, payload.data)

    @application.get(
        "/inventory/{item_id}",
        response_model=InventoryItem,
        summary="Fetch one inventory item",
    )
    def inventory_get(
        item_id: int,
        ledger: InventoryLedger = Depends(deps.get_ledger),
    ) -> InventoryItem:
        return ledger.get(item_id)

    @application.post(
        "/inventory",
        response_model=InventoryItem,
        status_code=status.HTTP_201_CREATED,
        summary="Create inventory item",
    )
    def inventory_create(
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        ledger: InventoryLedger = Depends(deps.get_ledger),
    ) -> InventoryItem:
        return ledger.create(payload)

    @application.patch(
        "/inventory/{item_id}",
        response_model=InventoryItem,
        summary="Update inventory item",
    )
    def inventory_update(
        item_id: int,
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        ledger: InventoryLedger = Depends(deps.get_ledger),
    ) -> InventoryItem:
        return ledger.update(item_id, payload)

    @application.patch(
        "/inventory/{item_id}/stock",
        response_model=InventoryItem,
        summary="Adjust stock quantity",
    )
    def inventory_adjust_stock(
        item_id: int,
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        ledger: InventoryLedger = Depends(deps.get_ledger),
    ) -> InventoryItem:
        adjustment = parse_payload(StockAdjustment, payload)
        return ledger.adjust_stock(
            item_id,
            adjustment.quantity_change,
            unit_price=adjustment.unit_price,
            total_price=adjustment.total_price,
        )

    # Recipes ---------------------------------------------------------------------

    @application.get(
        "/recipes",
        response_model=list[Recipe],
        summary="List recipes",
    )
    def recipes_list(
        category: Optional[str] = Query(default=None, min_length=1, max_length=128),
        order_type: Optional[str] = Query(default=None, alias="orderType", min_length=1, max_length=64),
        catalog: RecipeCatalog = Depends(deps.get_catalog),
    ) -> list[Recipe]:
        if category and order_type:
            by_type = {recipe.id for recipe in catalog.list_by_order_type(order_type)}
            return [recipe for recipe in catalog.list_by_category(category) if recipe.id in by_type]
        if category:
            return catalog.list_by_category(category)
        if order_type:
            return catalog.list_by_order_type(order_type)
        return catalog.list_recipes()

    @application.get(
        "/recipes/{recipe_id}",
        response_model=Recipe,
        summary="Fetch one recipe",
    )
    def recipes_get(
        recipe_id: int,
        catalog: RecipeCatalog = Depends(deps.get_catalog),
    ) -> Recipe:
        return catalog.get(recipe_id)

    @application.post(
        "/recipes",
        response_model=Recipe,
        status_code=status.HTTP_201_CREATED,
        summary="Create recipe",
    )
    def recipes_create(
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        catalog: RecipeCatalog = Depends(deps.get_catalog),
    ) -> Recipe:
        return catalog.create(payload)

    @application.patch(
        "/recipes/{recipe_id}",
        response_model=Recipe,
        summary="Update recipe",
    )
    def recipes_update(
        recipe_id: int,
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        catalog: RecipeCatalog = Depends(deps.get_catalog),
    ) -> Recipe:
        return catalog.update(recipe_id, payload)

    @application.get(
        "/recipes/{recipe_id}/items",
        response_model=list[RecipeIngredient],
        summary="List recipe ingredients with current inventory",
    )
    def recipe_items_list(
        recipe_id: int,
        catalog: RecipeCatalog = Depends(deps.get_catalog),
    ) -> list[RecipeIngredient]:
        return catalog.ingredients_of(recipe_id)

    @application.post(
        "/recipes/{recipe_id}/items",
        response_model=RecipeItem,
        status_code=status.HTTP_201_CREATED,
        summary="Add ingredient to recipe",
    )
    def recipe_items_create(
        recipe_id: int,
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        catalog: RecipeCatalog = Depends(deps.get_catalog),
    ) -> RecipeItem:
        return catalog.add_ingredient(recipe_id, payload)

    @application.get(
        "/recipes/{recipe_id}/cost",
        response_model=RecipeCost,
        summary="Estimate ingredient cost of one serving",
    )
    def recipes_cost(
        recipe_id: int,
        catalog: RecipeCatalog = Depends(deps.get_catalog),
    ) -> RecipeCost:
        return catalog.estimate_cost(recipe_id)

    @application.patch(
        "/recipe-items/{item_id}",
        response_model=RecipeItem,
        summary="Update recipe ingredient",
    )
    def recipe_items_update(
        item_id: int,
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        catalog: RecipeCatalog = Depends(deps.get_catalog),
    ) -> RecipeItem:
        return catalog.update_ingredient(item_id, payload)

    @application.delete(
        "/recipe-items/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Remove recipe ingredient",
    )
    def recipe_items_delete(
        item_id: int,
        auth: None = Depends(deps.require_api_token),
        catalog: RecipeCatalog = Depends(deps.get_catalog),
    ) -> None:
        catalog.remove_ingredient(item_id)

    # Fulfillment and orders --------------------------------------------------------

    @application.post(
        "/fulfillment",
        response_model=FulfillmentResult,
        summary="Deduct the ingredients of one serving of a dish",
    )
    def fulfillment_run(
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        engine: FulfillmentEngine = Depends(deps.get_fulfillment_engine),
    ) -> FulfillmentResult:
        request_data = parse_payload(FulfillmentRequest, payload)
        return engine.process(request_data.dish_name, request_data.order_type)

    @application.post(
        "/orders",
        response_model=OrderOutcome,
        status_code=status.HTTP_201_CREATED,
        summary="Place an order and deduct its ingredients",
    )
    def orders_create(
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        intake: OrderIntake = Depends(deps.get_order_intake),
    ) -> OrderOutcome:
        return intake.place_order(payload)

    # Notifications ---------------------------------------------------------------

    @application.get(
        "/notifications",
        response_model=list[Notification],
        summary="List notifications",
    )
    def notifications_list(
        user_id: Optional[int] = Query(default=None, alias="userId", ge=1),
        dispatcher: NotificationDispatcher = Depends(deps.get_dispatcher),
    ) -> list[Notification]:
        return dispatcher.feed(user_id)

    @application.get(
        "/notifications/unread",
        response_model=list[Notification],
        summary="List unread notifications",
    )
    def notifications_unread(
        user_id: Optional[int] = Query(default=None, alias="userId", ge=1),
        dispatcher: NotificationDispatcher = Depends(deps.get_dispatcher),
    ) -> list[Notification]:
        return dispatcher.unread(user_id)

    @application.post(
        "/notifications",
        response_model=Notification,
        status_code=status.HTTP_201_CREATED,
        summary="Create notification",
    )
    def notifications_create(
        payload: dict[str, Any] = Body(...),
        auth: None = Depends(deps.require_api_token),
        dispatcher: NotificationDispatcher = Depends(deps.get_dispatcher),
    ) -> Notification:
        return dispatcher.dispatch(payload)

    @application.patch(
        "/notifications/{notification_id}/read",
        response_model=Notification,
        summary="Mark notification as read",
    )
    def notifications_mark_read(
        notification_id: int,
        auth: None = Depends(deps.require_api_token),
        dispatcher: NotificationDispatcher = Depends(deps.get_dispatcher),
    ) -> Notification:
        return dispatcher.mark_read(notification_id)

    @application.post(
        "/notifications/read-all",
        summary="Mark all notifications as read",
    )
    def notifications_mark_all_read(
        payload: Optional[ReadAllRequest] = Body(default=None),
        auth: None = Depends(deps.require_api_token),
        dispatcher: NotificationDispatcher = Depends(deps.get_dispatcher),
    ) -> dict[str, Any]:
        user_id = payload.user_id if payload is not None else None
        updated = dispatcher.mark_all_read(user_id)
        return {"message": "All notifications marked as read", "updated": updated}

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    return application


class BulkUploadRequest(BaseModel):
    data: str = Field(min_length=1)


class ReadAllRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: Optional[int] = Field(default=None, ge=1)


BulkUploadRequest.model_rebuild()
ReadAllRequest.model_rebuild()


app = create_app()
