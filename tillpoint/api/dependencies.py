"""Process-wide till components and FastAPI dependencies.

The API serves exactly one active cart. ``Till`` wires the cart engine,
variant resolver, event bus, catalog snapshot and cart persistence
together; ``get_till`` hands out the singleton.
"""

from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from typing import Annotated

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tillpoint.catalog.cache import ProductQueryCache
from tillpoint.catalog.service import ProductQueryService
from tillpoint.catalog.store import CatalogStore
from tillpoint.domain.base import DomainEvent
from tillpoint.domain.cart import CartEngine
from tillpoint.domain.entities import Product
from tillpoint.domain.exceptions import ProductNotFoundError
from tillpoint.domain.notifier import ALL_EVENTS, EventBus
from tillpoint.domain.variants import VariantResolver
from tillpoint.infrastructure.cart_storage import CartStateStore
from tillpoint.infrastructure.config import settings
from tillpoint.infrastructure.database import get_session
from tillpoint.infrastructure.devices import DeviceProvider, get_device_provider

logger = structlog.get_logger()


@dataclass
class Till:
    """The components behind one till.

    Attributes:
        bus: Event bus every component notifies.
        engine: The single active cart.
        resolver: Variant resolver feeding the engine.
        catalog: In-memory catalog snapshot.
        storage: Cart persistence.
        query_cache: Page cache shared by query services.
        devices: Peripheral device provider.
    """

    bus: EventBus
    engine: CartEngine
    resolver: VariantResolver
    catalog: CatalogStore
    storage: CartStateStore
    query_cache: ProductQueryCache
    devices: DeviceProvider
    _unsubscribe: list[Callable[[], None]] = field(default_factory=list, repr=False)

    @classmethod
    def create(
        cls,
        catalog: CatalogStore | None = None,
        storage: CartStateStore | None = None,
        devices: DeviceProvider | None = None,
    ) -> "Till":
        """Build a till from settings.

        The stored cart is restored and from then on saved after every
        cart event.

        Args:
            catalog: Catalog snapshot; loaded from settings when omitted.
            storage: Cart persistence; uses ``settings.cart_state_path`` when omitted.
            devices: Device provider; chosen by settings when omitted.

        Returns:
            Till instance.
        """
        if catalog is None:
            catalog = (
                CatalogStore.from_file(settings.catalog_snapshot_path)
                if settings.catalog_snapshot_path
                else CatalogStore()
            )
        storage = storage or CartStateStore(settings.cart_state_path)

        bus = EventBus()
        engine = CartEngine(notifier=bus, tax_rate=settings.tax_rate)
        storage.restore(engine)

        till = cls(
            bus=bus,
            engine=engine,
            resolver=VariantResolver(engine),
            catalog=catalog,
            storage=storage,
            query_cache=ProductQueryCache(
                ttl_seconds=settings.query_cache_ttl_seconds,
                max_entries=settings.query_cache_max_entries,
            ),
            devices=devices or get_device_provider(),
        )
        till._unsubscribe.append(bus.subscribe(ALL_EVENTS, till._on_event))
        return till

    def _on_event(self, event: DomainEvent) -> None:
        """Log every event and persist the cart after cart events."""
        logger.info("Domain event", event_type=event.event_type, payload=event.to_dict()["payload"])
        if event.event_type.startswith("cart."):
            self.storage.save(self.engine)

    def close(self) -> None:
        """Detach event handlers."""
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()


# Global till instance
_till: Till | None = None


def get_till() -> Till:
    """Get the till singleton.

    Returns:
        Till instance.
    """
    global _till
    if _till is None:
        _till = Till.create()
    return _till


def reset_till() -> None:
    """Drop the till singleton (for testing)."""
    global _till
    if _till is not None:
        _till.close()
    _till = None


async def get_query_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    till: Annotated[Till, Depends(get_till)],
) -> AsyncGenerator[ProductQueryService, None]:
    """Get a query service bound to the request's session.

    Yields:
        ProductQueryService instance.
    """
    yield ProductQueryService(
        session,
        notifier=till.bus,
        cache=till.query_cache,
        max_page_size=settings.max_page_size,
    )


async def resolve_product(
    product_id: str,
    till: Till,
    service: ProductQueryService,
) -> Product:
    """Find a product in the snapshot, then in the products table.

    Args:
        product_id: Product ID.
        till: Till whose snapshot is searched first.
        service: Query service for the database fallback.

    Returns:
        Resolved product.

    Raises:
        ProductNotFoundError: If neither backend knows the product.
    """
    product = till.catalog.get_item_by_id(product_id)
    if product is None:
        product = await service.get_product(product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product
