"""
Service Container

Builds and owns every stateful collaborator for one application instance:
the circuit breaker, the pool manager, the outbound rate limiter, the blob
store and the services on top of them. Nothing is module-global, so each app
(and each test) gets independent breaker and limiter state.
"""

from dataclasses import dataclass

from invport.application.services.inventory_service import InventoryService
from invport.application.services.rewrite_service import RewriteService
from invport.application.services.vin_folder_service import VinFolderService
from invport.core.config.settings import Settings
from invport.core.logging.logger import get_logger
from invport.core.resilience.connection_pool_manager import ConnectionPoolManager, PoolFactory
from invport.core.resilience.rate_limiter import RateLimiter
from invport.infrastructure.database.query_executor import QueryExecutor
from invport.infrastructure.monitoring.health_checker import HealthChecker
from invport.infrastructure.storage.blob_storage import BlobFolderStore

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    pool_manager: ConnectionPoolManager
    executor: QueryExecutor
    rate_limiter: RateLimiter | None
    blob_store: BlobFolderStore
    inventory: InventoryService
    rewrite: RewriteService
    vin_folders: VinFolderService
    health: HealthChecker

    @classmethod
    def build(
        cls,
        settings: Settings,
        pool_factory: PoolFactory | None = None,
        blob_store: BlobFolderStore | None = None,
    ) -> "ServiceContainer":
        """
        Wire the service graph from settings.

        Args:
            settings: Application settings
            pool_factory: Overrides the aioodbc pool factory
            blob_store: Overrides the Azure-backed blob store
        """
        pool_manager = ConnectionPoolManager(settings=settings, pool_factory=pool_factory)
        executor = QueryExecutor(pool_manager, query_timeout=settings.database.DB_QUERY_TIMEOUT)
        rate_limiter = RateLimiter() if settings.rate_limit.OUTBOUND_THROTTLE_ENABLED else None
        storage = settings.storage
        blob_store = blob_store or BlobFolderStore(storage.AZURE_STORAGE_CONNECTION_STRING)

        logger.info(
            "Service container built",
            stage="0.2",
            outbound_throttle=rate_limiter is not None,
            storage_configured=blob_store.configured,
        )
        return cls(
            settings=settings,
            pool_manager=pool_manager,
            executor=executor,
            rate_limiter=rate_limiter,
            blob_store=blob_store,
            inventory=InventoryService(executor, rate_limiter=rate_limiter),
            rewrite=RewriteService(),
            vin_folders=VinFolderService(blob_store, storage, rate_limiter=rate_limiter),
            health=HealthChecker(executor, settings.database),
        )

    async def aclose(self) -> None:
        """Release the pool and the storage client."""
        await self.pool_manager.close()
        await self.blob_store.close()
        if self.rate_limiter is not None:
            self.rate_limiter.clear()
