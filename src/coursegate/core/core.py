from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast
from urllib.parse import urlparse

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from coursegate.config import Config
from coursegate.core.locks import IdentityLocks

if TYPE_CHECKING:
    from coursegate.core.modules.access.service import AccessService
    from coursegate.core.modules.entitlement.service import EntitlementService
    from coursegate.core.modules.identity.service import IdentityService
    from coursegate.core.modules.notification.service import NotificationService
    from coursegate.core.modules.scheduler.service import ExpiryScheduler
    from coursegate.core.modules.session.inspector import SessionInspector
    from coursegate.core.modules.session.service import SessionService


class Service:
    """Base class for services with direct database access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    identity: IdentityService
    session: SessionService
    entitlement: EntitlementService
    notification: NotificationService
    inspector: SessionInspector
    access: AccessService
    scheduler: ExpiryScheduler

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []
        self._database = database

        # Service configuration: (attribute_name, module_path, class_name)
        # Order matters: identity first (indexes, admin seed), scheduler last (starts timers)
        service_configs = [
            ("identity", "coursegate.core.modules.identity.service", "IdentityService"),
            ("session", "coursegate.core.modules.session.service", "SessionService"),
            ("entitlement", "coursegate.core.modules.entitlement.service", "EntitlementService"),
            ("notification", "coursegate.core.modules.notification.service", "NotificationService"),
            ("inspector", "coursegate.core.modules.session.inspector", "SessionInspector"),
            ("access", "coursegate.core.modules.access.service", "AccessService"),
            ("scheduler", "coursegate.core.modules.scheduler.service", "ExpiryScheduler"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(database)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        """Start all services that have startup logic."""
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        """Stop all services in reverse start order."""
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, database, identity locks and all service instances."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]]
    database: AsyncDatabase[dict[str, Any]]
    locks: IdentityLocks
    services: Services

    def __init__(self, config: Config, mongo_client: AsyncMongoClient[dict[str, Any]] | None = None) -> None:
        """Initialize core with config, MongoDB, and auto-register services."""
        self.config = config
        if mongo_client is None:
            mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard", tz_aware=True)
        self.mongo_client = mongo_client
        self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        self.locks = IdentityLocks()
        self.services = Services(self.database)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close MongoDB connection on shutdown."""
        await self.services.stop_all()
        await self.mongo_client.aclose()
