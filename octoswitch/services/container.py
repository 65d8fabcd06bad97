from __future__ import annotations

import logging
from dataclasses import dataclass

from octoswitch.config import AppConfig
from octoswitch.domain.devices import DeviceActuator, DeviceDirectory
from octoswitch.domain.schedules import ScheduleStore
from octoswitch.infrastructure import InMemoryDeviceDirectory, InMemoryScheduleStore, MockDeviceActuator
from octoswitch.services.scheduling import ScheduleExecutor, ScheduleResolver
from octoswitch.workers.unified_scheduler import UnifiedScheduler

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Aggregate and manage the schedule engine and its collaborators."""

    config: AppConfig
    schedule_store: ScheduleStore
    device_directory: DeviceDirectory
    device_actuator: DeviceActuator
    schedule_resolver: ScheduleResolver
    schedule_executor: ScheduleExecutor
    scheduler: UnifiedScheduler

    @classmethod
    def build(
        cls,
        config: AppConfig,
        *,
        store: ScheduleStore | None = None,
        directory: DeviceDirectory | None = None,
        actuator: DeviceActuator | None = None,
        start_scheduler: bool = True,
    ) -> "ServiceContainer":
        """Construct the service container with all dependencies.

        Args:
            config: Application configuration
            store: Schedule store (in-memory when omitted)
            directory: Device directory (in-memory when omitted)
            actuator: Device actuator (mock when omitted)
            start_scheduler: Whether to start the background scheduler thread
        """
        logger.info("Building ServiceContainer...")

        if store is None:
            logger.warning("No schedule store supplied; using in-memory store")
            store = InMemoryScheduleStore()
        if directory is None:
            directory = InMemoryDeviceDirectory()
        if actuator is None:
            logger.warning("No device actuator supplied; using mock actuator")
            actuator = MockDeviceActuator()

        resolver = ScheduleResolver(device_directory=directory, timezone=config.timezone)
        executor = ScheduleExecutor(
            store=store,
            resolver=resolver,
            device_directory=directory,
            actuator=actuator,
            timezone=config.timezone,
            max_workers=config.actuation_max_workers,
        )
        scheduler = UnifiedScheduler(
            check_interval_seconds=config.scheduler_check_interval,
            max_workers=config.scheduler_max_workers,
            timezone=config.timezone,
        )

        container = cls(
            config=config,
            schedule_store=store,
            device_directory=directory,
            device_actuator=actuator,
            schedule_resolver=resolver,
            schedule_executor=executor,
            scheduler=scheduler,
        )

        # Tasks need the finished container
        from octoswitch.workers.scheduled_tasks import configure_scheduler

        try:
            configure_scheduler(container.scheduler, container, start=start_scheduler)
        except Exception as e:
            executor.shutdown(wait=False)
            raise RuntimeError("Failed to initialize UnifiedScheduler") from e

        logger.info("ServiceContainer built successfully.")
        return container

    def shutdown(self) -> None:
        """Stop background work before process exit."""
        try:
            self.scheduler.shutdown()
            logger.info("UnifiedScheduler stopped")
        except Exception as e:
            logger.warning(f"Failed to stop UnifiedScheduler: {e}")

        self.schedule_executor.shutdown()
        logger.info("ServiceContainer shutdown complete.")
