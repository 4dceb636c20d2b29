from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from plantstation.config import AppConfig
from plantstation.domain.exceptions import DeviceError, PersistenceError
from plantstation.hardware.mqtt.publisher import MQTTPublisher, NullPublisher, Publisher
from plantstation.hardware.sensors.sht3x import SHT3xSensor
from plantstation.hardware.wuc.driver import SMBusTransport, WateringController, WucTransport
from plantstation.services.persistence import PersistenceService
from plantstation.services.station_service import MQTTTopics, StationService
from plantstation.workers.wallclock_scheduler import WallClockScheduler

logger = logging.getLogger(__name__)


def _build_publisher(config: AppConfig) -> Publisher:
    if not config.mqtt_enabled:
        logger.info("MQTT disabled (no PLANTSTATION_MQTT_HOST)")
        return NullPublisher()
    return MQTTPublisher(
        config.mqtt_host,
        config.mqtt_port,
        client_id=config.mqtt_client_id,
        username=config.mqtt_user or None,
        password=config.mqtt_pass or None,
        timeout=config.mqtt_timeout,
    )


@dataclass
class ServiceContainer:
    """Aggregate and manage the PlantStation services."""

    config: AppConfig
    persistence: PersistenceService
    wuc: WateringController
    ambient: SHT3xSensor
    publisher: Publisher
    station_service: StationService
    scheduler: WallClockScheduler
    _shutdown_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _shutdown_complete: bool = field(default=False, init=False, repr=False)

    @classmethod
    def build(
        cls,
        config: AppConfig,
        *,
        transport: WucTransport | None = None,
        ambient: SHT3xSensor | None = None,
        publisher: Publisher | None = None,
    ) -> ServiceContainer:
        """Construct the service container with all dependencies.

        Args:
            config: Application configuration
            transport: WUC transport; opens the configured I2C bus when omitted
            ambient: Ambient sensor; created on the configured bus when omitted
            publisher: MQTT publisher; built from config when omitted

        Raises:
            ConfigurationError: state files unreadable or malformed
            DeviceError: I2C bus cannot be opened or the ambient sensor fails to start
        """
        logger.info("Building ServiceContainer...")
        persistence = PersistenceService.from_config(config)
        station = persistence.load_station()

        if transport is None:
            transport = SMBusTransport(config.i2c_bus, config.wuc_address)
        wuc = WateringController(transport, settle_delay=config.settle_delay)

        if ambient is None:
            ambient = SHT3xSensor(config.sht_address)
        try:
            ambient.start()
        except DeviceError:
            wuc.close()
            raise

        if publisher is None:
            publisher = _build_publisher(config)

        topics = MQTTTopics(plants=(config.plant1_topic, config.plant2_topic), humtemp=config.humtemp_topic)
        station_service = StationService(station, wuc, ambient, publisher, persistence, topics)
        scheduler = WallClockScheduler(station_service.update_hour, station_service.update_minute)

        logger.info("ServiceContainer built successfully.")
        return cls(
            config=config,
            persistence=persistence,
            wuc=wuc,
            ambient=ambient,
            publisher=publisher,
            station_service=station_service,
            scheduler=scheduler,
        )

    def start(self) -> None:
        if self.config.enable_scheduler:
            self.scheduler.start()
        else:
            logger.info("Scheduler disabled by configuration")

    def shutdown(self) -> None:
        """Stop scheduling, write the final snapshot and release the devices."""
        with self._shutdown_lock:
            if self._shutdown_complete:
                return
            self._shutdown_complete = True

        self.scheduler.stop()

        try:
            self.station_service.save_snapshot(exclusive=True)
        except PersistenceError as e:
            logger.error("Final snapshot failed: %s", e)

        self.publisher.close()
        self.ambient.close()
        self.wuc.close()
        logger.info("ServiceContainer shut down")
