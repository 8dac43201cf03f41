"""
IoT Security Hub entry point.

Wires configuration, logging, notifiers, the ingest pipeline, the MQTT
transport and the maintenance jobs, then blocks until SIGINT/SIGTERM.
"""

from __future__ import annotations

import logging
import signal
import threading

from app.config import load_config, setup_logging
from app.domain.exceptions import ConfigurationError
from app.hardware.mqtt.mqtt_broker_wrapper import MQTTClientWrapper, configure_mqtt_logging
from app.notifications import build_notifiers
from app.services.container import ServiceContainer
from app.services.mqtt_telemetry_service import MQTTTelemetryService
from app.workers.maintenance_scheduler import MaintenanceScheduler, register_maintenance_jobs
from infrastructure.logging.audit import SecurityAuditLogger

logger = logging.getLogger("iot_security_hub")


def main() -> int:
    try:
        config = load_config()
    except (ConfigurationError, ValueError) as exc:
        logging.basicConfig(level=logging.ERROR)
        logging.error("Invalid configuration: %s", exc)
        return 2

    setup_logging(config.log_level, config.log_dir)
    configure_mqtt_logging(config.log_dir)
    logger.info("IoT security hub starting (environment=%s)", config.environment)

    container = ServiceContainer.build(
        config,
        build_notifiers(config),
        audit=SecurityAuditLogger(config.audit_log_path, config.log_level),
    )

    mqtt_client = MQTTClientWrapper(
        config.mqtt_broker_host,
        config.mqtt_broker_port,
        config.mqtt_client_id,
        username=config.mqtt_username,
        password=config.mqtt_password,
        keepalive=config.mqtt_keepalive,
        reconnect_max_delay=config.mqtt_reconnect_max_delay,
    )
    if not mqtt_client.connected:
        logger.error("Could not connect to MQTT broker %s:%s", config.mqtt_broker_host, config.mqtt_broker_port)
        container.shutdown()
        return 1

    telemetry = MQTTTelemetryService(
        mqtt_client, container.handler, config.mqtt_topic, max_workers=config.ingest_worker_count
    )
    if not telemetry.start():
        mqtt_client.disconnect()
        container.shutdown()
        return 1

    scheduler = MaintenanceScheduler()
    register_maintenance_jobs(scheduler, container, config)
    scheduler.start()

    logger.info("Security settings: %s", config.security_summary())
    logger.info("IoT security hub running; press Ctrl+C to stop")

    stop = threading.Event()

    def _request_stop(signum, _frame):
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    try:
        while not stop.wait(1.0):
            pass
    finally:
        mqtt_client.disconnect()
        telemetry.shutdown()
        scheduler.stop()
        container.shutdown()
        logger.info("IoT security hub stopped (ingest=%s, mqtt=%s)", telemetry.stats, mqtt_client.health.to_dict())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
