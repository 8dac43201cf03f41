from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from app.config import AppConfig
from app.processors.validation_processor import ReadingValidator
from app.security.rate_limiter import RateLimiter, create_rate_limiter
from app.services.detection import BehaviorAnalyzer, ThresholdDetector
from app.services.ingest_pipeline import IngestPipeline
from app.services.protocols import AnomalyStore, DeviceStore, NotificationService
from app.services.quarantine_manager import QuarantineManager
from app.services.telemetry_handler import TelemetryHandler
from infrastructure.logging.audit import SecurityAuditLogger
from infrastructure.repositories import InMemoryAnomalyStore, InMemoryDeviceStore

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Own every registry and service of one ingest pipeline.

    Containers share nothing, so several can coexist in one process.
    """

    config: AppConfig
    device_store: DeviceStore
    anomaly_store: AnomalyStore
    rate_limiter: RateLimiter
    quarantine: QuarantineManager
    validator: ReadingValidator
    threshold_detector: ThresholdDetector
    behavior_analyzer: BehaviorAnalyzer
    notifier: Optional[NotificationService]
    pipeline: IngestPipeline
    handler: TelemetryHandler

    @classmethod
    def build(
        cls,
        config: AppConfig,
        notifier: Optional[NotificationService] = None,
        *,
        clock: Optional[Callable[[], float]] = None,
        audit: Optional[SecurityAuditLogger] = None,
        synchronous_alerts: bool = False,
    ) -> "ServiceContainer":
        """Construct the container with in-memory stores.

        Args:
            config: Application configuration
            notifier: Alert sink; when omitted, backends come from ``build_notifiers(config)``.
                A sink that is not a ``NotificationBroadcaster`` is wrapped in one so
                delivery never blocks ingest.
            clock: POSIX-seconds clock shared by every time-dependent component
            audit: Optional security audit trail for quarantine transitions
            synchronous_alerts: Call *notifier* directly on the ingest thread (tests)
        """
        clock = clock or time.time
        from app.notifications import NotificationBroadcaster, build_notifiers

        if notifier is None:
            notifier = build_notifiers(config)
        elif not synchronous_alerts and not isinstance(notifier, NotificationBroadcaster):
            notifier = NotificationBroadcaster([notifier], max_workers=config.notification_worker_count)

        device_store = InMemoryDeviceStore(clock=clock)
        anomaly_store = InMemoryAnomalyStore()
        rate_limiter = create_rate_limiter(
            config.rate_limit_policy,
            config.rate_limit_max_messages,
            config.rate_limit_window_seconds,
            clock=clock,
        )
        quarantine = QuarantineManager(device_store, config.quarantine_duration_seconds, audit=audit)
        validator = ReadingValidator(config.timestamp_skew_seconds, clock=clock)
        threshold_detector = ThresholdDetector()
        behavior_analyzer = BehaviorAnalyzer(config.anomaly_threshold)

        pipeline = IngestPipeline(
            device_store=device_store,
            anomaly_store=anomaly_store,
            rate_limiter=rate_limiter,
            quarantine=quarantine,
            validator=validator,
            threshold_detector=threshold_detector,
            behavior_analyzer=behavior_analyzer,
            notifier=notifier,
            clock=clock,
        )

        logger.info("ServiceContainer built (rate limit %s)", rate_limiter.policy)
        return cls(
            config=config,
            device_store=device_store,
            anomaly_store=anomaly_store,
            rate_limiter=rate_limiter,
            quarantine=quarantine,
            validator=validator,
            threshold_detector=threshold_detector,
            behavior_analyzer=behavior_analyzer,
            notifier=notifier,
            pipeline=pipeline,
            handler=TelemetryHandler(pipeline),
        )

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        close = getattr(self.notifier, "close", None)
        if callable(close):
            try:
                close()
            except Exception as e:
                logger.warning("Failed to close notifier: %s", e)
        logger.info("ServiceContainer shutdown complete.")
