"""
Telemetry Handler
=================
Transport-facing entry point: ``handle(topic, payload)``.

Decodes the payload and runs it through the ingest pipeline. Errors are
raised to the transport, which decides whether to log or drop.
"""

from __future__ import annotations

import logging
from typing import Union

from app.domain.reading import SensorReading
from app.schemas.telemetry import decode_reading
from app.services.ingest_pipeline import IngestPipeline

logger = logging.getLogger(__name__)


class TelemetryHandler:
    """Bridges raw transport messages to the ingest pipeline."""

    def __init__(self, pipeline: IngestPipeline) -> None:
        self.pipeline = pipeline

    def handle(self, topic: str, payload: Union[bytes, str]) -> SensorReading:
        """
        Process one message received on *topic*.

        Raises:
            DecodeError: payload is not valid telemetry
            IoTHubError: any rejection raised by the pipeline
        """
        logger.debug("Message received on %s (%d bytes)", topic, len(payload))
        reading = decode_reading(payload)
        return self.pipeline.process(reading)
