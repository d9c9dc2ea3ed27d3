"""Structured logging helpers for instrumenting pipeline stages.

Metrics are log-only: ``record_metric`` emits a structured debug record and
nothing is exported to a metrics backend.
"""

from __future__ import annotations

import contextlib
import time
from typing import Iterator, Mapping, Optional

from . import logging_manager as log_mgr

logger = log_mgr.get_logger()


def record_metric(
    name: str,
    value: float,
    attributes: Optional[Mapping[str, object]] = None,
) -> None:
    """Record a numeric observation as a structured debug log."""

    logger.debug(
        "Metric recorded",
        extra={
            "event": "observability.metric_recorded",
            "metric": name,
            "value": value,
            "attributes": dict(attributes or {}),
        },
    )


@contextlib.contextmanager
def pipeline_stage(stage: str, attributes: Optional[Mapping[str, object]] = None) -> Iterator[None]:
    """Instrument a pipeline stage with start/complete/failed logs and its duration."""

    attrs = dict(attributes or {})
    with log_mgr.log_context(stage=stage):
        start = time.perf_counter()
        logger.info(
            "Stage started",
            extra={"event": "pipeline.stage.start", "attributes": attrs},
        )
        try:
            yield
        except BaseException as exc:
            duration_ms = (time.perf_counter() - start) * 1000.0
            logger.info(
                "Stage aborted",
                extra={
                    "event": "pipeline.stage.aborted",
                    "duration_ms": round(duration_ms, 2),
                    "status": exc.__class__.__name__,
                    "attributes": attrs,
                },
            )
            raise
        duration_ms = (time.perf_counter() - start) * 1000.0
        record_metric("pipeline.stage.duration", duration_ms, {**attrs, "stage": stage})
        logger.info(
            "Stage completed",
            extra={
                "event": "pipeline.stage.complete",
                "duration_ms": round(duration_ms, 2),
                "attributes": attrs,
            },
        )


__all__ = ["pipeline_stage", "record_metric"]
