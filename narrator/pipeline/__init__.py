"""Render job model and the orchestrator that drives it."""

from .job import PipelineJob, PipelineJobTransitionError, PipelineStage, RenderRequest
from .orchestrator import PipelineOrchestrator, RenderHandle

__all__ = [
    "PipelineJob",
    "PipelineJobTransitionError",
    "PipelineOrchestrator",
    "PipelineStage",
    "RenderHandle",
    "RenderRequest",
]
