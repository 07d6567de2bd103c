"""
Core orchestration logic.
"""

from .messages import describe
from .pipeline import DownloadPipeline, FailureReason, PipelineResult

__all__ = ["DownloadPipeline", "FailureReason", "PipelineResult", "describe"]
