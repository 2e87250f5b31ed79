"""Pipelines and boxes -- tenant-scoped access, field resolution, grouping.

Provides:
- PipelineService: tenant-aware operations over the Streak API
- resolve_boxes / FieldConfig: partnership label and partner page flag resolution
- group_boxes / filter_boxes: dashboard grouping and search
"""

from src.partnerdash.pipelines.grouping import filter_boxes, group_boxes
from src.partnerdash.pipelines.resolution import FieldConfig, resolve_boxes
from src.partnerdash.pipelines.service import PipelineService

__all__ = [
    "FieldConfig",
    "PipelineService",
    "filter_boxes",
    "group_boxes",
    "resolve_boxes",
]
