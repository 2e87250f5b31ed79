"""Field resolution for Streak boxes.

Streak stores dropdown values as option keys and custom fields under numeric
field keys. Before boxes are returned to the dashboard two fields are made
readable:

- ``fields["1001_resolved"]``: display name of the partnership option stored
  in ``fields["1001"]``.
- ``fields["partnerPageLive"]``: strict boolean copy of the pipeline's
  "Partner Page Live" checkbox field, ``False`` when the box has no value.

Field keys come from configuration when set, otherwise from the pipeline's
field definitions by case-insensitive name match. A name that matches more
than one field raises FieldConfigurationError instead of picking one.

Resolution holds no state between calls: the pipeline metadata is passed in
fresh every time and each box is handled independently, so resolving an
already-resolved list yields the same list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from src.partnerdash.config import Settings
from src.partnerdash.core.errors import FieldConfigurationError
from src.partnerdash.pipelines.schemas import Box, Pipeline, PipelineField

logger = structlog.get_logger(__name__)

PARTNERSHIP_NAME_MATCH = "partnership"
PARTNER_PAGE_LIVE_NAME_MATCH = "partner page live"

RESOLVED_SUFFIX = "_resolved"
PARTNER_PAGE_LIVE_KEY = "partnerPageLive"


@dataclass(frozen=True)
class FieldConfig:
    """Which box fields the resolver reads.

    Attributes:
        partnership_source_key: Box field holding the partnership option key.
        partnership_field_key: Pipeline field whose options name the
            partnership levels; None means locate it by name.
        partner_page_live_field_key: Box field holding the checkbox value;
            None means locate it by name.
    """

    partnership_source_key: str = "1001"
    partnership_field_key: str | None = None
    partner_page_live_field_key: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> FieldConfig:
        return cls(
            partnership_source_key=settings.PARTNERSHIP_SOURCE_FIELD_KEY,
            partnership_field_key=settings.PARTNERSHIP_FIELD_KEY or None,
            partner_page_live_field_key=settings.PARTNER_PAGE_LIVE_FIELD_KEY or None,
        )


@dataclass(frozen=True)
class ResolvedFields:
    """Field lookups derived from one pipeline's metadata."""

    partnership_options: dict[str, str]
    partner_page_live_key: str | None


def find_field_by_name(pipeline: Pipeline, fragment: str) -> PipelineField | None:
    """Return the single field whose name contains ``fragment``.

    Args:
        pipeline: Pipeline with field definitions.
        fragment: Lower-case substring to look for in field names.

    Returns:
        The matching field, or None when no field matches.

    Raises:
        FieldConfigurationError: If more than one field matches.
    """
    matches = [
        f for f in pipeline.fields or []
        if f.name and fragment in f.name.lower()
    ]
    if len(matches) > 1:
        raise FieldConfigurationError(
            detail={
                "pipeline_key": pipeline.key,
                "match": fragment,
                "field_keys": [f.key for f in matches],
            }
        )
    return matches[0] if matches else None


def _find_field_by_key(pipeline: Pipeline, field_key: str) -> PipelineField | None:
    for field in pipeline.fields or []:
        if field.key == field_key:
            return field
    logger.warning(
        "resolution.configured_field_missing",
        pipeline_key=pipeline.key,
        field_key=field_key,
    )
    return None


def resolve_field_keys(pipeline: Pipeline, config: FieldConfig) -> ResolvedFields:
    """Build the partnership option map and locate the partner page field."""
    if config.partnership_field_key:
        partnership = _find_field_by_key(pipeline, config.partnership_field_key)
    else:
        partnership = find_field_by_name(pipeline, PARTNERSHIP_NAME_MATCH)

    options: dict[str, str] = {}
    if partnership is not None:
        for option in partnership.field_options or []:
            options[option.key] = option.name

    if config.partner_page_live_field_key:
        live_key: str | None = config.partner_page_live_field_key
    else:
        live_field = find_field_by_name(pipeline, PARTNER_PAGE_LIVE_NAME_MATCH)
        live_key = live_field.key if live_field is not None else None

    return ResolvedFields(partnership_options=options, partner_page_live_key=live_key)


def _option_lookup_key(value: Any) -> str | None:
    # Option keys are strings upstream; numeric values are matched by their text
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        return str(value)
    return None


def resolve_box(box: Box, resolved: ResolvedFields, config: FieldConfig) -> Box:
    """Return a copy of ``box`` with the readable fields added."""
    fields = dict(box.fields)
    resolved_key = f"{config.partnership_source_key}{RESOLVED_SUFFIX}"

    lookup = _option_lookup_key(fields.get(config.partnership_source_key))
    if lookup is not None and lookup in resolved.partnership_options:
        fields[resolved_key] = resolved.partnership_options[lookup]
    else:
        fields.pop(resolved_key, None)

    live_key = resolved.partner_page_live_key
    if live_key is not None and live_key in fields:
        fields[PARTNER_PAGE_LIVE_KEY] = fields[live_key] is True
    else:
        fields[PARTNER_PAGE_LIVE_KEY] = False

    return box.model_copy(update={"fields": fields})


def resolve_boxes(
    pipeline: Pipeline,
    boxes: list[Box],
    config: FieldConfig | None = None,
) -> list[Box]:
    """Resolve partnership labels and the partner page flag on every box.

    Args:
        pipeline: Freshly fetched metadata of the boxes' pipeline.
        boxes: Boxes of that pipeline, raw or previously resolved.
        config: Field keys to use. Defaults to locating fields by name.

    Returns:
        New Box objects in the same order.

    Raises:
        FieldConfigurationError: If a field name matches several fields.
    """
    config = config or FieldConfig()
    resolved = resolve_field_keys(pipeline, config)
    return [resolve_box(box, resolved, config) for box in boxes]
