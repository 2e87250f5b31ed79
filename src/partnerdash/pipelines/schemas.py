"""Pydantic schemas for Streak pipelines and boxes.

Streak speaks camelCase JSON; attributes here are snake_case with camelCase
aliases. Upstream keys these models do not name are kept (``extra="allow"``)
so responses pass the CRM payload through untouched apart from the fields
the resolver adds.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class StreakModel(BaseModel):
    """Base for upstream payloads: camelCase aliases, unknown keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize back to Streak's camelCase shape, omitting unset keys."""
        return self.model_dump(by_alias=True, exclude_unset=True)


# ── Pipelines ───────────────────────────────────────────────────────────────


class Stage(StreakModel):
    key: str
    name: str


class FieldOption(StreakModel):
    key: str
    name: str


class PipelineField(StreakModel):
    """A custom field definition on a pipeline."""

    key: str
    name: str | None = None
    type: str | None = None
    field_options: list[FieldOption] | None = None


class Pipeline(StreakModel):
    key: str
    name: str
    description: str | None = None
    creation_date: int | None = None
    last_updated_timestamp: int | None = None
    stages: dict[str, Stage] | None = None
    fields: list[PipelineField] | None = None


# ── Boxes ───────────────────────────────────────────────────────────────────


class Contact(StreakModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class Box(StreakModel):
    """A single deal record ("box") within a pipeline."""

    key: str
    name: str
    notes: str | None = None
    stage_key: str | None = None
    pipeline_key: str | None = None
    last_updated_timestamp: int | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    contacts: list[Contact] | None = None

    @field_validator("fields", mode="before")
    @classmethod
    def _null_fields_as_empty(cls, value: Any) -> Any:
        # Streak sends "fields": null for boxes with no custom values
        return {} if value is None else value


# ── Grouped view ────────────────────────────────────────────────────────────


class StageGroup(BaseModel):
    stage: str
    count: int
    boxes: list[dict[str, Any]]


class PartnershipGroup(BaseModel):
    partnership: str
    count: int
    stages: list[StageGroup]


# ── Requests / Responses ────────────────────────────────────────────────────


class UpdateFieldRequest(BaseModel):
    """Body of a box field update.

    ``pipelineKey`` is accepted for compatibility with older clients but is
    never used to decide which tenant the box belongs to.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    value: Any
    pipeline_key: str | None = None


class UpdateFieldResponse(BaseModel):
    success: bool = True
