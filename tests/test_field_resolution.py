"""Unit tests for partnership label and partner page field resolution."""

from __future__ import annotations

import pytest

from src.partnerdash.core.errors import FieldConfigurationError
from src.partnerdash.pipelines.resolution import (
    FieldConfig,
    find_field_by_name,
    resolve_boxes,
    resolve_field_keys,
)
from src.partnerdash.pipelines.schemas import Box, Pipeline
from tests.helpers import make_settings
from tests.streak_fakes import BE_PIPELINE_KEY, box_payload, pipeline_payload


@pytest.fixture
def pipeline() -> Pipeline:
    return Pipeline.model_validate(pipeline_payload(BE_PIPELINE_KEY, "Sponsors"))


def _box(key: str = "b1", **fields) -> Box:
    return Box.model_validate(box_payload(key, BE_PIPELINE_KEY, f"Box {key}", **fields))


# ── Partnership label ───────────────────────────────────────────────────────


class TestPartnershipLabel:
    def test_known_option_is_resolved(self, pipeline):
        [box] = resolve_boxes(pipeline, [_box(**{"1001": "9002"})])
        assert box.fields["1001_resolved"] == "Gold"
        assert box.fields["1001"] == "9002"

    def test_numeric_option_value_is_resolved(self, pipeline):
        [box] = resolve_boxes(pipeline, [_box(**{"1001": 9001})])
        assert box.fields["1001_resolved"] == "Ultimate"

    def test_unknown_option_leaves_label_absent(self, pipeline):
        [box] = resolve_boxes(pipeline, [_box(**{"1001": "9999"})])
        assert "1001_resolved" not in box.fields

    def test_missing_field_leaves_label_absent(self, pipeline):
        [box] = resolve_boxes(pipeline, [_box()])
        assert "1001_resolved" not in box.fields

    def test_pipeline_without_partnership_field(self):
        payload = pipeline_payload(BE_PIPELINE_KEY, "Plain")
        payload["fields"] = [f for f in payload["fields"] if f["key"] != "1001"]
        pipeline = Pipeline.model_validate(payload)
        [box] = resolve_boxes(pipeline, [_box(**{"1001": "9001"})])
        assert "1001_resolved" not in box.fields


# ── Partner page live ───────────────────────────────────────────────────────


class TestPartnerPageLive:
    def test_absent_field_is_false(self, pipeline):
        [box] = resolve_boxes(pipeline, [_box()])
        assert box.fields["partnerPageLive"] is False

    def test_true_is_true(self, pipeline):
        [box] = resolve_boxes(pipeline, [_box(**{"1002": True})])
        assert box.fields["partnerPageLive"] is True

    @pytest.mark.parametrize("value", ["yes", "true", 1, [True], {"v": True}, False, None])
    def test_anything_but_true_is_false(self, pipeline, value):
        [box] = resolve_boxes(pipeline, [_box(**{"1002": value})])
        assert box.fields["partnerPageLive"] is False

    def test_pipeline_without_live_field_is_false(self):
        payload = pipeline_payload(BE_PIPELINE_KEY, "Plain")
        payload["fields"] = [f for f in payload["fields"] if f["key"] != "1002"]
        pipeline = Pipeline.model_validate(payload)
        [box] = resolve_boxes(pipeline, [_box(**{"1002": True})])
        assert box.fields["partnerPageLive"] is False

    def test_box_without_fields(self, pipeline):
        box = Box.model_validate({"key": "b9", "name": "Bare"})
        [resolved] = resolve_boxes(pipeline, [box])
        assert resolved.fields == {"partnerPageLive": False}


# ── Whole-list behaviour ────────────────────────────────────────────────────


class TestResolveBoxes:
    def test_reresolving_is_idempotent(self, pipeline):
        boxes = [_box("b1", **{"1001": "9001", "1002": True}), _box("b2", **{"1003": "x"})]
        once = resolve_boxes(pipeline, boxes)
        twice = resolve_boxes(pipeline, once)
        assert [b.to_wire() for b in twice] == [b.to_wire() for b in once]

    def test_input_boxes_are_not_mutated(self, pipeline):
        box = _box(**{"1001": "9001"})
        resolve_boxes(pipeline, [box])
        assert "1001_resolved" not in box.fields
        assert "partnerPageLive" not in box.fields

    def test_unknown_upstream_keys_survive(self, pipeline):
        payload = box_payload("b1", BE_PIPELINE_KEY, "Acme", **{"1001": "9001"})
        payload["assignedToSharingEntries"] = [{"email": "x@techorama.be"}]
        [box] = resolve_boxes(pipeline, [Box.model_validate(payload)])
        wire = box.to_wire()
        assert wire["assignedToSharingEntries"] == [{"email": "x@techorama.be"}]
        assert wire["stageKey"] == "5001"
        assert wire["pipelineKey"] == BE_PIPELINE_KEY

    def test_boxes_are_resolved_independently(self, pipeline):
        boxes = [_box("b1", **{"1001": "9001"}), _box("b2", **{"1001": "0000"})]
        first, second = resolve_boxes(pipeline, boxes)
        assert first.fields["1001_resolved"] == "Ultimate"
        assert "1001_resolved" not in second.fields


# ── Field lookup configuration ──────────────────────────────────────────────


class TestFieldLookup:
    def test_name_match_is_case_insensitive(self, pipeline):
        field = find_field_by_name(pipeline, "partner page live")
        assert field is not None and field.key == "1002"

    def test_ambiguous_name_raises(self):
        payload = pipeline_payload(BE_PIPELINE_KEY, "Ambiguous")
        payload["fields"].append({"key": "1009", "name": "Previous partnership"})
        pipeline = Pipeline.model_validate(payload)
        with pytest.raises(FieldConfigurationError) as exc_info:
            resolve_boxes(pipeline, [_box(**{"1001": "9001"})])
        assert exc_info.value.detail["field_keys"] == ["1001", "1009"]

    def test_explicit_keys_bypass_name_matching(self):
        payload = pipeline_payload(BE_PIPELINE_KEY, "Ambiguous")
        payload["fields"].append({"key": "1009", "name": "Previous partnership"})
        payload["fields"].append({"key": "1010", "name": "Partner page live (old)"})
        pipeline = Pipeline.model_validate(payload)
        config = FieldConfig(partnership_field_key="1001", partner_page_live_field_key="1002")

        [box] = resolve_boxes(pipeline, [_box(**{"1001": "9003", "1002": True})], config)

        assert box.fields["1001_resolved"] == "Platinum"
        assert box.fields["partnerPageLive"] is True

    def test_configured_field_missing_from_pipeline(self, pipeline):
        resolved = resolve_field_keys(pipeline, FieldConfig(partnership_field_key="4242"))
        assert resolved.partnership_options == {}

    def test_config_from_settings(self):
        settings = make_settings(PARTNERSHIP_FIELD_KEY="1001", PARTNER_PAGE_LIVE_FIELD_KEY="")
        config = FieldConfig.from_settings(settings)
        assert config.partnership_source_key == "1001"
        assert config.partnership_field_key == "1001"
        assert config.partner_page_live_field_key is None
