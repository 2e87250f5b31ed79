"""Search and partnership/stage grouping of resolved boxes."""

from __future__ import annotations

from src.partnerdash.pipelines.schemas import Box, PartnershipGroup, Pipeline, StageGroup

UNASSIGNED = "Unassigned"
UNKNOWN_STAGE = "Unknown Stage"

PARTNERSHIP_ORDER: tuple[str, ...] = ("Ultimate", "Platinum", "Gold", "Silver")


def filter_boxes(boxes: list[Box], search: str | None) -> list[Box]:
    """Keep boxes whose name or notes contain ``search`` (case-insensitive)."""
    needle = (search or "").strip().lower()
    if not needle:
        return list(boxes)
    return [
        box for box in boxes
        if needle in box.name.lower() or (box.notes and needle in box.notes.lower())
    ]


def partnership_label(box: Box, source_key: str = "1001") -> str:
    label = box.fields.get(f"{source_key}_resolved")
    return label if isinstance(label, str) and label else UNASSIGNED


def stage_label(pipeline: Pipeline, stage_key: str | None) -> str:
    if not stage_key or not pipeline.stages:
        return UNKNOWN_STAGE
    stage = pipeline.stages.get(stage_key)
    return stage.name if stage is not None else stage_key


def _partnership_sort_key(label: str) -> tuple[int, str]:
    if label in PARTNERSHIP_ORDER:
        return (0, f"{PARTNERSHIP_ORDER.index(label):02d}")
    if label == UNASSIGNED:
        return (2, "")
    return (1, label.lower())


def group_boxes(pipeline: Pipeline, boxes: list[Box], source_key: str = "1001") -> list[PartnershipGroup]:
    """Group boxes by partnership level, then by stage name.

    Partnerships are ordered Ultimate, Platinum, Gold, Silver, then any other
    label alphabetically, with Unassigned last. Stages keep the order in
    which they first appear among the boxes.
    """
    grouped: dict[str, dict[str, list[Box]]] = {}
    for box in boxes:
        partnership = partnership_label(box, source_key)
        stage = stage_label(pipeline, box.stage_key)
        grouped.setdefault(partnership, {}).setdefault(stage, []).append(box)

    result: list[PartnershipGroup] = []
    for partnership in sorted(grouped, key=_partnership_sort_key):
        stages = [
            StageGroup(stage=stage, count=len(items), boxes=[b.to_wire() for b in items])
            for stage, items in grouped[partnership].items()
        ]
        result.append(
            PartnershipGroup(
                partnership=partnership,
                count=sum(s.count for s in stages),
                stages=stages,
            )
        )
    return result
