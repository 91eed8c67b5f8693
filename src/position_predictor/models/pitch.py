"""
Pitch geometry for the schematic field on the page.

Anchors are normalized (x, y) coordinates inside the pitch box: x runs from
the own goal (0.0) to the opponent goal (1.0), y from the left touchline
(0.0) to the right touchline (1.0).
"""

from typing import Sequence

from position_predictor.models.enums import PositionLabel


PITCH_CENTRE: tuple[float, float] = (0.5, 0.5)

POSITION_ANCHORS: dict[str, tuple[float, float]] = {
    PositionLabel.GK.value: (0.1, 0.5),
    PositionLabel.RB.value: (0.3, 0.82),
    PositionLabel.RWB.value: (0.35, 0.85),
    PositionLabel.CB.value: (0.28, 0.5),
    PositionLabel.LB.value: (0.3, 0.18),
    PositionLabel.LWB.value: (0.35, 0.15),
    PositionLabel.CDM.value: (0.46, 0.5),
    PositionLabel.CM.value: (0.55, 0.5),
    PositionLabel.CAM.value: (0.65, 0.5),
    PositionLabel.RM.value: (0.6, 0.8),
    PositionLabel.LM.value: (0.6, 0.2),
    PositionLabel.RW.value: (0.78, 0.78),
    PositionLabel.LW.value: (0.78, 0.22),
    PositionLabel.CF.value: (0.82, 0.5),
    PositionLabel.ST.value: (0.9, 0.5),
    PositionLabel.SW.value: (0.2, 0.5),
}


def anchor_for(label: str) -> tuple[float, float]:
    """Pitch anchor for a label; unknown labels sit at the pitch centre."""
    return POSITION_ANCHORS.get(label, PITCH_CENTRE)


def label_for_index(index: int, labels: Sequence[str]) -> str:
    """
    Label paired with model output `index`.

    Models with more outputs than configured labels get a synthetic
    `Class{index}` label for the extra outputs.
    """
    if 0 <= index < len(labels):
        return labels[index]
    return f"Class{index}"


def to_percent_offsets(anchor: tuple[float, float]) -> tuple[float, float]:
    """Convert a normalized anchor to CSS left/top percentages."""
    x, y = anchor
    return round(x * 100, 2), round(y * 100, 2)
