"""
Unit tests for pitch geometry and label lookup.
"""

import pytest

from position_predictor.models.enums import PositionLabel
from position_predictor.models.pitch import (
    PITCH_CENTRE,
    POSITION_ANCHORS,
    anchor_for,
    label_for_index,
    to_percent_offsets,
)


def test_every_label_has_an_anchor():
    assert set(POSITION_ANCHORS) == set(PositionLabel.ordered())


def test_anchors_inside_pitch():
    for label, (x, y) in POSITION_ANCHORS.items():
        assert 0.0 <= x <= 1.0, label
        assert 0.0 <= y <= 1.0, label


def test_goalkeeper_deepest_striker_highest():
    xs = {label: x for label, (x, _) in POSITION_ANCHORS.items()}

    assert min(xs, key=xs.get) == "GK"
    assert max(xs, key=xs.get) == "ST"


def test_flanks_mirror():
    assert POSITION_ANCHORS["RB"][1] > 0.5 > POSITION_ANCHORS["LB"][1]
    assert POSITION_ANCHORS["RW"][0] == POSITION_ANCHORS["LW"][0]


def test_unknown_label_uses_centre():
    assert anchor_for("Class17") == PITCH_CENTRE


@pytest.mark.parametrize(
    "index,expected",
    [(0, "GK"), (14, "ST"), (15, "SW"), (16, "Class16"), (-1, "Class-1")],
)
def test_label_for_index(index, expected):
    assert label_for_index(index, PositionLabel.ordered()) == expected


def test_percent_offsets():
    assert to_percent_offsets((0.78, 0.22)) == (78.0, 22.0)
    assert to_percent_offsets(anchor_for("GK")) == (10.0, 50.0)


def test_label_order_matches_model_outputs():
    assert PositionLabel.ordered()[:4] == ["GK", "RB", "RWB", "CB"]
    assert PositionLabel.ordered()[-3:] == ["CF", "ST", "SW"]
