import numpy as np
import pytest

from flowlenia.core.config import TrackingParams
from flowlenia.manager.detector import CreatureDetector

from conftest import square


def test_detects_separate_components_heaviest_first():
    A = np.zeros((64, 64))
    square(A, 5, 5, 4)
    square(A, 30, 30, 6)
    found = CreatureDetector(64).detect(A)
    assert [c.mass for c in found] == [pytest.approx(36.0), pytest.approx(16.0)]
    assert (found[0].x, found[0].y) == (pytest.approx(32.5), pytest.approx(32.5))
    assert found[0].label == 1


def test_diagonal_cells_are_not_connected():
    A = np.zeros((32, 32))
    square(A, 4, 4, 3)
    square(A, 7, 7, 3)
    found = CreatureDetector(32, TrackingParams(min_creature_mass=1.0)).detect(A)
    assert len(found) == 2


def test_component_across_edge_has_true_centroid():
    A = np.zeros((64, 64))
    A[10:14, 62:64] = 1.0
    A[10:14, 0:2] = 1.0
    found = CreatureDetector(64).detect(A)
    assert len(found) == 1
    assert found[0].mass == pytest.approx(16.0)
    assert found[0].x == pytest.approx(63.5)
    assert found[0].y == pytest.approx(11.5)


def test_light_components_and_low_cells_are_ignored():
    A = np.zeros((32, 32))
    square(A, 2, 2, 2)           # mass 4 < 5
    square(A, 20, 20, 5, 0.05)   # below threshold
    assert CreatureDetector(32).detect(A) == []


def test_max_creatures_truncates():
    A = np.zeros((64, 64))
    for i in range(6):
        square(A, 2 + i * 10, 2, 3 + i % 2)
    detector = CreatureDetector(64, TrackingParams(max_creatures=3))
    found = detector.detect(A)
    assert len(found) == 3
    assert set(np.unique(detector.labels)) == {0, 1, 2, 3}


def test_labels_mark_component_cells():
    A = np.zeros((32, 32))
    square(A, 10, 10, 4)
    detector = CreatureDetector(32)
    detector.detect(A)
    assert detector.labels[11, 11] == 1
    assert detector.labels[0, 0] == 0


def test_scratch_buffers_are_reused_and_cells_kept():
    detector = CreatureDetector(16)
    stack, comp = detector.stack, detector.comp

    full = np.ones((16, 16))
    first = detector.detect(full)[0]
    assert len(first.cells) == 256
    assert first.mass == pytest.approx(256.0)

    A = np.zeros((16, 16))
    square(A, 2, 2, 3)
    second = detector.detect(A)[0]
    assert detector.stack is stack and detector.comp is comp
    assert len(first.cells) == 256
    assert sorted(set(first.cells.xs.tolist())) == list(range(16))
    assert sorted(set(second.cells.xs.tolist())) == [2, 3, 4]
