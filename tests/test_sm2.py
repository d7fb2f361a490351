# tests/test_sm2.py
from datetime import date

import pytest

from recite_tutor.sm2 import RecallSchedule, sm2_update


def test_first_recall_passing():
    """First passing grade: one day, one repetition."""
    result = sm2_update(RecallSchedule(), 4)
    assert result.interval == 1
    assert result.repetitions == 1
    assert result.ease_factor == 2.5


def test_second_recall_passing():
    result = sm2_update(RecallSchedule(interval=1, repetitions=1), 4)
    assert result.interval == 6
    assert result.repetitions == 2


def test_later_recall_multiplies_by_old_ease():
    result = sm2_update(RecallSchedule(ease_factor=2.5, interval=6, repetitions=2), 4)
    assert result.interval == 15  # round(6 * 2.5)
    assert result.repetitions == 3


def test_failed_recall_restarts():
    result = sm2_update(RecallSchedule(interval=30, repetitions=5), 2)
    assert result.repetitions == 0
    assert result.interval == 1
    assert result.ease_factor == 2.18


def test_ease_floor():
    result = sm2_update(RecallSchedule(ease_factor=1.3), 0)
    assert result.ease_factor == 1.3


def test_easy_raises_ease():
    assert sm2_update(RecallSchedule(), 5).ease_factor == 2.6


def test_quality_out_of_range():
    with pytest.raises(ValueError):
        sm2_update(RecallSchedule(), 6)


def test_due_after():
    assert RecallSchedule(interval=6).due_after(date(2024, 2, 26)) == date(2024, 3, 3)
