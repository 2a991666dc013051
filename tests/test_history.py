"""Tests for the temporal history buffers."""

import pytest

from movement_engine.core.config import HistoryConfig
from movement_engine.core.data_types import JointType, Landmark
from movement_engine.core.history import AngleHistory, TemporalHistory


class TestAngleHistory:

    def test_oldest_sample_is_evicted(self):
        history = AngleHistory(capacity=3)
        for angle in (10, 20, 30, 40):
            history.push(angle)
        assert len(history) == 3
        assert history.values() == [20.0, 30.0, 40.0]

    def test_length_never_exceeds_capacity(self):
        history = AngleHistory(capacity=5)
        for i in range(50):
            history.push(i)
            assert len(history) <= 5

    def test_range_of_motion(self):
        history = AngleHistory(capacity=3)
        for angle in (60, 90, 75):
            history.push(angle)
        assert history.range_of_motion() == pytest.approx(30.0)

    def test_range_of_motion_floor(self):
        history = AngleHistory()
        assert history.range_of_motion() == 0.0
        history.push(90)
        assert history.range_of_motion() == 0.0

    def test_rate_of_change_from_timestamps(self):
        history = AngleHistory()
        history.push(90, 0)
        history.push(100, 250)
        assert history.rate_of_change() == pytest.approx(40.0)

    def test_rate_of_change_fixed_interval(self):
        history = AngleHistory()
        history.push(90, 0)
        history.push(100, 250)
        assert history.rate_of_change(mode="fixed", assumed_interval_s=0.5) == pytest.approx(20.0)

    def test_rate_of_change_without_elapsed_time(self):
        history = AngleHistory()
        history.push(90, 100)
        history.push(95, 100)
        assert history.rate_of_change(assumed_interval_s=0.5) == pytest.approx(10.0)

    def test_rate_of_change_needs_two_samples(self):
        history = AngleHistory()
        history.push(90, 0)
        assert history.rate_of_change() is None

    def test_smoothness(self):
        steady = AngleHistory()
        for angle in (100, 110, 120, 130):
            steady.push(angle)
        assert steady.smoothness() == pytest.approx(100.0)

        jerky = AngleHistory()
        for angle in (100, 130, 100, 130):
            jerky.push(angle)
        assert jerky.smoothness() == 0.0

    def test_smoothness_floor(self):
        history = AngleHistory()
        history.push(100)
        history.push(150)
        assert history.smoothness() == 100.0


class TestTemporalHistory:

    def test_per_joint_buffers(self):
        history = TemporalHistory(HistoryConfig(capacity=3))
        for angle in (60, 90, 75):
            history.push(JointType.LEFT_KNEE, angle)
        history.push("right_knee", 120)
        assert history.range_of_motion(JointType.LEFT_KNEE) == pytest.approx(30.0)
        assert history.range_of_motion("left_knee") == pytest.approx(30.0)
        assert history.range_of_motion(JointType.RIGHT_KNEE) == 0.0
        assert sorted(history.joints()) == ["left_knee", "right_knee"]

    def test_unknown_joint_reads_as_empty(self):
        history = TemporalHistory()
        assert len(history.history(JointType.LEFT_ELBOW)) == 0
        assert history.rate_of_change(JointType.LEFT_ELBOW) is None
        assert history.smoothness(JointType.LEFT_ELBOW) == 100.0

    def test_configured_rate_mode(self):
        history = TemporalHistory(HistoryConfig(rate_interval_mode="fixed", assumed_interval_s=0.5))
        history.push(JointType.LEFT_KNEE, 90, 0)
        history.push(JointType.LEFT_KNEE, 100, 33)
        assert history.rate_of_change(JointType.LEFT_KNEE) == pytest.approx(20.0)

    def test_stability_of_still_subject(self):
        history = TemporalHistory()
        assert history.stability() == 100.0
        for ts in range(0, 500, 100):
            history.push_position(Landmark(0.5, 0.55), ts)
        assert history.stability() == pytest.approx(100.0)

    def test_stability_drops_with_movement(self):
        history = TemporalHistory()
        for i, x in enumerate((0.3, 0.7, 0.3, 0.7)):
            history.push_position(Landmark(x, 0.55), i * 100)
        assert history.stability() == 0.0

    def test_stability_bounds(self):
        history = TemporalHistory()
        for i, x in enumerate((0.50, 0.51, 0.52, 0.51)):
            history.push_position(Landmark(x, 0.55), i * 100)
        assert 0.0 <= history.stability() <= 100.0

    def test_center_speed(self):
        history = TemporalHistory()
        assert history.center_speed() is None
        history.push_position(Landmark(0.5, 0.5), 0)
        history.push_position(Landmark(0.53, 0.54), 500)
        assert history.center_speed() == pytest.approx(0.1)

    def test_clear(self):
        history = TemporalHistory()
        history.push(JointType.LEFT_KNEE, 90)
        history.push_position(Landmark(0.5, 0.5))
        history.clear()
        assert history.joints() == []
        assert history.position_count == 0
