"""Tests for the geometry helpers and the landmark frame."""

import math

import numpy as np
import pytest

from movement_engine.core.data_types import (
    NUM_LANDMARKS, JointType, Landmark, LandmarkFrame, PoseLandmarkIndex as P
)
from movement_engine.core.kinematics import (
    bearing, calculate_angle, calculate_joint_angle, eye_symmetry, head_orientation,
    horizontal_deviation, lean_from_vertical, line_tilt, midpoint, rotation,
    symmetry, vertical_deviation,
)


# ============================================================================
# Angles
# ============================================================================

class TestCalculateAngle:

    def test_collinear_points_give_180(self):
        assert calculate_angle((0, 0), (1, 0), (2, 0)) == pytest.approx(180.0)

    def test_right_angle(self):
        assert calculate_angle((1, 0), (0, 0), (0, 1)) == pytest.approx(90.0)

    def test_missing_point_gives_none(self):
        assert calculate_angle(None, (0, 0), (0, 1)) is None
        assert calculate_angle((1, 0), None, (0, 1)) is None
        assert calculate_angle((1, 0), (0, 0), None) is None

    def test_zero_length_arm_still_gives_an_angle(self):
        angle = calculate_angle((0.5, 0.5), (0.5, 0.5), (0.7, 0.5))
        assert angle is not None
        assert 0.0 <= angle <= 180.0

    def test_coincident_points_in_depth_use_planar_angle(self):
        a = Landmark(0.5, 0.5, 0.1)
        b = Landmark(0.5, 0.5, 0.1)
        c = Landmark(0.5, 0.2, 0.1)
        assert calculate_angle(a, b, c) == pytest.approx(calculate_angle(a, b, c, use_3d=False))

    def test_result_always_within_0_and_180(self):
        rng = np.random.RandomState(7)
        for _ in range(200):
            a, b, c = rng.rand(3, 2)
            angle = calculate_angle(a, b, c)
            assert angle is not None
            assert 0.0 <= angle <= 180.0

    def test_angle_is_symmetric_in_its_arms(self):
        a, b, c = (0.2, 0.9), (0.5, 0.5), (0.9, 0.7)
        assert calculate_angle(a, b, c) == pytest.approx(calculate_angle(c, b, a))

    def test_uses_depth_when_all_points_have_it(self):
        a = Landmark(1.0, 0.0, 0.0)
        b = Landmark(0.0, 0.0, 0.0)
        c = Landmark(0.0, 0.0, 1.0)
        assert calculate_angle(a, b, c) == pytest.approx(90.0)
        # Planar projection of the same points collapses the distal arm
        assert calculate_angle(a, b, c, use_3d=False) == pytest.approx(0.0)

    def test_planar_fallback_when_depth_missing(self):
        a = Landmark(1.0, 0.0, 0.5)
        b = Landmark(0.0, 0.0)
        c = Landmark(0.0, 1.0, 0.5)
        assert calculate_angle(a, b, c) == pytest.approx(90.0)


class TestJointAngle:

    def test_straight_knee(self, standing_frame):
        angle = calculate_joint_angle(standing_frame, JointType.LEFT_KNEE)
        assert angle == pytest.approx(180.0, abs=1e-6)

    def test_bent_knee_matches_requested_angle(self, frame_factory):
        frame = frame_factory(knee_angle=95.0)
        assert calculate_joint_angle(frame, JointType.LEFT_KNEE) == pytest.approx(95.0, abs=1e-6)
        assert calculate_joint_angle(frame, JointType.RIGHT_KNEE) == pytest.approx(95.0, abs=1e-6)

    def test_low_confidence_point_counts_as_missing(self, frame_factory):
        frame = frame_factory(confidences={P.LEFT_ANKLE: 0.1})
        assert calculate_joint_angle(frame, JointType.LEFT_KNEE, min_confidence=0.3) is None
        assert calculate_joint_angle(frame, JointType.RIGHT_KNEE, min_confidence=0.3) is not None


# ============================================================================
# Lines and posture scores
# ============================================================================

class TestLines:

    def test_midpoint_keeps_lowest_confidence(self):
        mid = midpoint(Landmark(0.0, 0.0, 0.0, 0.9), Landmark(1.0, 1.0, 1.0, 0.5))
        assert (mid.x, mid.y, mid.z) == (0.5, 0.5, 0.5)
        assert mid.confidence == 0.5

    def test_midpoint_without_common_depth(self):
        assert midpoint(Landmark(0.0, 0.0, 1.0), Landmark(1.0, 1.0)).z is None

    def test_bearing(self):
        assert bearing((0, 0), (1, 0)) == pytest.approx(0.0)
        assert bearing((0, 0), (0, 1)) == pytest.approx(90.0)
        assert bearing((0, 0), (0, 0)) is None

    def test_line_tilt_does_not_depend_on_order(self):
        assert line_tilt((0.4, 0.25), (0.6, 0.30)) == pytest.approx(line_tilt((0.6, 0.30), (0.4, 0.25)))
        assert line_tilt((0.4, 0.25), (0.6, 0.25)) == pytest.approx(0.0)

    def test_vertical_line_tilt(self):
        assert line_tilt((0.5, 0.2), (0.5, 0.8)) == pytest.approx(90.0)

    def test_lean_from_vertical(self):
        assert lean_from_vertical((0.5, 0.2), (0.5, 0.6)) == pytest.approx(0.0)
        assert lean_from_vertical((0.9, 0.5), (0.5, 0.5)) == pytest.approx(90.0)
        assert lean_from_vertical((0.6, 0.4), (0.5, 0.5)) == pytest.approx(45.0)

    def test_rotation_between_parallel_lines(self):
        assert rotation(((0.4, 0.2), (0.6, 0.2)), ((0.45, 0.5), (0.55, 0.5))) == pytest.approx(0.0)

    def test_rotation_range(self):
        value = rotation(((0.4, 0.2), (0.6, 0.2)), ((0.55, 0.5), (0.45, 0.5)))
        assert value == pytest.approx(180.0)

    def test_rotation_missing_point(self):
        assert rotation(((0.4, 0.2), None), ((0.45, 0.5), (0.55, 0.5))) is None


class TestScores:

    def test_levelness(self):
        assert horizontal_deviation((0.4, 0.25), (0.6, 0.25)) == pytest.approx(100.0)
        assert horizontal_deviation((0.4, 0.25), (0.6, 0.27)) == pytest.approx(90.0)
        assert horizontal_deviation((0.4, 0.0), (0.6, 0.5)) == 0.0

    def test_alignment(self):
        assert vertical_deviation([(0.5, 0.2), (0.5, 0.5), (0.5, 0.8)]) == pytest.approx(100.0)
        assert vertical_deviation([(0.5, 0.2), (0.55, 0.5)]) == pytest.approx(90.0)

    def test_alignment_needs_two_points(self):
        assert vertical_deviation([(0.5, 0.2), None, None]) is None

    def test_symmetry(self):
        assert symmetry(90.0, 90.0) == pytest.approx(100.0)
        assert symmetry(100.0, 90.0) == pytest.approx(80.0)
        assert symmetry(180.0, 20.0) == 0.0
        assert symmetry(None, 90.0) is None

    def test_symmetry_is_order_independent(self):
        assert symmetry(120.0, 95.0) == symmetry(95.0, 120.0)


# ============================================================================
# Head / face
# ============================================================================

class TestHead:

    def test_frontal_face(self):
        nose = Landmark(0.5, 0.15, -0.05)
        left_eye = Landmark(0.55, 0.10, 0.0)
        right_eye = Landmark(0.45, 0.10, 0.0)
        yaw, pitch, roll = head_orientation(nose, left_eye, right_eye)
        assert abs(yaw) < 1.0
        assert roll == pytest.approx(0.0)
        assert pitch is not None

    def test_turned_face_has_yaw(self):
        nose = Landmark(0.5, 0.15, -0.05)
        left_eye = Landmark(0.55, 0.10, 0.04)
        right_eye = Landmark(0.45, 0.10, -0.04)
        yaw, _, _ = head_orientation(nose, left_eye, right_eye)
        assert abs(yaw) > 10.0

    def test_no_depth_only_roll(self):
        yaw, pitch, roll = head_orientation(
            Landmark(0.5, 0.15), Landmark(0.55, 0.12), Landmark(0.45, 0.10)
        )
        assert yaw is None and pitch is None
        assert roll == pytest.approx(math.degrees(math.atan2(0.02, 0.10)))

    def test_eye_symmetry(self):
        value = eye_symmetry(
            Landmark(0.51, 0.1), Landmark(0.53, 0.1), Landmark(0.49, 0.1), Landmark(0.46, 0.1)
        )
        assert value == pytest.approx(0.01)


# ============================================================================
# Landmark frame
# ============================================================================

class TestLandmarkFrame:

    def test_short_input_is_padded(self):
        frame = LandmarkFrame.from_points([Landmark(0.5, 0.5)] * 10)
        assert len(frame) == NUM_LANDMARKS
        assert frame.get(9) is not None
        assert frame.get(10) is None

    def test_long_input_is_truncated(self):
        frame = LandmarkFrame.from_points([Landmark(0.5, 0.5)] * 40)
        assert len(frame) == NUM_LANDMARKS

    def test_malformed_points_become_missing(self):
        frame = LandmarkFrame.from_points(
            [Landmark(float("nan"), 0.5), "nose", Landmark(0.5, 0.5, float("inf"), 1.7)]
        )
        assert frame.get(0) is None
        assert frame.get(1) is None
        point = frame.get(2)
        assert point.z is None
        assert point.confidence == 1.0

    def test_numeric_strings_become_floats(self):
        frame = LandmarkFrame.from_points([Landmark("0.5", "0.25", "0.1", 0.9)])
        point = frame.get(0)
        assert point == Landmark(0.5, 0.25, 0.1, 0.9)
        assert isinstance(point.x, float) and isinstance(point.z, float)

    def test_non_iterable_input_gives_empty_frame(self):
        assert LandmarkFrame.from_points(7).usable_count() == 0

    def test_none_input_gives_empty_frame(self):
        frame = LandmarkFrame.from_points(None, timestamp_ms=12)
        assert frame.usable_count() == 0
        assert frame.timestamp_ms == 12

    def test_min_confidence_filter(self):
        frame = LandmarkFrame.from_points([Landmark(0.5, 0.5, confidence=0.2)])
        assert frame.get(0) is not None
        assert frame.get(0, min_confidence=0.3) is None
        assert frame.confidence(0) == 0.2
        assert frame.confidence(5) == 0.0
