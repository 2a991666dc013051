"""Shared fixtures: synthetic 33-point frames of a subject facing the camera."""

import math

import pytest

from movement_engine.core.data_types import Landmark, LandmarkFrame, PoseLandmarkIndex as P


# Standing subject, normalized image coordinates (y grows downwards).
# The subject's left side sits on the image right (x > 0.5).
STANDING_POSE = {
    P.NOSE: (0.50, 0.12),
    P.LEFT_EYE_INNER: (0.51, 0.10),
    P.LEFT_EYE: (0.52, 0.10),
    P.LEFT_EYE_OUTER: (0.53, 0.10),
    P.RIGHT_EYE_INNER: (0.49, 0.10),
    P.RIGHT_EYE: (0.48, 0.10),
    P.RIGHT_EYE_OUTER: (0.47, 0.10),
    P.LEFT_EAR: (0.55, 0.11),
    P.RIGHT_EAR: (0.45, 0.11),
    P.MOUTH_LEFT: (0.52, 0.14),
    P.MOUTH_RIGHT: (0.48, 0.14),
    P.LEFT_SHOULDER: (0.60, 0.25),
    P.RIGHT_SHOULDER: (0.40, 0.25),
    P.LEFT_ELBOW: (0.62, 0.40),
    P.RIGHT_ELBOW: (0.38, 0.40),
    P.LEFT_WRIST: (0.63, 0.55),
    P.RIGHT_WRIST: (0.37, 0.55),
    P.LEFT_PINKY: (0.64, 0.59),
    P.RIGHT_PINKY: (0.36, 0.59),
    P.LEFT_INDEX: (0.635, 0.60),
    P.RIGHT_INDEX: (0.365, 0.60),
    P.LEFT_THUMB: (0.62, 0.58),
    P.RIGHT_THUMB: (0.38, 0.58),
    P.LEFT_HIP: (0.56, 0.55),
    P.RIGHT_HIP: (0.44, 0.55),
    P.LEFT_KNEE: (0.56, 0.70),
    P.RIGHT_KNEE: (0.44, 0.70),
    P.LEFT_ANKLE: (0.56, 0.85),
    P.RIGHT_ANKLE: (0.44, 0.85),
    P.LEFT_HEEL: (0.56, 0.87),
    P.RIGHT_HEEL: (0.44, 0.87),
    P.LEFT_FOOT_INDEX: (0.59, 0.88),
    P.RIGHT_FOOT_INDEX: (0.41, 0.88),
}

SHIN_LENGTH = 0.15


def _bend_knees(pose, knee_angle):
    """Swing both shins outwards so that hip-knee-ankle measures knee_angle."""
    flexion = math.radians(180.0 - knee_angle)
    for side, ankle, heel, foot, knee in (
        (1.0, P.LEFT_ANKLE, P.LEFT_HEEL, P.LEFT_FOOT_INDEX, P.LEFT_KNEE),
        (-1.0, P.RIGHT_ANKLE, P.RIGHT_HEEL, P.RIGHT_FOOT_INDEX, P.RIGHT_KNEE),
    ):
        kx, ky = pose[knee]
        ax = kx + side * SHIN_LENGTH * math.sin(flexion)
        ay = ky + SHIN_LENGTH * math.cos(flexion)
        pose[ankle] = (ax, ay)
        pose[heel] = (ax, ay + 0.02)
        pose[foot] = (ax + side * 0.03, ay + 0.03)


def build_frame(
    knee_angle=None,
    timestamp_ms=0,
    confidence=0.9,
    overrides=None,
    confidences=None,
    drop=(),
    z=0.0,
):
    """
    Args:
        knee_angle: Bend both knees to this angle (None = straight legs).
        overrides: {index: (x, y)} applied after the knee bend.
        confidences: {index: confidence} for individual landmarks.
        drop: Indices reported as missing.
        z: Depth for every point (None = planar frame).
    """
    pose = dict(STANDING_POSE)
    if knee_angle is not None:
        _bend_knees(pose, knee_angle)
    pose.update(overrides or {})
    confidences = confidences or {}

    points = []
    for index in range(33):
        if index in drop:
            points.append(None)
            continue
        x, y = pose[index]
        points.append(Landmark(x, y, z, confidences.get(index, confidence)))
    return LandmarkFrame.from_points(points, timestamp_ms)


def scaled_frame(factor, timestamp_ms=0):
    """Standing frame scaled about its center; factor < 1 looks further away."""
    overrides = {
        index: (0.5 + (x - 0.5) * factor, 0.5 + (y - 0.5) * factor)
        for index, (x, y) in STANDING_POSE.items()
    }
    return build_frame(overrides=overrides, timestamp_ms=timestamp_ms)


def knee_sequence(angles, start_ms=0, step_ms=100):
    return [build_frame(knee_angle=a, timestamp_ms=start_ms + i * step_ms) for i, a in enumerate(angles)]


@pytest.fixture
def frame_factory():
    return build_frame


@pytest.fixture
def scaled_frame_factory():
    return scaled_frame


@pytest.fixture
def knee_frames():
    return knee_sequence


@pytest.fixture
def standing_frame():
    return build_frame()
