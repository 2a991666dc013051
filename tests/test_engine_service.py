"""Tests for the per-subject engine instance."""

import pytest

from movement_engine import MovementEngine
from movement_engine.core.config import EngineSettings, TrackingConfig
from movement_engine.core.data_types import LandmarkFrame, PoseLandmarkIndex as P
from movement_engine.modules.events import (
    EventType, PhaseChangedEvent, RepCompletedEvent
)
from movement_engine.modules.profiles import create_pushup_profile
from movement_engine.utils.logger import LogCategory


SQUAT_REP = [170, 140, 95, 120, 165]


@pytest.fixture
def engine():
    return MovementEngine.create_instance(instance_id="subject-1")


def _feed(engine, frames):
    return [engine.process_frame(frame) for frame in frames]


class TestProcessing:

    def test_output_of_one_frame(self, engine, standing_frame):
        output = engine.process_frame(standing_frame, timestamp_ms=1234)
        assert output.instance_id == "subject-1"
        assert output.timestamp_ms == 1234
        assert output.snapshot.angle("left_knee") == pytest.approx(180.0, abs=1e-6)
        assert output.exercise.exercise == "squat"
        assert output.events_of(EventType.PHASE_CHANGED)
        assert engine.frames_processed == 1

    def test_accepts_raw_arrays(self, engine):
        output = engine.process_frame([[0.5, 0.5, 0.0, 0.9]] * 33, timestamp_ms=10)
        assert output.timestamp_ms == 10
        assert output.snapshot.landmark_confidence[0] == pytest.approx(0.9)

    def test_missing_frame_is_not_an_error(self, engine):
        output = engine.process_frame(None, timestamp_ms=5)
        assert not output.snapshot.joint_angles
        assert output.events == []

    def test_counts_reps(self, engine, knee_frames):
        outputs = _feed(engine, knee_frames(SQUAT_REP))
        assert outputs[-1].exercise.rep_count == 1
        assert len(outputs[-1].events_of(EventType.REP_COMPLETED)) == 1

    def test_output_serializes(self, engine, knee_frames):
        data = _feed(engine, knee_frames(SQUAT_REP))[-1].to_dict()
        assert data["exercise"]["rep_count"] == 1
        assert {e["type"] for e in data["events"]} == {"phase_changed", "rep_completed"}
        assert data["metrics"]["validity"]["is_valid"] is True


class TestIsolation:

    def test_instances_do_not_share_state(self, knee_frames, standing_frame):
        first = MovementEngine.create_instance()
        second = MovementEngine.create_instance()
        assert first.instance_id != second.instance_id

        _feed(first, knee_frames(SQUAT_REP))
        assert first.status.rep_count == 1
        assert second.status.rep_count == 0
        assert second.metrics_engine.history.joints() == []

        output = second.process_frame(standing_frame)
        assert output.snapshot.range_of_motion["left_knee"] == 0.0

    def test_custom_profiles(self, standing_frame):
        engine = MovementEngine.create_instance(profiles=[create_pushup_profile()])
        assert not engine.process_frame(standing_frame).exercise.is_tracking


class TestSubscribers:

    def test_events_reach_subscribers_in_order(self, engine, knee_frames):
        received = []
        engine.subscribe(received.append)
        outputs = _feed(engine, knee_frames(SQUAT_REP))
        assert received == [event for output in outputs for event in output.events]

    def test_filter_by_event_type(self, engine, knee_frames):
        reps = []
        engine.subscribe(reps.append, {EventType.REP_COMPLETED})
        _feed(engine, knee_frames(SQUAT_REP))
        assert len(reps) == 1
        assert isinstance(reps[0], RepCompletedEvent)

    def test_unsubscribe(self, engine, knee_frames):
        received = []
        unsubscribe = engine.subscribe(received.append)
        engine.process_frame(knee_frames([170])[0])
        unsubscribe()
        _feed(engine, knee_frames(SQUAT_REP[1:], start_ms=100))
        assert len(received) == 1
        assert isinstance(received[0], PhaseChangedEvent)

    def test_unsubscribe_by_listener(self, engine, standing_frame):
        received = []
        engine.subscribe(received.append)
        engine.unsubscribe(received.append)
        engine.process_frame(standing_frame)
        assert received == []

    def test_subscribers_are_per_instance(self, knee_frames):
        first = MovementEngine.create_instance()
        second = MovementEngine.create_instance()
        received = []
        second.subscribe(received.append)
        _feed(first, knee_frames(SQUAT_REP))
        assert received == []


class TestControl:

    def test_select_exercise(self, engine, standing_frame):
        engine.select_exercise("bicep_curl")
        assert engine.process_frame(standing_frame).exercise.exercise == "bicep_curl"

    def test_set_baseline_from_last_frame(self, engine, frame_factory):
        engine.process_frame(frame_factory(knee_angle=170.0))
        engine.set_baseline()
        output = engine.process_frame(frame_factory(knee_angle=150.0, timestamp_ms=100))
        assert output.snapshot.baseline_deviation["left_knee"] == pytest.approx(-20.0, abs=1e-6)

    def test_reset(self, engine, knee_frames):
        received = []
        engine.subscribe(received.append)
        _feed(engine, knee_frames(SQUAT_REP))
        engine.reset()
        assert engine.status.rep_count == 0
        assert engine.frames_processed == 0
        assert engine.metrics_engine.history.joints() == []
        assert engine.session_report().total_reps == 0

        _feed(engine, knee_frames([170]))
        assert received[-1] == PhaseChangedEvent("squat", "idle", "preparation", 0)

    def test_history_dropped_after_subject_leaves(self, knee_frames):
        settings = EngineSettings(tracking=TrackingConfig(subject_loss_frames=3))
        engine = MovementEngine.create_instance(settings=settings)
        _feed(engine, knee_frames([170, 140]))
        for ts in range(300, 600, 100):
            engine.process_frame(LandmarkFrame.empty(ts))
        assert engine.metrics_engine.history.joints() == []
        assert engine.status.phase == "idle"
        assert engine.journal.filter(LogCategory.VALIDITY)


class TestSession:

    def test_session_report(self, engine, knee_frames):
        cycle = SQUAT_REP[1:]
        _feed(engine, knee_frames([170] + cycle * 2))
        report = engine.session_report()
        assert report.session_id == "subject-1"
        assert report.total_reps == 2
        assert report.reps_by_exercise == {"squat": 2}
        assert report.rep_scores[0].stability_score is not None
        assert report.to_dict()["duration_seconds"] == pytest.approx(0.8)

    def test_journal_records_reps(self, engine, knee_frames):
        _feed(engine, knee_frames(SQUAT_REP))
        reps = engine.journal.filter(LogCategory.REP)
        assert len(reps) == 1
        assert reps[0].data["rep_number"] == 1

    def test_posture_feedback(self, engine, frame_factory):
        frame = frame_factory(overrides={P.LEFT_SHOULDER: (0.60, 0.30)})
        messages = [f.message for f in engine.process_frame(frame).feedback]
        assert "Level your shoulders" in messages
