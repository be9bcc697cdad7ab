"""Tests for the session state machine."""

from crop_diagnosis.config import WorkflowVariant
from crop_diagnosis.domain.errors import UploadError
from crop_diagnosis.domain.images import ImageRef, ImageSource
from crop_diagnosis.domain.sessions import (
    AdviceStatus,
    Session,
    SessionPhase,
    WeatherStatus,
)
from crop_diagnosis.domain.weather import LocatedForecast
from crop_diagnosis.services.sessions import SessionStateMachine
from tests.conftest import make_detection

IMAGE = ImageRef(uri="/tmp/leaf.jpg")
OTHER_IMAGE = ImageRef(uri="/tmp/other.png", source=ImageSource.CAMERA)


def _results_ready(machine: SessionStateMachine) -> int:
    machine.capture_image(IMAGE)
    attempt = machine.start_upload()
    assert attempt is not None
    machine.upload_succeeded(
        attempt,
        [
            make_detection("rust", 0.8),
            make_detection("rust", 0.95),
            make_detection("blight", 0.4),
        ],
        b"annotated",
    )
    return attempt


def test_initial_phase_depends_on_crop_requirement() -> None:
    assert SessionStateMachine().session.phase is SessionPhase.IDLE
    required = SessionStateMachine(WorkflowVariant(require_crop_selection=True))
    assert required.session.phase is SessionPhase.CROP_PENDING


def test_select_crop_rejects_unselected_sentinel() -> None:
    machine = SessionStateMachine(WorkflowVariant(require_crop_selection=True))

    assert machine.select_crop("unselected") is False
    assert machine.select_crop("  ") is False

    assert machine.session.phase is SessionPhase.CROP_PENDING
    assert machine.session.selected_crop is None
    assert machine.session.notice == "Please select a crop first."


def test_select_crop_unlocks_capture() -> None:
    machine = SessionStateMachine(WorkflowVariant(require_crop_selection=True))

    assert machine.capture_image(IMAGE) is False
    assert machine.session.image_ref is None

    assert machine.select_crop("Tomato") is True
    assert machine.session.phase is SessionPhase.IDLE
    assert machine.session.selected_crop == "tomato"
    assert machine.session.notice is None
    assert machine.capture_image(IMAGE) is True
    assert machine.session.phase is SessionPhase.IMAGE_READY


def test_select_crop_respects_choices() -> None:
    machine = SessionStateMachine(
        WorkflowVariant(crop_choices=frozenset({"tomato", "potato"}))
    )

    assert machine.select_crop("banana") is False
    assert machine.select_crop("potato") is True


def test_start_upload_without_image_is_noop() -> None:
    machine = SessionStateMachine()

    assert machine.start_upload() is None
    assert machine.session.phase is SessionPhase.IDLE
    assert machine.session.notice == "Please pick or take a photo first."


def test_start_upload_while_uploading_is_noop() -> None:
    machine = SessionStateMachine()
    machine.capture_image(IMAGE)

    first = machine.start_upload()
    second = machine.start_upload()

    assert first == 1
    assert second is None
    assert machine.session.phase is SessionPhase.UPLOADING
    assert machine.session.upload_attempt == 1


def test_upload_succeeded_stores_reduced_detections_and_opens_gate() -> None:
    machine = SessionStateMachine()

    _results_ready(machine)

    session = machine.session
    assert session.phase is SessionPhase.RESULTS_READY
    assert [(d.label, d.score) for d in session.detections] == [
        ("rust", 0.95),
        ("blight", 0.4),
    ]
    assert session.annotated_artifact == b"annotated"
    assert session.show_weather is True
    assert session.upload_in_flight is None


def test_weather_gate_stays_closed_when_weather_disabled() -> None:
    machine = SessionStateMachine(WorkflowVariant(weather_enabled=False))

    _results_ready(machine)

    assert machine.session.show_weather is False


def test_capture_resets_results_atomically() -> None:
    machine = SessionStateMachine()
    attempt = _results_ready(machine)
    machine.advice_received(attempt, {"rust": "Spray fungicide."})
    snapshots: list[Session] = []
    machine.subscribe(snapshots.append)

    machine.pick_image(OTHER_IMAGE)

    assert len(snapshots) == 1
    session = snapshots[0]
    assert session.phase is SessionPhase.IMAGE_READY
    assert session.image_ref == OTHER_IMAGE
    assert session.detections == ()
    assert session.advisory == {}
    assert session.show_weather is False
    assert session.annotated_artifact is None


def test_show_weather_false_outside_results() -> None:
    machine = SessionStateMachine()
    seen: list[Session] = []
    machine.subscribe(seen.append)

    _results_ready(machine)
    machine.start_upload()
    machine.capture_image(OTHER_IMAGE)

    for snapshot in seen:
        if snapshot.phase in {
            SessionPhase.IDLE,
            SessionPhase.IMAGE_READY,
            SessionPhase.UPLOADING,
        }:
            assert snapshot.show_weather is False


def test_upload_failed_keeps_image_and_detections() -> None:
    machine = SessionStateMachine()
    _results_ready(machine)
    before = machine.session.detections

    attempt = machine.start_upload()
    assert attempt is not None
    machine.upload_failed(attempt, UploadError(status=500, body="model error"))

    session = machine.session
    assert session.phase is SessionPhase.ERROR
    assert session.image_ref == IMAGE
    assert session.detections == before
    assert session.error is not None
    assert session.error.status == 500
    assert session.show_weather is False


def test_retry_from_error_reenters_uploading() -> None:
    machine = SessionStateMachine()
    machine.capture_image(IMAGE)
    attempt = machine.start_upload()
    assert attempt is not None
    machine.upload_failed(attempt, UploadError(cause=OSError("unreachable")))

    retry = machine.start_upload()

    assert retry == attempt + 1
    assert machine.session.phase is SessionPhase.UPLOADING
    assert machine.session.error is None


def test_results_for_superseded_image_are_discarded() -> None:
    machine = SessionStateMachine()
    machine.capture_image(IMAGE)
    attempt = machine.start_upload()
    assert attempt is not None

    machine.capture_image(OTHER_IMAGE)
    assert machine.start_upload() is None

    accepted = machine.upload_succeeded(attempt, [make_detection("rust", 0.9)], None)

    assert accepted is False
    assert machine.session.phase is SessionPhase.IMAGE_READY
    assert machine.session.detections == ()
    assert machine.session.upload_in_flight is None
    assert machine.start_upload() == attempt + 1


def test_advice_only_for_current_labels() -> None:
    machine = SessionStateMachine()
    attempt = _results_ready(machine)
    machine.advice_requested(attempt)

    assert machine.session.advice_status("rust") is AdviceStatus.PENDING

    machine.advice_received(
        attempt,
        {"blight": "Remove leaves.", "mildew": "Not detected."},
        unavailable=["rust"],
    )

    session = machine.session
    assert session.advisory == {"blight": "Remove leaves."}
    assert session.advice_status("rust") is AdviceStatus.UNAVAILABLE
    assert session.advice_status("blight") is AdviceStatus.AVAILABLE
    assert session.advice_status("mildew") is AdviceStatus.NOT_REQUESTED


def test_stale_advice_is_ignored() -> None:
    machine = SessionStateMachine()
    attempt = _results_ready(machine)
    machine.capture_image(OTHER_IMAGE)

    assert machine.advice_received(attempt, {"rust": "Spray."}) is False
    assert machine.session.advisory == {}


def test_advice_for_previous_upload_of_same_image_is_ignored() -> None:
    machine = SessionStateMachine()
    first = _results_ready(machine)
    second = machine.start_upload()
    assert second is not None
    machine.upload_succeeded(second, [make_detection("rust", 0.7)], None)

    assert machine.session.image_ref == IMAGE
    assert machine.advice_received(first, {"rust": "Old advice."}) is False
    assert machine.advice_received(second, {"rust": "Spray."}) is True
    assert machine.session.advisory == {"rust": "Spray."}


def test_reject_sets_notice_without_changing_phase() -> None:
    machine = SessionStateMachine()
    machine.capture_image(IMAGE)

    assert machine.reject("No photo was selected.") is False
    assert machine.session.phase is SessionPhase.IMAGE_READY
    assert machine.session.image_ref == IMAGE
    assert machine.session.notice == "No photo was selected."


def test_weather_hidden_until_gate_opens() -> None:
    machine = SessionStateMachine()
    machine.weather_requested()
    assert machine.session.weather_status is WeatherStatus.PENDING

    machine.weather_resolved(LocatedForecast(forecast=(), location_label="Farm"))

    assert machine.session.weather == ()
    assert machine.session.visible_weather is None

    _results_ready(machine)

    assert machine.session.visible_weather == ()
    assert machine.session.location_label == "Farm"


def test_weather_unavailable_is_distinct_from_not_requested() -> None:
    machine = SessionStateMachine()
    assert machine.session.weather_status is WeatherStatus.NOT_REQUESTED

    machine.weather_unavailable()

    assert machine.session.weather_status is WeatherStatus.UNAVAILABLE
    assert machine.session.weather is None


def test_unsubscribe_stops_notifications() -> None:
    machine = SessionStateMachine()
    seen: list[Session] = []
    unsubscribe = machine.subscribe(seen.append)

    machine.capture_image(IMAGE)
    unsubscribe()
    machine.start_upload()

    assert len(seen) == 1
