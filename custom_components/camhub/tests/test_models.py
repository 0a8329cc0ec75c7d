"""Unit tests for data models."""

from datetime import datetime, timezone

import pytest

from custom_components.camhub.models import (
    Camera,
    CamHubApiError,
    SnapshotRecord,
    parse_cameras,
    parse_motion_events,
    parse_timestamp,
)


def test_camera_from_dict_normalizes_backend_payload() -> None:
    camera = Camera.from_dict({"id": 7, "name": "Garage", "last_seen": 1760781600000})

    assert camera.id == "7"
    assert camera.status == "offline"
    assert camera.stream_key == "7"
    assert camera.last_seen_dt == datetime(2025, 10, 18, 10, 0, tzinfo=timezone.utc)
    assert camera.last_motion_dt is None


def test_camera_stream_key_prefers_stream_path() -> None:
    camera = Camera.from_dict({"id": "cam1", "name": "Front", "status": "online", "stream_path": "front-hd"})

    assert camera.stream_key == "front-hd"
    assert camera.status == "online"


def test_parse_cameras_rejects_non_list_payload() -> None:
    with pytest.raises(CamHubApiError):
        parse_cameras({"error": "unauthorized"})
    with pytest.raises(CamHubApiError):
        parse_cameras([{"name": "no id"}])


def test_parse_motion_events_keeps_order() -> None:
    events = parse_motion_events(
        [
            {"id": 2, "camera_id": 1, "ts": "2026-10-18T10:01:00Z", "snapshot_path": "/m/2.jpg"},
            {"id": 1, "camera_id": 1, "ts": "2026-10-18T10:00:00Z"},
        ]
    )

    assert [event.id for event in events] == ["2", "1"]
    assert events[0].camera_id == "1"
    assert events[1].snapshot_path is None
    assert events[0].ts_dt == datetime(2026, 10, 18, 10, 1, tzinfo=timezone.utc)


def test_parse_timestamp_variants() -> None:
    assert parse_timestamp(None) is None
    assert parse_timestamp("not a date") is None
    assert parse_timestamp("2026-10-18T10:00:00") == datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)
    assert parse_timestamp("1760781600000") == datetime(2025, 10, 18, 10, 0, tzinfo=timezone.utc)


def test_snapshot_record_roundtrip_dict() -> None:
    record = SnapshotRecord(camera_id="cam1", ts=1760781600000, url="http://backend/snap.jpg")

    assert SnapshotRecord.from_dict(record.as_dict()) == record


def test_out_of_range_epoch_is_ignored() -> None:
    camera = Camera(id="cam1", name="Front", last_seen="99999999999999999999", last_motion_at=10**30)

    assert parse_timestamp("99999999999999999999") is None
    assert camera.last_seen_dt is None
    assert camera.last_motion_dt is None
