"""Constants for the CamHub integration."""

from __future__ import annotations

DOMAIN = "camhub"
STORAGE_VERSION = 1
STORAGE_KEY = f"{DOMAIN}.snapshots"
CONF_API_BASE = "api_base"
CONF_TOKEN = "token"
CONF_WEBRTC_BASE = "webrtc_base"
CONF_CAMERA_SCAN_INTERVAL = "camera_scan_interval"
CONF_MOTION_SCAN_INTERVAL = "motion_scan_interval"
CONF_MOTION_LIMIT = "motion_limit"
DEFAULT_CAMERA_SCAN_INTERVAL = 5
MIN_CAMERA_SCAN_INTERVAL = 1
MAX_CAMERA_SCAN_INTERVAL = 300
DEFAULT_MOTION_SCAN_INTERVAL = 10
MIN_MOTION_SCAN_INTERVAL = 2
MAX_MOTION_SCAN_INTERVAL = 600
DEFAULT_MOTION_LIMIT = 50
MIN_MOTION_LIMIT = 1
MAX_MOTION_LIMIT = 500
SAVE_DELAY_SECONDS = 1.0
REQUEST_TIMEOUT_SECONDS = 30
FALLBACK_WEBRTC_PORT = 8889
WHEP_SUFFIX = "whep"
SDP_CONTENT_TYPE = "application/sdp"
CAMERA_STATUS_OFFLINE = "offline"
CAMERA_STATUS_ONLINE = "online"
SERVICE_TAKE_SNAPSHOT = "take_snapshot"
SERVICE_ENABLE_CAMERA = "enable_camera"
SERVICE_DISABLE_CAMERA = "disable_camera"
SERVICE_REMOVE_CAMERA = "remove_camera"
ATTR_CAMERA_ID = "camera_id"
