"""Scheduling constants shared across the engine."""

from __future__ import annotations

from datetime import timedelta

API_TITLE = "Tutor Scheduling API"
API_VERSION = "0.1.0"
API_DESCRIPTION = "Slot generation, availability queries and atomic slot reservation for tutors."

# Every window is decomposed into slots of this length (the last one may be shorter)
SLOT_DURATION = timedelta(hours=1)

# Back-to-back slots may disagree by up to this much and still count as contiguous
DEFAULT_CONTIGUITY_TOLERANCE = timedelta(seconds=60)

DEFAULT_MIN_LEAD_TIME = timedelta(hours=1)

SLOT_ID_SEPARATOR = "_slot_"

# Query limits
MAX_WINDOW_LIMIT = 1000
MAX_JOINT_TUTORS = 50
MAX_BOOKING_LIMIT = 100
