"""Volume conversions between user-facing percent and sound-event decibels.

Percent runs 0-200 with 100 as the neutral default; it maps linearly onto the
event dB range, so 100% is 0 dB.
"""

MAX_PERCENT = 200
DEFAULT_PERCENT = 100
EVENT_DB_MIN = -10.0
EVENT_DB_MAX = 10.0
LAYER_DB_MIN = -10.0
LAYER_DB_MAX = 10.0


def clamp_percent(percent: float) -> float:
    return min(max(percent, 0.0), float(MAX_PERCENT))


def percent_to_event_db(percent: float) -> float:
    t = clamp_percent(percent) / MAX_PERCENT
    return EVENT_DB_MIN + t * (EVENT_DB_MAX - EVENT_DB_MIN)


def percent_to_layer_db(percent: float) -> float:
    t = clamp_percent(percent) / MAX_PERCENT
    return LAYER_DB_MIN + t * (LAYER_DB_MAX - LAYER_DB_MIN)


def event_db_to_percent(db: float) -> float:
    t = (db - EVENT_DB_MIN) / (EVENT_DB_MAX - EVENT_DB_MIN)
    return t * MAX_PERCENT


def ratio_to_percent(ratio: float) -> float:
    """Convert a 0.0-2.0 volume ratio (1.0 = neutral) to percent."""
    return clamp_percent(ratio * 100.0)
