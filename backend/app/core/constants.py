"""Application-wide constants for the SkillSwap session platform."""

BRAND_NAME = "SkillSwap"

# Session duration constraints (minutes)
MIN_SESSION_DURATION = 15
MAX_SESSION_DURATION = 480

# Text constraints
MAX_MESSAGE_LENGTH = 500
MAX_CANCELLATION_REASON_LENGTH = 300
MAX_LOCATION_LENGTH = 200
MAX_NOTES_LENGTH = 1000
MAX_FEEDBACK_COMMENT_LENGTH = 500
MIN_SKILL_NAME_LENGTH = 2
MAX_SKILL_NAME_LENGTH = 100
MIN_SKILL_CATEGORY_LENGTH = 2
MAX_SKILL_CATEGORY_LENGTH = 50

# Feedback rating bounds
MIN_RATING = 1
MAX_RATING = 5

DEFAULT_TIMEZONE = "UTC"

# Statuses that occupy a participant's calendar
SLOT_HOLDING_DEFAULT = ("pending", "accepted")

# Operations slower than this are logged as warnings (seconds)
SLOW_OPERATION_THRESHOLD = 1.0
