"""Program-wide constants for the cadence scheduler."""

# Guided challenges always run for exactly four weeks
PROGRAM_WEEKS = 4

# Ceiling on distinct habit names (challenge + personal) a user may hold
MAX_ACTIVE_HABITS = 3

MAX_HABIT_NAME_LENGTH = 200

FALLBACK_TIMEZONE = "America/Chicago"

# survey_scores keys written by the enrollment service
WEEK1_START_KEY = "week1StartDate"
FOCUS_AREA_ORDER_KEY = "focusAreaOrder"
FINAL_REFLECTION_KEY = "final_reflection"
