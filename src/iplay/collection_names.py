"""Names of the persisted document collections."""

USERS = "users"
SCHOOLS = "schools"
CLASSROOMS = "classrooms"
PROGRESS = "progress"
CERTIFICATES = "certificates"
DAILY_CHALLENGE_ATTEMPTS = "daily_challenge_attempts"
JOIN_REQUESTS = "join_requests"
ANNOUNCEMENTS = "announcements"
ASSIGNMENTS = "assignments"
REPORTS = "reports"
LEADERBOARD_CACHE = "leaderboard_cache"
DAILY_CHALLENGES = "daily_challenges"
