"""Constants used throughout the reliable delivery service."""

# HTTP Headers
REQUEST_ID_HEADER = "X-Request-ID"

# Synthetic error recorded on records re-injected from the dead letter queue
MANUAL_RETRY_ERROR = "Manual retry from dead letter queue"

# Tag added to every retried send so provider-side logs show the attempt
RETRY_ATTEMPT_TAG = "retry_attempt"

# Job paths resolved by RQ workers
PROCESS_RETRY_JOB = "core.jobs.retry_jobs.process_retry_job"
SEND_EMAIL_JOB = "core.jobs.email_jobs.send_email_job"

# Cache keys (Django cache, Redis in production)
RETRY_RATE_CACHE_KEY = "email:retry:success-rate"
DEAD_LETTER_COUNTER_KEY = "email:dlq:count"
DEAD_LETTER_COUNTER_TTL = 86400  # Reset daily

# Operator API limits
DEFAULT_DEAD_LETTER_PAGE_SIZE = 100
MAX_DEAD_LETTER_PAGE_SIZE = 1000
MAX_REPLAY_BATCH_SIZE = 500
DEFAULT_SWEEP_LIMIT = 100
