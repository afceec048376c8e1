"""
Application constants.
Centralized location for all constant values used across the package.
"""

from enum import StrEnum


class JobOutcome(StrEnum):
    """Terminal outcomes reported for a claimed job."""

    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"


class RemovalReason(StrEnum):
    """Why jobs were deleted from a queue collection."""

    CLEAN = "clean"
    RESET = "reset"


# Queue defaults
DEFAULT_QUEUE_COLLECTION = "queue"
DEFAULT_BLOCK_DURATION_MS = 30000
DEFAULT_MAX_RETRIES = 5

# Error messages
ERROR_PAYLOAD_MISSING = "payload missing"
ERROR_PAYLOAD_INVALID = "not a valid referenced document"
ERROR_JOB_NOT_FOUND = "job id invalid, job not found"

# Metrics names
METRIC_QUEUE_DEPTH = "docqueue_queue_depth"
METRIC_JOBS_ENQUEUED = "docqueue_jobs_enqueued_total"
METRIC_JOBS_CLAIMED = "docqueue_jobs_claimed_total"
METRIC_CLAIMS_EMPTY = "docqueue_claims_empty_total"
METRIC_JOBS_FINISHED = "docqueue_jobs_finished_total"
METRIC_JOBS_REMOVED = "docqueue_jobs_removed_total"
METRIC_JOB_DURATION = "docqueue_job_duration_seconds"

# Trace span names
SPAN_ENQUEUE = "queue.enqueue"
SPAN_CLAIM = "queue.claim"
SPAN_ACKNOWLEDGE = "queue.acknowledge"
SPAN_FAIL = "queue.fail"
SPAN_CLEAN = "queue.clean"
SPAN_RESET = "queue.reset"
SPAN_EXECUTE_JOB = "execute_job"
