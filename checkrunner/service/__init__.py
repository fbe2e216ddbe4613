"""Runner service: startup sequence, interval scheduling, execution pipeline."""

from .backoff import BackoffPolicy, retry
from .runner import RunnerService, RunnerState
from .scheduler import repeat, wait_for_shutdown
