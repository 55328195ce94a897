"""Background jobs: per-user batch runner and interval scheduler."""
from daily_paydown.jobs.scheduler import JobScheduler, intervals_from_settings
from daily_paydown.jobs.tasks import (BatchResult, JobFamily, JobRunner,
                                      run_for_users)

__all__ = [
    "BatchResult",
    "JobFamily",
    "JobRunner",
    "JobScheduler",
    "intervals_from_settings",
    "run_for_users",
]
