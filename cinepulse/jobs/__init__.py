"""
Job subsystem for Cine Pulse.

`ContentJob` is one scraping run over the configured sources;
`Scheduler` triggers it on a timer or on demand.
"""

from .content_job import ContentJob, JobState, RunResult  # noqa: F401
from .prompt import build_extraction_prompt  # noqa: F401
from .scheduler import JobRegistry, Scheduler  # noqa: F401
