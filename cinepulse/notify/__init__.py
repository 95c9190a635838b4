"""
Notification subsystem for Cine Pulse.

Sends a digest of the records saved during a run.  Delivery failures
are logged by the run driver and never fail the run.
"""

from .base import NotificationSink  # noqa: F401
from .email_notifier import EmailNotifier, build_notifier  # noqa: F401
