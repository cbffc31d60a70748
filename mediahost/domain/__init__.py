"""Application lifecycle and push-publish reconciliation.

Top-level API:
- `StreamingOrchestrator`: facade over every operation below
- `ApplicationProvisioner`, `ApplicationStateProber`: tenant application lifecycle
- `PlaylistPublisherLocator`: scheduled playlist lookup
- `PushPublishReconciler`: relay rules
- `StreamStatusReporter`: live stream status
"""

from mediahost.domain.application.prober import ApplicationStateProber
from mediahost.domain.application.provisioner import ApplicationProvisioner
from mediahost.domain.orchestrator import StreamingOrchestrator
from mediahost.domain.playlist.locator import PlaylistPublisherLocator
from mediahost.domain.relay.reconciler import PushPublishReconciler
from mediahost.domain.status.reporter import StreamStatusReporter

__all__ = [
    "ApplicationProvisioner",
    "ApplicationStateProber",
    "PlaylistPublisherLocator",
    "PushPublishReconciler",
    "StreamStatusReporter",
    "StreamingOrchestrator",
]
