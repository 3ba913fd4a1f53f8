"""Runtime layer: service lifecycle and periodic background tasks.

:class:`~mcp_conduit.runtime.service.ConduitService` is imported from its
module directly; it depends on the server package, which itself uses
:class:`PeriodicTask`.
"""

from mcp_conduit.runtime.models import ServiceState
from mcp_conduit.runtime.periodic import PeriodicTask

__all__ = ["PeriodicTask", "ServiceState"]
