"""Instance lifecycle components.

API:
    - LifecycleOrchestrator: Main interface for create/start/stop/delete
    - DatabaseBootstrapper: Database init or clone
    - EndpointResolver: Route > load balancer > node port resolution
    - FlavorResolver: Size tag to resource profile
"""

from .orchestrator import LifecycleOrchestrator
from .database_bootstrapper import DatabaseBootstrapper
from .endpoint_resolver import EndpointResolver
from .flavor import FlavorResolver

__all__ = [
    "LifecycleOrchestrator",
    "DatabaseBootstrapper",
    "EndpointResolver",
    "FlavorResolver",
]
