"""Intent building: routes, composition and the execution state machine."""

from .models import ComposedIntent, IntentRequest, IntentStep, Route
from .orchestrator import IntentOrchestrator, IntentState

__all__ = ["ComposedIntent", "IntentOrchestrator", "IntentRequest", "IntentState", "IntentStep", "Route"]
