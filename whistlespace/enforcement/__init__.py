from whistlespace.enforcement.engine import EnforcementEngine
from whistlespace.enforcement.models import EnforcementAction, EnforcementDecision

__all__ = ["EnforcementAction", "EnforcementDecision", "EnforcementEngine"]
