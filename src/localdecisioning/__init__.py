"""Local decisioning: on-device evaluation of targeting rules."""

from .config import DecisioningSettings, get_settings
from .errors import ArtifactError, DecisioningError, RuleEvaluationError
from .models import Attributes, TargetDeliveryRequest, TargetDeliveryResponse
from .services import LocalDecisioningService, RuleLoader

__version__ = "0.1.0"
__all__ = [
    "ArtifactError",
    "Attributes",
    "DecisioningError",
    "DecisioningSettings",
    "LocalDecisioningService",
    "RuleEvaluationError",
    "RuleLoader",
    "TargetDeliveryRequest",
    "TargetDeliveryResponse",
    "get_settings",
]
