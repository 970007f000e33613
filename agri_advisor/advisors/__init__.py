from .base import (
    AdvisorCapability,
    FunctionAdvisor,
    cancellation_requested,
    cancellation_scope,
)
from .crop import CropAdvisor
from .fertilizer import FertilizerAdvisor
from .irrigation import IrrigationAdvisor
from .sustainability import SustainabilityAdvisor

__all__ = [
    "AdvisorCapability",
    "CropAdvisor",
    "FertilizerAdvisor",
    "FunctionAdvisor",
    "IrrigationAdvisor",
    "SustainabilityAdvisor",
    "cancellation_requested",
    "cancellation_scope",
]
