from nitisetu.models.enums import SocialCategory, SpeechPath
from nitisetu.models.profile import (
    MARGINAL_LAND_LIMIT_ACRES,
    REQUIRED_FOR_ANALYSIS,
    FarmerProfile,
)
from nitisetu.models.scheme import EligibilityResult, Scheme

__all__ = [
    "EligibilityResult",
    "FarmerProfile",
    "MARGINAL_LAND_LIMIT_ACRES",
    "REQUIRED_FOR_ANALYSIS",
    "Scheme",
    "SocialCategory",
    "SpeechPath",
]
