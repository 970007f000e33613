from enum import Enum


class Intent(str, Enum):
    """Built-in intents. The registry also accepts intents registered at runtime."""

    CROP_RECOMMENDATION = "crop_recommendation"
    IRRIGATION_ADVICE = "irrigation_advice"
    FERTILIZER_ADVICE = "fertilizer_advice"
    SUSTAINABILITY_ADVICE = "sustainability_advice"


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    MONSOON = "monsoon"
    AUTUMN = "autumn"
    WINTER = "winter"


class ContextFieldName(str, Enum):
    WEATHER = "weather"
    SOIL = "soil"
    HISTORY = "history"
    PREFERENCES = "preferences"


class DataSource(str, Enum):
    USER_INPUT = "user_input"
    REGIONAL_DEFAULT = "regional_default"
    CACHED = "cached"
    SERVICE = "service"
    MISSING = "missing"


class DegradationAction(str, Enum):
    PROCEED_WITH_DISCLAIMER = "proceed_with_disclaimer"
    SUBSTITUTE_REGIONAL_DEFAULT = "substitute_regional_default"
    FAIL_REQUEST = "fail_request"


class FailureKind(str, Enum):
    TIMEOUT = "timeout"
    ERROR = "error"
    DEGRADED = "degraded"


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


IMPACT_RANK = {Impact.HIGH: 0, Impact.MEDIUM: 1, Impact.LOW: 2}
