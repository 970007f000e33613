import re
from enum import Enum
from typing import Any, Type

from .enums import ContextFieldName, Intent, Season


class EnumNormalizer:
    # 每个枚举一张表：alias -> canonical
    ALIASES: dict[Type[Enum], dict[str, str]] = {
        Season: {
            "spring": "spring",
            "春": "spring",
            "春季": "spring",
            "summer": "summer",
            "zaid": "summer",
            "夏": "summer",
            "夏季": "summer",
            "monsoon": "monsoon",
            "kharif": "monsoon",
            "rainy": "monsoon",
            "雨季": "monsoon",
            "autumn": "autumn",
            "fall": "autumn",
            "秋": "autumn",
            "秋季": "autumn",
            "winter": "winter",
            "rabi": "winter",
            "冬": "winter",
            "冬季": "winter",
        },
        Intent: {
            "crop recommendation": "crop_recommendation",
            "crop": "crop_recommendation",
            "种植推荐": "crop_recommendation",
            "irrigation": "irrigation_advice",
            "irrigation advice": "irrigation_advice",
            "灌溉建议": "irrigation_advice",
            "fertilizer": "fertilizer_advice",
            "fertiliser": "fertilizer_advice",
            "施肥建议": "fertilizer_advice",
            "sustainability": "sustainability_advice",
        },
        ContextFieldName: {
            "soil_info": "soil",
            "crop_history": "history",
            "user_preferences": "preferences",
        },
    }

    @staticmethod
    def _canon_key(x: Any) -> str:
        # 统一：去空格、小写、把连续空白压缩成一个空格
        s = str(x).strip().lower()
        s = re.sub(r"\s+", " ", s)
        return s

    @classmethod
    def normalize(cls, enum_cls: Type[Enum], value: Any) -> Any:
        if value is None:
            return value

        if isinstance(value, enum_cls):
            return value.value

        key = cls._canon_key(value)
        aliases = cls.ALIASES.get(enum_cls, {})
        return aliases.get(key, key)  # 未命中则返回规整后的值，让 Pydantic 报错


def normalize_intent(value: Any) -> str:
    """Map an intent (enum member, alias or registered name) to its canonical string."""
    if isinstance(value, Intent):
        return value.value
    text = EnumNormalizer.normalize(Intent, value)
    if not text:
        raise ValueError("intent must be a non-empty string")
    return str(text).replace(" ", "_")


def normalize_field_name(value: Any) -> str:
    text = EnumNormalizer.normalize(ContextFieldName, value)
    return ContextFieldName(text).value
