"""
Logical attribute types.

An encrypted field keeps its logical type: values are serialized to text by
the logical type before encryption and cast back from text after decryption.
"""

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


class AttributeType:
    """Base logical type: values are stored as their string representation."""

    name = "value"

    def serialize(self, value: Any) -> Optional[str]:
        """Convert a logical value to text, None for absent values."""
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)

    def deserialize(self, text: Optional[str]) -> Any:
        """Convert stored text back to a logical value."""
        return self.cast(text)

    def cast(self, value: Any) -> Any:
        return value

    def equals(self, old_value: Any, new_value: Any) -> bool:
        return self.cast(old_value) == self.cast(new_value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class StringType(AttributeType):
    name = "string"

    def serialize(self, value: Any) -> Optional[str]:
        return self.cast(value)

    def cast(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)


class IntegerType(AttributeType):
    name = "integer"

    def serialize(self, value: Any) -> Optional[str]:
        value = self.cast(value)
        return None if value is None else str(value)

    def cast(self, value: Any) -> Optional[int]:
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            return int(value)
        try:
            return int(value)
        except (TypeError, ValueError):
            return int(Decimal(str(value)))


class DecimalType(AttributeType):
    name = "decimal"

    def serialize(self, value: Any) -> Optional[str]:
        value = self.cast(value)
        return None if value is None else str(value)

    def cast(self, value: Any) -> Optional[Decimal]:
        if value is None or value == "":
            return None
        try:
            return value if isinstance(value, Decimal) else Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Invalid decimal value: {value!r}") from e


class FloatType(AttributeType):
    name = "float"

    def serialize(self, value: Any) -> Optional[str]:
        value = self.cast(value)
        return None if value is None else repr(value)

    def cast(self, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        return float(value)


class BooleanType(AttributeType):
    name = "boolean"

    FALSE_VALUES = {"0", "f", "false", "off", "no", "n"}

    def serialize(self, value: Any) -> Optional[str]:
        value = self.cast(value)
        return None if value is None else ("t" if value else "f")

    def cast(self, value: Any) -> Optional[bool]:
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return value.strip().lower() not in self.FALSE_VALUES
        return bool(value)


class JSONType(AttributeType):
    name = "json"

    def serialize(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        return json.dumps(value, sort_keys=True, separators=(",", ":"))

    def deserialize(self, text: Optional[str]) -> Any:
        if text is None:
            return None
        return json.loads(text)

    def equals(self, old_value: Any, new_value: Any) -> bool:
        return old_value == new_value
