"""
Pydantic schemas for stored encryption formats.
"""
from fieldcrypt.schemas.message import SerializedMessage

__all__ = ["SerializedMessage"]
