"""
Serialization of encrypted messages to the compact JSON text stored in columns.
"""

import base64
import binascii
from typing import Any, Dict

from pydantic import ValidationError

from fieldcrypt.errors import EncodingError, EncryptedContentIntegrityError, ForbiddenClassError
from fieldcrypt.schemas.message import SerializedMessage
from fieldcrypt.services.message import BINARY_HEADERS, Message, Properties


class MessageSerializer:
    """
    Converts messages to and from their stored text form.

    Every format this serializer has written must stay loadable, so loading is
    tolerant of header order and of headers it does not know about.
    """

    def dump(self, message: Message) -> str:
        """
        Serialize a message to compact JSON text.

        Raises:
            ForbiddenClassError: If message is not a Message
        """
        if not isinstance(message, Message):
            raise ForbiddenClassError(
                f"Can only serialize Message instances, got {type(message).__name__}"
            )
        return self._to_schema(message).model_dump_json()

    def load(self, serialized_content: str) -> Message:
        """
        Parse stored text into a message.

        Raises:
            EncodingError: If the text is not a valid serialized message
        """
        if not isinstance(serialized_content, (str, bytes)):
            raise EncodingError(
                f"Encrypted content must be text, got {type(serialized_content).__name__}"
            )

        try:
            schema = SerializedMessage.model_validate_json(serialized_content)
        except (ValidationError, ValueError, RecursionError) as e:
            raise EncodingError("Encrypted content is not a valid message") from e

        return self._from_schema(schema)

    def _to_schema(self, message: Message) -> SerializedMessage:
        headers: Dict[str, Any] = {}
        for name, value in message.headers.items():
            if isinstance(value, Message):
                headers[name] = self._to_schema(value)
            elif isinstance(value, bytes):
                headers[name] = _encode(value)
            else:
                headers[name] = value
        return SerializedMessage(p=_encode(message.payload), h=headers)

    def _from_schema(self, schema: SerializedMessage) -> Message:
        headers: Dict[str, Any] = {}
        for name, value in schema.h.items():
            if isinstance(value, SerializedMessage):
                headers[name] = self._from_schema(value)
            elif name in BINARY_HEADERS:
                if not isinstance(value, str):
                    raise EncodingError(f"Header {name!r} must be base64 text")
                headers[name] = _decode(value)
            else:
                headers[name] = value

        try:
            return Message(_decode(schema.p), Properties(headers))
        except (ForbiddenClassError, EncryptedContentIntegrityError) as e:
            raise EncodingError(f"Invalid message headers: {e}") from e


def _encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _decode(value: str) -> bytes:
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError("Invalid base64 in encrypted content") from e
    # Unused bits before the padding must be zero
    if _encode(decoded) != value:
        raise EncodingError("Non-canonical base64 in encrypted content")
    return decoded
