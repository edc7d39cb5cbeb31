"""
Unit tests for encrypted messages and the stored JSON format.

Tests cover:
- Header short names and accessors
- Header overwrite and type restrictions
- Message immutability and equality
- Serialization format, nesting and validation of stored text
"""
import base64
import json

import pytest

from fieldcrypt.errors import EncodingError, EncryptedContentIntegrityError, ForbiddenClassError
from fieldcrypt.services.message import Message, Properties
from fieldcrypt.services.message_serializer import MessageSerializer


# =============================================================================
# Properties
# =============================================================================


class TestProperties:
    """Tests for message headers."""

    def test_long_names_are_stored_short(self):
        """Well-known headers use their short names."""
        props = Properties(auth_tag=b"t" * 16, encrypted_data_key_id="ab12", encoding="utf-8")

        assert set(props) == {"at", "i", "e"}
        assert props.auth_tag == b"t" * 16
        assert props.encrypted_data_key_id == "ab12"
        assert props.encoding == "utf-8"

    def test_missing_headers_read_as_none(self):
        """Accessors return None for absent headers."""
        props = Properties()

        assert props.iv is None
        assert props.encrypted_data_key is None
        assert len(props) == 0

    def test_none_values_are_skipped(self):
        """None header values are not stored."""
        props = Properties(i=None, e="utf-8")

        assert "i" not in props

    def test_overwrite_raises(self):
        """Adding an existing header raises."""
        props = Properties(i="ab12")

        with pytest.raises(EncryptedContentIntegrityError, match="can't be overwritten"):
            props.with_values(encrypted_data_key_id="cd34")

    def test_binary_header_requires_bytes(self):
        """iv and at only hold bytes."""
        with pytest.raises(ForbiddenClassError):
            Properties(iv="not-bytes")

    def test_text_header_rejects_bytes(self):
        """Other headers can't hold raw bytes."""
        with pytest.raises(ForbiddenClassError):
            Properties(i=b"ab12")

    def test_unsupported_value_type_raises(self):
        """Only str, bool, int, bytes and messages are allowed."""
        with pytest.raises(ForbiddenClassError):
            Properties(custom=1.5)

    def test_with_values_returns_copy(self):
        """Adding headers leaves the original untouched."""
        props = Properties(e="utf-8")
        extended = props.with_values(i="ab12")

        assert "i" not in props
        assert extended.encrypted_data_key_id == "ab12"

    def test_equality_with_mapping(self):
        """Properties compare equal to plain mappings with the same content."""
        assert Properties(e="utf-8") == {"e": "utf-8"}


# =============================================================================
# Message
# =============================================================================


class TestMessage:
    """Tests for the Message value type."""

    def test_payload_must_be_bytes(self):
        """A text payload is refused."""
        with pytest.raises(ForbiddenClassError):
            Message("payload")

    def test_with_headers_returns_new_message(self):
        """Messages are immutable."""
        message = Message(b"payload", {"iv": b"i" * 12})
        tagged = message.with_headers({"i": "ab12"})

        assert "i" not in message.headers
        assert tagged.headers.encrypted_data_key_id == "ab12"
        assert tagged.payload == message.payload

    def test_equality_and_hash(self):
        """Equal payloads and headers make equal messages."""
        a = Message(b"payload", {"e": "utf-8"})
        b = Message(b"payload", {"e": "utf-8"})

        assert a == b
        assert hash(a) == hash(b)
        assert a != Message(b"other", {"e": "utf-8"})


# =============================================================================
# Serializer
# =============================================================================


class TestMessageSerializer:
    """Tests for MessageSerializer."""

    @pytest.fixture
    def serializer(self):
        return MessageSerializer()

    @pytest.fixture
    def message(self):
        return Message(b"ciphertext", {"iv": b"\x01" * 12, "at": b"\x02" * 16, "i": "ab12"})

    def test_dump_format(self, serializer, message):
        """Stored text is {"p": base64, "h": {...}} with base64 binary headers."""
        data = json.loads(serializer.dump(message))

        assert set(data) == {"p", "h"}
        assert base64.b64decode(data["p"]) == b"ciphertext"
        assert base64.b64decode(data["h"]["iv"]) == b"\x01" * 12
        assert data["h"]["i"] == "ab12"

    def test_round_trip(self, serializer, message):
        """load(dump(m)) == m."""
        assert serializer.load(serializer.dump(message)) == message

    def test_nested_message_round_trip(self, serializer, message):
        """Nested messages in headers are serialized as nested objects."""
        outer = Message(b"outer", {"iv": b"\x03" * 12, "at": b"\x04" * 16, "k": message})

        dumped = serializer.dump(outer)
        data = json.loads(dumped)
        loaded = serializer.load(dumped)

        assert isinstance(data["h"]["k"], dict)
        assert loaded.headers.encrypted_data_key == message

    def test_flag_and_integer_headers(self, serializer):
        """Boolean and integer headers keep their types."""
        message = Message(b"x", {"compressed": True, "version": 2})

        loaded = serializer.load(serializer.dump(message))

        assert loaded.headers["compressed"] is True
        assert loaded.headers["version"] == 2

    def test_load_accepts_any_header_order(self, serializer):
        """Header order in stored text doesn't matter."""
        text = json.dumps({"h": {"i": "ab12", "iv": base64.b64encode(b"\x01" * 12).decode()}, "p": ""})

        loaded = serializer.load(text)

        assert loaded.payload == b""
        assert loaded.headers.iv == b"\x01" * 12

    def test_dump_rejects_non_message(self, serializer):
        """Only messages can be serialized."""
        with pytest.raises(ForbiddenClassError):
            serializer.dump({"p": "x"})

    @pytest.mark.parametrize(
        "text",
        [
            "hello@example.com",
            "",
            "[]",
            '{"p": "eA==", "h": {}, "x": 1}',
            '{"p": "not base64!", "h": {}}',
            '{"p": "eA==", "h": {"iv": 5}}',
            '{"p": "eA==", "h": {"i": ["list"]}}',
            '{"p": 1, "h": {}}',
        ],
    )
    def test_load_rejects_invalid_text(self, serializer, text):
        """Anything but a well-formed message raises EncodingError."""
        with pytest.raises(EncodingError):
            serializer.load(text)

    @pytest.mark.parametrize("payload", ["eB==", "eAF="])
    def test_load_rejects_non_canonical_base64(self, serializer, payload):
        """Base64 with nonzero bits before the padding raises EncodingError."""
        with pytest.raises(EncodingError, match="Non-canonical"):
            serializer.load(json.dumps({"p": payload, "h": {}}))

    def test_load_rejects_non_text(self, serializer):
        """Non-text input raises EncodingError."""
        with pytest.raises(EncodingError):
            serializer.load(12345)

    def test_load_rejects_message_in_binary_header(self, serializer):
        """A nested object where bytes are expected is invalid."""
        text = json.dumps({"p": "eA==", "h": {"iv": {"p": "eA==", "h": {}}}})

        with pytest.raises(EncodingError):
            serializer.load(text)
