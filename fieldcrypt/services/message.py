"""
Wire-level encrypted message.

A Message is a ciphertext payload plus a set of unencrypted headers. It is
self-describing: decrypting it needs nothing beyond a key provider. Messages
and their headers are immutable; "adding" headers returns new instances.

Well-known header names are kept short since every encrypted column pays for
them in storage:
    iv  initialization vector
    at  authentication tag
    k   encrypted data key (a nested Message, envelope encryption)
    i   id of the key that encrypted the message or data key
    e   encoding of the clear text
"""

from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Union

from fieldcrypt.errors import EncryptedContentIntegrityError, ForbiddenClassError

HeaderValue = Union[str, bytes, bool, int, "Message"]

SHORT_NAMES = {
    "iv": "iv",
    "auth_tag": "at",
    "encrypted_data_key": "k",
    "encrypted_data_key_id": "i",
    "encoding": "e",
}

# Raw byte headers; every other header holds text, flags or nested messages
BINARY_HEADERS = frozenset({"iv", "at"})


class Properties(Mapping[str, HeaderValue]):
    """Read-only header mapping that refuses overwrites and unsupported values."""

    __slots__ = ("_data",)

    def __init__(self, initial: Optional[Mapping[str, Any]] = None, **values: Any):
        data = {}
        for source in (initial or {}), values:
            for name, value in source.items():
                _add(data, name, value)
        self._data = MappingProxyType(data)

    def __getitem__(self, name: str) -> HeaderValue:
        return self._data[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Properties):
            return dict(self._data) == dict(other._data)
        if isinstance(other, Mapping):
            return dict(self._data) == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._data.items(), key=lambda item: item[0])))

    def __repr__(self) -> str:
        return f"Properties({sorted(self._data)})"

    def with_values(self, **values: Any) -> "Properties":
        """Return a copy with extra headers, using long or short names."""
        return Properties(self._data, **{_short(name): value for name, value in values.items()})

    def merged(self, other: Mapping[str, Any]) -> "Properties":
        """Return a copy with every header of other added."""
        return Properties(self._data, **dict(other))

    @property
    def iv(self) -> Optional[bytes]:
        return self._data.get("iv")

    @property
    def auth_tag(self) -> Optional[bytes]:
        return self._data.get("at")

    @property
    def encrypted_data_key(self) -> Optional["Message"]:
        return self._data.get("k")

    @property
    def encrypted_data_key_id(self) -> Optional[str]:
        return self._data.get("i")

    @property
    def encoding(self) -> Optional[str]:
        return self._data.get("e")


def _short(name: str) -> str:
    return SHORT_NAMES.get(name, name)


def _add(data: dict, name: str, value: Any) -> None:
    if value is None:
        return
    if not isinstance(name, str):
        raise ForbiddenClassError(f"Header names must be strings, got {type(name).__name__}")
    name = _short(name)
    if name in BINARY_HEADERS:
        valid = isinstance(value, bytes)
    else:
        valid = isinstance(value, (str, bool, int, Message))
    if not valid:
        raise ForbiddenClassError(
            f"Can't store a {type(value).__name__} in header {name!r}"
        )
    if name in data:
        raise EncryptedContentIntegrityError(f"Header {name!r} can't be overwritten")
    data[name] = value


class Message:
    """Ciphertext payload plus unencrypted headers."""

    __slots__ = ("_payload", "_headers")

    def __init__(self, payload: bytes, headers: Optional[Mapping[str, Any]] = None):
        if not isinstance(payload, bytes):
            raise ForbiddenClassError(
                f"Message payload must be bytes, got {type(payload).__name__}"
            )
        self._payload = payload
        self._headers = headers if isinstance(headers, Properties) else Properties(headers)

    @property
    def payload(self) -> bytes:
        return self._payload

    @property
    def headers(self) -> Properties:
        return self._headers

    def with_headers(self, headers: Mapping[str, Any]) -> "Message":
        """Return a new message carrying the extra headers."""
        return Message(self._payload, self._headers.merged(headers))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Message):
            return NotImplemented
        return self._payload == other._payload and self._headers == other._headers

    def __hash__(self) -> int:
        return hash((self._payload, self._headers))

    def __repr__(self) -> str:
        return f"<Message payload={len(self._payload)}B headers={sorted(self._headers)}>"
