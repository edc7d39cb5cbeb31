"""
Pydantic schema for the stored (serialized) form of an encrypted message.

Stored values look like:
    {"p":"<base64 payload>","h":{"iv":"<base64>","at":"<base64>","i":"ab12"}}

Envelope encryption nests the encrypted data key as a full message under "k".
"""
from typing import Dict, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr


class SerializedMessage(BaseModel):
    """JSON shape of an encrypted message."""

    p: StrictStr = Field(description="Base64-encoded ciphertext payload")
    h: Dict[StrictStr, Union[StrictBool, StrictInt, StrictStr, "SerializedMessage"]] = Field(
        default_factory=dict,
        description="Unencrypted headers (binary values base64-encoded)",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)


SerializedMessage.model_rebuild()
