"""
SQLAlchemy column type for encrypted fields.

Encrypts on bind (write) and decrypts on result (read) through an
EncryptedAttributeType, so models work with clear values while the column
holds serialized messages.

Example:
    email_type = EncryptedAttributeType(
        EncryptionScheme.build(settings, deterministic=True, downcase=True)
    )

    class Person(Base):
        __tablename__ = "people"
        id: Mapped[int] = mapped_column(primary_key=True)
        email: Mapped[str] = mapped_column(EncryptedType(email_type))

    # Deterministic fields can be filtered by equality
    session.execute(select(Person).where(Person.email == "hello@example.com"))
"""
from typing import Any, Optional

from sqlalchemy.types import Text, TypeDecorator

from fieldcrypt.services.encrypted_attribute_type import EncryptedAttributeType


class EncryptedType(TypeDecorator):
    """Text column whose values are encrypted with an EncryptedAttributeType."""

    impl = Text
    cache_ok = True

    def __init__(self, attribute_type: EncryptedAttributeType, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.attribute_type = attribute_type

    def process_bind_param(self, value: Any, dialect) -> Optional[str]:
        if value is None:
            return None
        return self.attribute_type.serialize(value)

    def process_result_value(self, value: Optional[str], dialect) -> Any:
        if value is None:
            return None
        return self.attribute_type.deserialize(value)

    def compare_values(self, x: Any, y: Any) -> bool:
        # Values compared here are already clear values
        return self.attribute_type.subtype.equals(x, y)

    def __repr__(self) -> str:
        return f"EncryptedType({self.attribute_type!r})"
