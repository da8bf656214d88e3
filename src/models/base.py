from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StoredModel(BaseModel):
    """
    Base for every persisted record.

    Field names are snake_case in memory and in stored items; camelCase
    aliases are used on the HTTP wire. ``to_item``/``from_item`` are the only
    conversions between models and stored items.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_item(self) -> dict[str, Any]:
        item = self.model_dump(by_alias=False)
        return {key: _to_storage(value) for key, value in item.items()}

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> Self:
        return cls.model_validate(item)


def _to_storage(value: Any) -> Any:
    # DynamoDB rejects floats and has no datetime type
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, list):
        return [_to_storage(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_storage(v) for k, v in value.items()}
    return value
