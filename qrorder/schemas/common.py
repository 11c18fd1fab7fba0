from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# KRW has no minor unit, so amounts travel as JSON integers.
Amount = Annotated[
    Decimal, PlainSerializer(lambda value: int(value), return_type=int, when_used="json")
]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


__all__ = ["Amount", "CamelModel"]
