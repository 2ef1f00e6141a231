"""Resource views handed to index permission checks."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class IndexAbstractionType(StrEnum):
    CONCRETE_INDEX = "concrete_index"
    ALIAS = "alias"
    DATA_STREAM = "data_stream"


class IndexAbstraction(BaseModel):
    """A named index, alias or data stream."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: IndexAbstractionType = IndexAbstractionType.CONCRETE_INDEX
