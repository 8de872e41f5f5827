"""Deal model: the owning context every document is scoped to."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class Deal(BaseModel):
    """A deal in the pipeline.

    Only the fields the document engine needs are modelled here.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Annotated[int, Field(description="Deal primary key")]
    name: Annotated[str, Field(min_length=1, description="Deal (company) name")]
    created_at: Annotated[datetime, Field(description="Creation timestamp")]
