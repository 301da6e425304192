"""Properties payload source models.

The caller's source identifier is resolved once, at the top of the
pipeline, into exactly one of two variants: read from standard input, or
read from a located path/URL.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class StdinSource(BaseModel):
    """Read the properties payload from the standard input stream."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["stdin"] = "stdin"

    def describe(self) -> str:
        return "<stdin>"


class LocatedSource(BaseModel):
    """Read the properties payload from a local path or URL."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["location"] = "location"
    location: str = Field(min_length=1)

    def describe(self) -> str:
        return self.location


PropsSource = Annotated[
    Union[StdinSource, LocatedSource],
    Field(discriminator="kind"),
]
