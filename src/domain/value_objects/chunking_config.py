"""Chunking configuration value object."""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChunkingConfig(BaseModel):
    """Token budgets for splitting a transcript into chunks.

    Tokens are estimated at four characters each; see
    ``src.application.services.chunking.estimate_tokens``.
    """

    model_config = ConfigDict(frozen=True)

    target_tokens: int = Field(
        default=400,
        ge=1,
        description="Emit a chunk once adding the next segment would exceed this",
    )
    min_tokens: int = Field(
        default=100,
        ge=0,
        description="A trailing chunk below this is merged into its predecessor",
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> Self:
        if self.min_tokens > self.target_tokens:
            raise ValueError("min_tokens must not exceed target_tokens")
        return self
