from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field


class GameSave(BaseModel):
    """
    Default persisted state: a small, JSON-friendly game save.

    Fields
    - level: current level index (starts at 1).
    - score: accumulated score.
    - unlocked: identifiers of unlocked items/areas, in unlock order.
    - flags: free-form boolean switches (e.g., {"tutorial_done": True}).

    Notes
    - Any pydantic model can be persisted by the engine; this one is used
      when the caller does not supply its own.
    - Everything must round-trip through JSON, since the text and encrypted
      formats store `model_dump(mode="json")`.
    """

    level: int = Field(default=1, ge=1, description="Current level")
    score: int = Field(default=0, description="Accumulated score")
    unlocked: List[str] = Field(default_factory=list, description="Unlocked ids")
    flags: Dict[str, bool] = Field(
        default_factory=dict,
        description="Map of named switches to their state",
    )

    @classmethod
    def empty(cls) -> "GameSave":
        """Convenience constructor for a fresh save."""
        return cls()
