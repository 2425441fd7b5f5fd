"""Pydantic schema for conversation turns stored in the history ledger."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

Role = Literal["user", "system", "assistant"]


class ConversationTurn(BaseModel):
    role: Role
    content: str

    model_config = ConfigDict(frozen=True)
