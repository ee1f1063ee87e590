"""Pydantic schemas for block endpoints."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class BlockRequest(BaseModel):
	target_user_id: str = Field(..., min_length=1)


class BlockListResponse(BaseModel):
	blocked_user_ids: List[str]
