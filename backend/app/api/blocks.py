"""FastAPI endpoints for blocking users."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.domain.blocks import service
from app.domain.blocks.schemas import BlockListResponse, BlockRequest
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/blocks", tags=["blocks"])


@router.post("")
async def block_endpoint(
	payload: BlockRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, str]:
	await service.block(auth_user, payload.target_user_id)
	return {"status": "ok"}


@router.post("/remove")
async def unblock_endpoint(
	payload: BlockRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, str]:
	await service.unblock(auth_user, payload.target_user_id)
	return {"status": "ok"}


@router.get("", response_model=BlockListResponse)
async def list_blocks_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> BlockListResponse:
	return BlockListResponse(blocked_user_ids=await service.list_blocked(auth_user))
