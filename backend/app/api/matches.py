"""FastAPI endpoints for pet interests and matches."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from app.domain.matches import service
from app.domain.matches.schemas import (
	IncomingInterestList,
	InterestSummary,
	MatchSummary,
	ResolveInterestRequest,
	ResolveResult,
	SendInterestRequest,
)
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/matches", tags=["matches"])


@router.post("/interests", response_model=InterestSummary, status_code=status.HTTP_201_CREATED)
async def send_interest_endpoint(
	payload: SendInterestRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> InterestSummary:
	return await service.send_interest(auth_user, payload)


@router.put("/interests/{interest_id}", response_model=ResolveResult)
async def resolve_interest_endpoint(
	interest_id: str,
	payload: ResolveInterestRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ResolveResult:
	return await service.resolve_interest(auth_user, interest_id, payload)


@router.get("/interests/incoming", response_model=IncomingInterestList)
async def list_incoming_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> IncomingInterestList:
	return await service.list_incoming(auth_user)


@router.get("", response_model=List[MatchSummary])
async def list_matches_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[MatchSummary]:
	return await service.list_matches(auth_user)
