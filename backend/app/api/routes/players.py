"""
Player directory endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.player import PlayerCreate, PlayerUpdate, PlayerResponse
from app.services import directory_service

router = APIRouter(prefix="/players", tags=["Players"])


@router.post("/", response_model=PlayerResponse, status_code=status.HTTP_201_CREATED)
async def create_player(player_data: PlayerCreate, db: AsyncSession = Depends(get_db)):
    return await directory_service.create_player(db, player_data)


@router.get("/", response_model=list[PlayerResponse])
async def list_players(db: AsyncSession = Depends(get_db)):
    return await directory_service.list_players(db)


@router.get("/{player_id}", response_model=PlayerResponse)
async def get_player(player_id: int, db: AsyncSession = Depends(get_db)):
    return await directory_service.get_player(db, player_id)


@router.patch("/{player_id}", response_model=PlayerResponse)
async def update_player(player_id: int, patch: PlayerUpdate, db: AsyncSession = Depends(get_db)):
    return await directory_service.update_player(db, player_id, patch)
