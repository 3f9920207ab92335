"""
Directory service: player and court records.

Plain CRUD. The booking core consumes only the existence checks at the bottom
of this module.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from app.core.exceptions import NotFound
from app.models.court import Court
from app.models.player import Player
from app.schemas.court import CourtCreate, CourtUpdate
from app.schemas.player import PlayerCreate, PlayerUpdate
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_player(db: AsyncSession, player_data: PlayerCreate) -> Player:
    player = Player(**player_data.model_dump())
    db.add(player)
    await db.flush()
    await db.refresh(player)

    logger.info("player_created", player_id=player.id)
    return player


async def get_player(db: AsyncSession, player_id: int) -> Player:
    player = await db.get(Player, player_id)
    if not player:
        raise NotFound(f"Player {player_id} not found")
    return player


async def list_players(db: AsyncSession) -> list[Player]:
    result = await db.execute(select(Player).order_by(Player.id))
    return list(result.scalars().all())


async def update_player(db: AsyncSession, player_id: int, patch: PlayerUpdate) -> Player:
    player = await get_player(db, player_id)
    for field, value in patch.model_dump(exclude_unset=True).items():
        setattr(player, field, value)
    await db.flush()
    await db.refresh(player)
    return player


async def create_court(db: AsyncSession, court_data: CourtCreate) -> Court:
    """Create a court. Court names are unique."""
    court = Court(**court_data.model_dump())
    db.add(court)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.warning("court_create_failed", reason="name_exists", name=court_data.name)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Court name '{court_data.name}' already exists",
        )
    await db.refresh(court)

    logger.info("court_created", court_id=court.id, name=court.name)
    return court


async def get_court(db: AsyncSession, court_id: int) -> Court:
    court = await db.get(Court, court_id)
    if not court:
        raise NotFound(f"Court {court_id} not found")
    return court


async def list_courts(db: AsyncSession, active_only: bool = False) -> list[Court]:
    query = select(Court).order_by(Court.id)
    if active_only:
        query = query.where(Court.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_court(db: AsyncSession, court_id: int, patch: CourtUpdate) -> Court:
    court = await get_court(db, court_id)
    for field, value in patch.model_dump(exclude_unset=True).items():
        setattr(court, field, value)
    await db.flush()
    await db.refresh(court)

    logger.info("court_updated", court_id=court.id, is_active=court.is_active)
    return court


async def court_is_active(db: AsyncSession, court_id: int) -> bool:
    result = await db.execute(select(Court.is_active).where(Court.id == court_id))
    return bool(result.scalar_one_or_none())


async def player_exists(db: AsyncSession, player_id: int) -> bool:
    result = await db.execute(select(Player.id).where(Player.id == player_id))
    return result.scalar_one_or_none() is not None
