from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from stats_keeper.db.database import get_async_session
from stats_keeper.schemas.statistic import (
    ListUserStatisticsResponse,
    StatisticEntity,
    UpdateStatisticRequest,
)
from stats_keeper.services.statistic_service import StatisticService

router = APIRouter(
    prefix="/statistics",
    tags=["statistics"],
)


@router.get("", response_model=ListUserStatisticsResponse)
async def list_user_statistics(
    user_id: str = "",
    db: AsyncSession = Depends(get_async_session),
):
    """Все статистики пользователя"""
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="user_id cannot be empty"
        )

    entities = await StatisticService.list_by_user(db=db, user_id=user_id)
    return ListUserStatisticsResponse(entities=entities)


@router.get("/{entity_id}", response_model=StatisticEntity)
async def get_statistic(
    entity_id: str,
    db: AsyncSession = Depends(get_async_session),
):
    """Статистика по ID"""
    return await StatisticService.get(db=db, entity_id=entity_id)


@router.put("", response_model=StatisticEntity)
async def add_statistic(
    entity: StatisticEntity,
    db: AsyncSession = Depends(get_async_session),
):
    """Создание новой статистики"""
    if not entity.name or not entity.user_id or entity.component is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="name, user_id and component cannot be empty"
        )

    return await StatisticService.create(db=db, entity=entity)


@router.post("/update", response_model=StatisticEntity)
async def update_statistic(
    request: UpdateStatisticRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Частичное обновление статистики по маске полей"""
    if request.fields is None or not request.fields.paths or request.values is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="fields.paths and values must be non-empty or non-null"
        )

    return await StatisticService.update(
        db=db,
        fields=request.fields.paths,
        values=request.values,
    )


@router.delete("/{entity_id}")
async def delete_statistic(
    entity_id: str,
    db: AsyncSession = Depends(get_async_session),
):
    """Удаление статистики (мягкое)"""
    await StatisticService.delete(db=db, entity_id=entity_id)
    return {}
