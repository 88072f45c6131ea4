import asyncio
import uuid
from typing import Awaitable, Iterable, List, Optional, TypeVar

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stats_keeper.core import get_settings
from stats_keeper.core.errors import internal, not_found
from stats_keeper.logs import api_logger, debug_logger, log_operation
from stats_keeper.models.statistic import StatisticRecord, from_record, to_record
from stats_keeper.schemas.statistic import StatisticEntity, component_kind
from stats_keeper.services.update_engine import compute_update

settings = get_settings()

T = TypeVar("T")

NOT_FOUND_MESSAGE = "statistic not found"


async def _store_call(call: Awaitable[T], timeout: Optional[float], action: str) -> T:
    """
    Одно обращение к хранилищу вместе с чтением строк результата.

    Таймаут, ошибки БД и ошибки декодирования записи превращаются в INTERNAL.
    """
    if timeout is None:
        timeout = settings.STORE_TIMEOUT
    try:
        return await asyncio.wait_for(call, max(timeout, 0))
    except asyncio.TimeoutError as e:
        api_logger.error(f"Store call timed out after {timeout}s while {action}")
        raise internal("error %s: deadline exceeded", action, cause=e) from e
    except SQLAlchemyError as e:
        api_logger.error(f"Store error while {action}: {e}")
        raise internal("error %s: %s", action, e, cause=e) from e
    except ValueError as e:
        # JSONDecodeError при чтении слота и ValidationError при проекции
        api_logger.error(f"Cannot decode statistic while {action}: {e}")
        raise internal("error decoding statistic: %s", e, cause=e) from e


def _project(record: StatisticRecord) -> StatisticEntity:
    try:
        return from_record(record)
    except ValidationError as e:
        api_logger.error(f"Cannot decode statistic {record.id}: {e}")
        raise internal("error decoding statistic: %s", e, cause=e) from e


class StatisticService:
    """Хранилище статистик пользователей"""

    @staticmethod
    @log_operation()
    async def create(
        db: AsyncSession,
        entity: StatisticEntity,
        timeout: Optional[float] = None,
    ) -> StatisticEntity:
        """Создать статистику. Переданный id игнорируется, новый генерируется всегда."""
        record = to_record(entity)
        record.id = uuid.uuid4().hex
        created = _project(record)

        async def insert():
            db.add(record)
            await db.commit()

        await _store_call(insert(), timeout, "creating statistic")
        return created

    @staticmethod
    @log_operation()
    async def get(
        db: AsyncSession,
        entity_id: str,
        timeout: Optional[float] = None,
    ) -> StatisticEntity:
        """Статистика по id. Удаленная считается ненайденной."""
        query = select(StatisticRecord).where(
            StatisticRecord.id == entity_id,
            StatisticRecord.active(),
        )

        async def find_one():
            result = await db.execute(query)
            record = result.scalars().first()
            return _project(record) if record is not None else None

        found = await _store_call(find_one(), timeout, "getting statistic from database")
        if found is None:
            raise not_found(NOT_FOUND_MESSAGE)
        return found

    @staticmethod
    @log_operation()
    async def update(
        db: AsyncSession,
        fields: Iterable[str],
        values: StatisticEntity,
        timeout: Optional[float] = None,
    ) -> StatisticEntity:
        """
        Частичное обновление по маске полей.

        Сначала проверяется существование (NOT_FOUND важнее остальных ошибок),
        потом маска. Чтение и запись не в одной транзакции: при конкурентных
        обновлениях побеждает последний. ``timeout`` ограничивает всю операцию,
        запись получает только время, оставшееся после чтения.
        """
        fields = list(fields)
        if timeout is None:
            timeout = settings.STORE_TIMEOUT
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        current = await StatisticService.get(db, values.id, timeout=timeout)
        staged = compute_update(fields, component_kind(current), values)

        stmt = (
            update(StatisticRecord)
            .where(StatisticRecord.id == values.id, StatisticRecord.active())
            .values(**staged)
            .returning(StatisticRecord)
            .execution_options(synchronize_session=False, populate_existing=True)
        )

        async def find_and_update():
            result = await db.execute(stmt)
            # Состояние после обновления, а не до
            record = result.scalars().first()
            updated = _project(record) if record is not None else None
            await db.commit()
            return updated

        updated = await _store_call(find_and_update(), deadline - loop.time(), "updating statistic")
        if updated is None:
            # Удалили между чтением и записью
            raise not_found(NOT_FOUND_MESSAGE)
        return updated

    @staticmethod
    @log_operation()
    async def delete(
        db: AsyncSession,
        entity_id: str,
        timeout: Optional[float] = None,
    ) -> None:
        """Мягкое удаление. Повторное удаление дает NOT_FOUND."""
        stmt = (
            update(StatisticRecord)
            .where(StatisticRecord.id == entity_id, StatisticRecord.active())
            .values(deleted=True)
            .returning(StatisticRecord.id)
            .execution_options(synchronize_session=False)
        )

        async def mark_deleted():
            result = await db.execute(stmt)
            marked = result.scalars().first()
            await db.commit()
            return marked

        marked = await _store_call(mark_deleted(), timeout, "deleting statistic")
        if marked is None:
            raise not_found(NOT_FOUND_MESSAGE)
        debug_logger.debug(f"Статистика {entity_id} помечена удаленной")

    @staticmethod
    @log_operation()
    async def list_by_user(
        db: AsyncSession,
        user_id: str,
        timeout: Optional[float] = None,
    ) -> List[StatisticEntity]:
        """Все неудаленные статистики пользователя, порядок не гарантирован"""
        query = select(StatisticRecord).where(
            StatisticRecord.user_id == user_id,
            StatisticRecord.active(),
        )

        async def find_many():
            result = await db.execute(query)
            return [_project(record) for record in result.scalars().all()]

        return await _store_call(find_many(), timeout, "listing statistics")
