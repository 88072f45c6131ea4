from typing import Any, Dict, Optional

from sqlalchemy import Boolean, Column, JSON, String

from stats_keeper.db.base import Base
from stats_keeper.schemas.statistic import (
    ComponentCounter,
    ComponentDate,
    ComponentType,
    StatisticEntity,
    component_kind,
)


class StatisticRecord(Base):
    """
    Хранимая запись статистики.

    Хранилище не умеет в tagged union, поэтому компонент лежит в одном из двух
    слотов: ``counter`` или ``date``. Заполнен максимум один. Имена колонок
    совпадают с уже существующими данными и меняться не должны.
    """

    __tablename__ = "statistics"

    id = Column("_id", String(64), primary_key=True)
    name = Column(String, nullable=False, default="")
    user_id = Column(String, nullable=False, index=True)
    counter = Column(JSON(none_as_null=True), nullable=True)
    date = Column(JSON(none_as_null=True), nullable=True)
    # Мягкое удаление: запись остается в базе, но не видна при чтении
    deleted = Column(Boolean, nullable=False, default=False)

    @classmethod
    def active(cls):
        """Фильтр неудаленных записей, общий для всех путей чтения"""
        return cls.deleted.isnot(True)

    def __repr__(self):
        return f"<StatisticRecord id={self.id!r} user_id={self.user_id!r} deleted={self.deleted}>"


def dump_component(component) -> Dict[str, Any]:
    """Компонент в формате слота, без поля kind"""
    return component.model_dump(mode="json", exclude={"kind"})


def component_slot(entity: StatisticEntity) -> Optional[str]:
    """Имя слота записи для активного компонента"""
    kind = component_kind(entity)
    if kind == ComponentType.COUNTER:
        return "counter"
    if kind == ComponentType.DATE:
        return "date"
    return None


def to_record(entity: StatisticEntity) -> StatisticRecord:
    record = StatisticRecord(
        id=entity.id,
        name=entity.name,
        user_id=entity.user_id,
        counter=None,
        date=None,
        deleted=False,
    )
    slot = component_slot(entity)
    if slot is not None:
        setattr(record, slot, dump_component(entity.component))
    return record


def from_record(record: StatisticRecord) -> StatisticEntity:
    # Запись без обоих слотов возможна только как битые данные, компонент остается None
    component = None
    if record.counter is not None:
        component = ComponentCounter.model_validate(record.counter)
    elif record.date is not None:
        component = ComponentDate.model_validate(record.date)

    return StatisticEntity(
        id=record.id,
        name=record.name or "",
        user_id=record.user_id,
        component=component,
    )
