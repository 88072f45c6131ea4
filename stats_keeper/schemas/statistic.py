import enum
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class ComponentType(str, enum.Enum):
    """Вид компонента статистики"""
    NONE = "NONE"
    COUNTER = "COUNTER"
    DATE = "DATE"


class ComponentCounter(BaseModel):
    """Счетчик: одно целое число"""
    kind: Literal["counter"] = "counter"
    count: int = Field(0, ge=INT64_MIN, le=INT64_MAX, description="Текущее значение счетчика")


class ComponentDate(BaseModel):
    """Список отметок времени, порядок сохраняется"""
    kind: Literal["date"] = "date"
    timestamps: List[datetime] = Field(default_factory=list, description="Отметки времени")


Component = Annotated[Union[ComponentCounter, ComponentDate], Field(discriminator="kind")]


class StatisticEntity(BaseModel):
    """Статистика пользователя с одним компонентом"""
    id: str = Field("", description="Идентификатор, назначается при создании")
    name: str = Field("", description="Название статистики")
    user_id: str = Field("", description="ID владельца")
    component: Optional[Component] = Field(None, description="Счетчик или список дат")


def component_kind(entity: StatisticEntity) -> ComponentType:
    """Вид активного компонента, NONE если компонент не задан"""
    if isinstance(entity.component, ComponentCounter):
        return ComponentType.COUNTER
    if isinstance(entity.component, ComponentDate):
        return ComponentType.DATE
    return ComponentType.NONE


class FieldMask(BaseModel):
    """Список изменяемых полей"""
    paths: List[str] = Field(default_factory=list)


class UpdateStatisticRequest(BaseModel):
    """Запрос частичного обновления статистики"""
    fields: Optional[FieldMask] = None
    values: Optional[StatisticEntity] = None


class ListUserStatisticsResponse(BaseModel):
    entities: List[StatisticEntity]


class ApiError(BaseModel):
    """Тело ответа с ошибкой"""
    message: str
    error: Optional[str] = None
