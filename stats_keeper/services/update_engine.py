"""
Частичное обновление статистики по маске полей.

Политика для каждого имени в маске описана в одной таблице FIELD_MASK_POLICY.
Неизвестные имена игнорируются. Вид компонента (COUNTER/DATE) у статистики
не меняется никогда.
"""
import enum
from typing import Any, Dict, Iterable, NamedTuple, Optional

from stats_keeper.core.errors import invalid_argument, no_update
from stats_keeper.models.statistic import component_slot, dump_component
from stats_keeper.schemas.statistic import ComponentType, StatisticEntity


class FieldRole(enum.Enum):
    IMMUTABLE = "immutable"
    SCALAR = "scalar"
    COMPONENT = "component"


class FieldRule(NamedTuple):
    role: FieldRole
    kind: Optional[ComponentType] = None


FIELD_MASK_POLICY: Dict[str, FieldRule] = {
    "id": FieldRule(FieldRole.IMMUTABLE),
    "user_id": FieldRule(FieldRole.IMMUTABLE),
    "owner_id": FieldRule(FieldRole.IMMUTABLE),
    "name": FieldRule(FieldRole.SCALAR),
    "counter": FieldRule(FieldRole.COMPONENT, ComponentType.COUNTER),
    "date": FieldRule(FieldRole.COMPONENT, ComponentType.DATE),
}


def compute_update(
    fields: Iterable[str],
    current_kind: ComponentType,
    values: StatisticEntity,
) -> Dict[str, Any]:
    """
    Вычислить набор колонок для записи.

    Возвращает словарь {колонка: значение}. Бросает StorageError:
    INVALID_ARGUMENT при попытке изменить id/user_id или сменить вид
    компонента, NO_UPDATE если менять нечего.
    """
    rules = [(field, FIELD_MASK_POLICY.get(field)) for field in fields]

    # Идентификаторы проверяем до всего остального
    if any(rule is not None and rule.role == FieldRole.IMMUTABLE for _, rule in rules):
        raise invalid_argument("fields 'id', 'user_id' cannot be modified")

    staged: Dict[str, Any] = {}
    candidate_slot = component_slot(values)

    for field, rule in rules:
        if rule is None:
            continue
        if rule.role == FieldRole.SCALAR:
            staged[field] = getattr(values, field)
        elif rule.role == FieldRole.COMPONENT:
            if current_kind != rule.kind:
                raise invalid_argument(
                    "component cannot be changed from %s to %s",
                    current_kind.value,
                    rule.kind.value,
                )
            # Компонент другого вида в values просто ничего не меняет
            if candidate_slot == field:
                staged[field] = dump_component(values.component)

    if not staged:
        raise no_update("no update possible")
    return staged
