from stats_keeper.schemas.statistic import (
    ComponentCounter,
    ComponentDate,
    ComponentType,
    StatisticEntity,
    component_kind,
)
