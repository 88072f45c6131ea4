from stats_keeper.services.statistic_service import StatisticService
