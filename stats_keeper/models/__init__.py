from stats_keeper.models.statistic import StatisticRecord, from_record, to_record
