from stats_keeper.core.config import Settings, get_settings
