from stats_keeper.logs.server_log import api_logger
from stats_keeper.logs.debug_log import debug_logger, log_operation
