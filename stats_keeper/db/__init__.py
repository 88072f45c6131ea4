from stats_keeper.db.database import get_async_session, init_db
