def run():
    """
    Run before every entry point:
        leaderboard service consumers
        scripts
        test session
    """
    from loguru import logger

    from src.common.logs import configure_logging

    configure_logging()
    configure_models()

    logger.info('application setup complete ✅')


def configure_models():
    """
    When using declarative we need to run this for our entry points
    to have context on our models / relationships example when
    traversing "usagedaily.user_id" as a foreign key
    """
    from src.common.model import import_model_modules

    import_model_modules()


def create_tables():
    """
    Creates any missing tables for the configured database. Schema
    migrations are owned by the storage layer, this only bootstraps
    empty local and test databases.
    """
    from src.common.model import BaseModel
    from src.network.database.session import get_engine

    configure_models()
    BaseModel.metadata.create_all(get_engine())


def drop_tables():
    """
    Drops every table known to the models. Local and test databases only.
    """
    from src import settings
    from src.common.model import BaseModel
    from src.network.database.session import get_engine

    if settings.IS_DEPLOYED_ENV:
        raise Exception('🛑 STOP! 🛑 You likely did not mean to do this on a deployed environment...')

    configure_models()
    BaseModel.metadata.drop_all(get_engine())
