import sys
from os import environ

from loguru import logger


def format_error(ex: BaseException) -> str:
    try:
        from traceback import TracebackException
        return ''.join(TracebackException.from_exception(ex).format())
    except Exception:
        import traceback
        return ''.join(traceback.format_exception(type(ex), ex, ex.__traceback__))


def get_client_info() -> tuple[str, str]:
    client_name = environ.get('CLIENT_NAME', 'live-room')

    parts = environ.get('BUILD_COMMIT', '').split('-')
    commit_id = parts[1] if len(parts) > 1 else 'dev'

    return client_name, commit_id


def init_logger(debug: bool | None = None):
    """Replace loguru's default sink with the house stderr format."""
    if debug is None:
        from live_room.app_config import get_app_environ_config
        debug = get_app_environ_config().DEBUG

    logger.remove()

    client_name, commit_id = get_client_info()

    if debug:
        logger_level = 'DEBUG'
        logger_format = (
            f'<yellow>{client_name}:{commit_id}</yellow> | '
            '<green>{time:MM-DD HH:mm:ss.SSS}</green> | '
            '<level>{level: <8}</level> | '
            '<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | '
            '<level>{message}</level>'
        )
    else:
        logger_level = 'INFO'
        logger_format = (
            f'{client_name}:{commit_id} | '
            '{time:MM-DD HH:mm:ss.SSS} | '
            '{level: <8} | '
            '{name}:{function}:{line} | '
            '{message}'
        )
    logger.add(sys.stderr, level=logger_level, format=logger_format)
