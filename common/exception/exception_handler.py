import logging

from quart import jsonify

from common.exception.exceptions import RescueConsoleException, StorageError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """
    Render console exceptions as JSON with their specific reason,
    so staff can tell whether a decision was recorded.
    """

    @app.errorhandler(RescueConsoleException)
    async def handle_console_exception(error: RescueConsoleException):
        if isinstance(error, StorageError):
            logger.error(f"{error.error_code}: {error.message}")
        else:
            logger.info(f"{error.error_code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code
