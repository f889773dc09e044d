import logging

from rest_framework.exceptions import APIException

from configurations.base_features.exceptions.base_exceptions import LocalBaseException

logger = logging.getLogger(__name__)


class BaseExceptionHandlerMixin:
    def handle_exception(self, e):
        if isinstance(e, LocalBaseException):
            e.log("warning" if e.status_code < 500 else "error")
            return self.format_response(errors=e.to_dict(), status_code=e.status_code)

        if isinstance(e, APIException):
            error = e.detail
            status_code = e.status_code
        else:
            logger.exception("Unhandled error in %s", self.__class__.__name__)
            error = str(e)
            status_code = 500

        if isinstance(error, dict) or isinstance(error, list):
            return self.format_response(errors=error, status_code=status_code)
        return self.format_response(errors={"error": error}, status_code=status_code)
