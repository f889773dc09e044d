from rest_framework import status
from rest_framework.response import Response


class ResponseFormatterMixin(object):
    """
        A mixin for Django REST Framework API views that provides a response formatter
        method for handling data, errors, warnings and status codes.
    """

    def format_response(self, data=None, errors=None, status_code=None, warnings=None):
        """
            Formats a response based on success, data, errors, and status code.

            Args:
                data (Optional[List or Dict]): Data to include in the response.
                errors (Optional[List or Dict]): Errors to include in the response.
                status_code (int, optional): The HTTP status code to use.
                warnings (Optional[List]): Non fatal notes about the operation,
                    eg. an adjustment that was floored at zero.

            Returns:
                rest_framework.response.Response: The formatted response object.
        """

        if data and errors:
            # Partial success: some data processed with errors
            response_data, status_code = self.handle_complex_data(data, errors, status_code)
        elif not errors and not data:
            response_data, status_code = self.handle_null_response(status_code)
        elif data:
            response_data, status_code = self.handle_data(data, status_code)
        else:
            response_data, status_code = self.handle_errors(errors, status_code)

        total = 0
        if data:
            total = len(data) if isinstance(data, list) else 1
        response_data['meta_data'] = {
            'success': False if errors else True,
            'total': total,
            'status_code': status_code,
        }
        if warnings:
            response_data['warnings'] = warnings
        return Response(response_data, status=status_code)

    def handle_complex_data(self, data, errors, status_code=None):
        status_code = status_code or status.HTTP_207_MULTI_STATUS
        response_data = {"data": data, "errors": errors}
        return response_data, status_code

    def handle_null_response(self, status_code=None):
        status_code = status_code or status.HTTP_200_OK
        response_data = {"data": [], "errors": []}
        return response_data, status_code

    def handle_data(self, data, status_code=None):
        status_code = status_code or status.HTTP_200_OK
        response_data = {"data": data}
        return response_data, status_code

    def handle_errors(self, errors, status_code=None):
        status_code = status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
        if not errors:
            errors = {"message": "Internal server error"}
        response_data = {"errors": errors}
        return response_data, status_code
