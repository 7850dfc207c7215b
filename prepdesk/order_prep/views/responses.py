"""
Response envelope shared by the Order Preparation views.
"""

from rest_framework import status
from rest_framework.response import Response

from ..exceptions import BusinessException


def success_response(data, status_code=status.HTTP_200_OK, **extra):
    body = {'success': True, 'data': data}
    body.update(extra)
    return Response(body, status=status_code)


def error_response(exc: BusinessException):
    return Response({
        'success': False,
        'error': {
            'code': exc.code,
            'message': exc.message,
            'details': exc.details,
        }
    }, status=exc.http_status)
