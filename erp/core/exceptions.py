import logging

from django.db import IntegrityError
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """DRF exception handler that maps database integrity errors to 400 responses"""
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    view_name = (getattr(view, '__name__', None) or view.__class__.__name__) if view else 'unknown'

    if isinstance(exc, ProtectedError):
        logger.warning(f"Protected delete refused in {view_name}: {exc}")
        return Response(
            {'error': 'This record is referenced by other records and cannot be deleted'},
            status=status.HTTP_400_BAD_REQUEST
        )
    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error in {view_name}: {exc}")
        return Response({'error': f'Database integrity error: {exc}'}, status=status.HTTP_400_BAD_REQUEST)

    logger.exception(f"Unhandled error in {view_name}: {exc}")
    return None
