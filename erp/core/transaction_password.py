"""
Transaction password guarding destructive operations.

The password is stored hashed in the ``settings`` table. When it is set,
deletes of financial documents must carry it in the ``X-Transaction-Password``
header or as ``transaction_password`` in the request body.
"""
import logging

from django.contrib.auth.hashers import check_password, make_password
from rest_framework import status
from rest_framework.response import Response

from .models import Setting

logger = logging.getLogger(__name__)

TRANSACTION_PASSWORD_KEY = 'transaction_password'
MIN_LENGTH = 4


def get_password_hash():
    return Setting.objects.filter(key=TRANSACTION_PASSWORD_KEY).values_list('value', flat=True).first()


def is_password_set():
    return bool(get_password_hash())


def set_password(raw_password):
    Setting.objects.update_or_create(
        key=TRANSACTION_PASSWORD_KEY,
        defaults={
            'value': make_password(raw_password),
            'description': 'Hashed password required for destructive transactions',
        }
    )


def clear_password():
    Setting.objects.filter(key=TRANSACTION_PASSWORD_KEY).delete()


def verify_password(raw_password):
    password_hash = get_password_hash()
    if not password_hash:
        return True
    if not raw_password:
        return False
    return check_password(raw_password, password_hash)


def password_from_request(request):
    header_value = request.META.get('HTTP_X_TRANSACTION_PASSWORD')
    if header_value:
        return header_value
    data = getattr(request, 'data', None)
    if hasattr(data, 'get'):
        value = data.get('transaction_password')
        if value:
            return value
    return request.query_params.get('transaction_password')


def check_transaction_password(request):
    """
    Return None when the request may proceed, or a 403 Response otherwise.

    Usage in a view::

        denied = check_transaction_password(request)
        if denied:
            return denied
    """
    if not is_password_set():
        return None
    raw_password = password_from_request(request)
    if not raw_password:
        return Response({'error': 'Transaction password required'}, status=status.HTTP_403_FORBIDDEN)
    if not verify_password(raw_password):
        logger.warning(f"Invalid transaction password supplied by user {getattr(request.user, 'username', None)}")
        return Response({'error': 'Invalid transaction password'}, status=status.HTTP_403_FORBIDDEN)
    return None
