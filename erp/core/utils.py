"""Utility functions for audit logging, document numbering and query parsing"""
import logging
import re
from datetime import datetime

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None,
                     imei=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, convert, imei_event, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., item name, invoice number)
        object_reference: Reference identifier (e.g., invoice number, PO number)
        imei: IMEI number(s) if applicable
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or object_id is None:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        if isinstance(imei, (list, tuple)):
            imei = ','.join(imei)

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            imei=imei[:1000] if imei else None,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def next_document_number(model, field, prefix, width=4):
    """
    Next sequential document number such as PO-0001 or INV-0042.

    Scans existing values that start with ``prefix-`` and returns the highest
    numeric suffix plus one, zero padded to ``width`` digits.
    """
    pattern = re.compile(rf'^{re.escape(prefix)}-(\d+)$')
    max_number = 0
    values = model.objects.filter(**{f'{field}__startswith': f'{prefix}-'}).values_list(field, flat=True)
    for value in values:
        match = pattern.match(value or '')
        if match:
            max_number = max(max_number, int(match.group(1)))
    return f"{prefix}-{str(max_number + 1).zfill(width)}"


def parse_date_param(value):
    """Parse a YYYY-MM-DD query parameter. Returns None for empty or malformed input."""
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        return None


def parse_int_param(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def limit_offset_page(request, rows):
    """
    Apply ``limit``/``offset`` query parameters to a queryset or list.

    Returns ``(page, meta)`` where meta is ``{'count', 'limit', 'offset'}``,
    or ``(rows, None)`` when no limit was requested.
    """
    limit = parse_int_param(request.query_params.get('limit'))
    if limit is None or limit <= 0:
        return rows, None
    offset = max(parse_int_param(request.query_params.get('offset'), 0), 0)
    count = rows.count() if hasattr(rows, 'count') and not isinstance(rows, list) else len(rows)
    return rows[offset:offset + limit], {'count': count, 'limit': limit, 'offset': offset}
