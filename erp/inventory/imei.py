"""
IMEI lifecycle.

Every status change of a serialized unit goes through ``record_imei_event``,
which checks the transition table below and appends an ``ImeiEvent``. Events
are never updated or deleted, so the event log is the unit's full history.
"""
import logging
import re

from rest_framework import serializers

from erp.core.utils import create_audit_log
from .models import ImeiInventory, ImeiEvent, AVAILABLE_STATUSES

logger = logging.getLogger(__name__)

IMEI_PATTERN = re.compile(r'^\d{15}$')

# event_type -> (statuses the unit may be in, status afterwards)
# None as the "from" side means the unit must not exist yet;
# None as the "to" side means the inventory record is removed.
IMEI_TRANSITIONS = {
    'purchased': (None, 'in_stock'),
    'opening_stock': (None, 'in_stock'),
    'sold': (AVAILABLE_STATUSES, 'sold'),
    'sale_cancelled': (('sold',), 'in_stock'),
    'sale_returned': (('sold',), 'returned'),
    'sale_return_reversed': (('returned', 'defective'), 'sold'),
    'transferred': (AVAILABLE_STATUSES, 'transferred'),
    'marked_defective': (AVAILABLE_STATUSES, 'defective'),
    'sent_to_warranty': (AVAILABLE_STATUSES + ('defective',), 'warranty'),
    'warranty_received': (('warranty',), 'in_stock'),
    'purchase_returned': (AVAILABLE_STATUSES + ('defective',), 'supplier_returned'),
    'purchase_return_reversed': (('supplier_returned',), 'in_stock'),
    'purchase_removed': (AVAILABLE_STATUSES, None),
}

# Events a user may post directly against a unit
MANUAL_EVENTS = ('marked_defective', 'sent_to_warranty', 'warranty_received')


def validate_imei(value):
    """Return the trimmed IMEI or raise a ValidationError"""
    imei = str(value or '').strip()
    if not IMEI_PATTERN.match(imei):
        raise serializers.ValidationError({'error': f"Invalid IMEI '{imei}': must be exactly 15 digits"})
    return imei


def clean_imei_list(values):
    """Validate a list of IMEIs: 15 digits each, no duplicates. Blank entries are dropped."""
    if values is None:
        return []
    if isinstance(values, str):
        values = re.split(r'[\s,]+', values)
    cleaned = []
    seen = set()
    for value in values:
        if value is None or str(value).strip() == '':
            continue
        imei = validate_imei(value)
        if imei in seen:
            raise serializers.ValidationError({'error': f"Duplicate IMEI '{imei}'"})
        seen.add(imei)
        cleaned.append(imei)
    return cleaned


def collect_imeis(lines):
    """All IMEIs across line dicts, checking for duplicates between lines"""
    all_imeis = []
    seen = set()
    for line in lines:
        for imei in line.get('imei_numbers') or []:
            if imei in seen:
                raise serializers.ValidationError({'error': f"Duplicate IMEI '{imei}'"})
            seen.add(imei)
            all_imeis.append(imei)
    return all_imeis


def can_transition(current_status, event_type):
    allowed_from, _to_status = IMEI_TRANSITIONS[event_type]
    if allowed_from is None:
        return current_status is None
    return current_status in allowed_from


def _write_event(record, imei_number, event_type, from_status, to_status, branch=None,
                 reference_type=None, reference_id=None, user=None, notes=''):
    return ImeiEvent.objects.create(
        imei=record,
        imei_number=imei_number,
        event_type=event_type,
        from_status=from_status,
        to_status=to_status,
        branch=branch,
        reference_type=reference_type,
        reference_id=reference_id,
        created_by=user if user and user.is_authenticated else None,
        notes=notes or '',
    )


def register_imei(imei, item_name, event_type='purchased', branch=None, purchase_order=None,
                  supplier=None, purchase_price_kwd=None, received_date=None,
                  reference_type=None, reference_id=None, user=None, notes=''):
    """Bring a new unit into inventory as in_stock"""
    if IMEI_TRANSITIONS.get(event_type, (True,))[0] is not None:
        raise ValueError(f"{event_type} is not an inventory entry event")
    imei = validate_imei(imei)
    existing = ImeiInventory.objects.filter(imei=imei).first()
    if existing:
        raise serializers.ValidationError({
            'error': f"IMEI {imei} is already in inventory ({existing.get_status_display()})"
        })
    record = ImeiInventory.objects.create(
        imei=imei,
        item_name=item_name,
        status='in_stock',
        branch=branch,
        purchase_order=purchase_order,
        supplier=supplier,
        purchase_price_kwd=purchase_price_kwd,
        received_date=received_date,
    )
    _write_event(record, imei, event_type, None, 'in_stock', branch=branch,
                 reference_type=reference_type, reference_id=reference_id, user=user, notes=notes)
    return record


def record_imei_event(imei, event_type, branch=None, sales_order=None, reference_type=None,
                      reference_id=None, user=None, notes=''):
    """
    Apply ``event_type`` to a unit and append it to the event log.

    ``imei`` may be an ImeiInventory instance or an IMEI string. Raises a
    ValidationError when the unit does not exist or the event is not allowed
    from its current status. Returns the updated record, or None when the
    event removes the unit from inventory.
    """
    if event_type not in IMEI_TRANSITIONS:
        raise serializers.ValidationError({'error': f"Unknown IMEI event '{event_type}'"})

    if isinstance(imei, ImeiInventory):
        record = imei
    else:
        imei = str(imei).strip()
        record = ImeiInventory.objects.select_for_update().filter(imei=imei).first()
        if record is None:
            raise serializers.ValidationError({'error': f"IMEI {imei} not found in inventory"})

    allowed_from, to_status = IMEI_TRANSITIONS[event_type]
    if allowed_from is None:
        raise serializers.ValidationError({'error': f"IMEI {record.imei} already exists; cannot apply {event_type}"})
    from_status = record.status
    if from_status not in allowed_from:
        raise serializers.ValidationError({
            'error': f"IMEI {record.imei} is {from_status}; cannot apply {event_type}"
        })

    imei_number = record.imei
    event_branch = branch or record.branch

    if to_status is None:
        _write_event(None, imei_number, event_type, from_status, None, branch=event_branch,
                     reference_type=reference_type, reference_id=reference_id, user=user, notes=notes)
        record.delete()
        logger.info(f"IMEI {imei_number} removed from inventory ({event_type})")
        return None

    record.status = to_status
    if event_type == 'sold':
        record.sales_order = sales_order
    elif event_type == 'sale_cancelled':
        record.sales_order = None
    if branch is not None:
        record.branch = branch
    record.save()

    _write_event(record, imei_number, event_type, from_status, to_status, branch=event_branch,
                 reference_type=reference_type, reference_id=reference_id, user=user, notes=notes)
    logger.debug(f"IMEI {imei_number}: {from_status} -> {to_status} ({event_type})")
    return record


def apply_manual_event(request, imei, event_type, branch=None, notes=''):
    """Apply a user-initiated event (defective / warranty) and audit it"""
    if event_type not in MANUAL_EVENTS:
        raise serializers.ValidationError({
            'error': f"Event must be one of: {', '.join(MANUAL_EVENTS)}"
        })
    record = ImeiInventory.objects.select_for_update().filter(imei=imei).first()
    if record is None:
        raise serializers.ValidationError({'error': f"IMEI {imei} not found in inventory"})
    old_status = record.status
    record = record_imei_event(record, event_type, branch=branch, reference_type='manual',
                               user=request.user, notes=notes)
    create_audit_log(
        request=request,
        action='imei_event',
        model_name='ImeiInventory',
        object_id=str(record.id),
        object_name=record.item_name,
        object_reference=record.imei,
        imei=record.imei,
        changes={
            'event_type': event_type,
            'status': {'old': old_status, 'new': record.status},
            'notes': notes,
        }
    )
    return record
