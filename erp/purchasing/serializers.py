import logging

from django.db import transaction
from rest_framework import serializers

from erp.branches.models import Branch
from erp.catalog.models import Item
from erp.core.money import document_totals, fx_total
from erp.core.serializers import validate_line_items
from erp.core.utils import create_audit_log, next_document_number
from erp.inventory.imei import collect_imeis, record_imei_event, register_imei
from erp.inventory.models import ImeiInventory
from erp.inventory.serializers import ImeiLineMixin
from .models import PurchaseOrder, PurchaseOrderLineItem, PurchaseOrderDraft, PurchaseOrderDraftItem

logger = logging.getLogger(__name__)


class PurchaseOrderLineItemSerializer(ImeiLineMixin, serializers.ModelSerializer):
    class Meta:
        model = PurchaseOrderLineItem
        fields = ['id', 'item_name', 'quantity', 'price_kwd', 'fx_price', 'total_kwd', 'imei_numbers']
        read_only_fields = ['total_kwd']
        extra_kwargs = {'quantity': {'min_value': 1}}


class PurchaseOrderDraftItemSerializer(ImeiLineMixin, serializers.ModelSerializer):
    class Meta:
        model = PurchaseOrderDraftItem
        fields = ['id', 'item_name', 'quantity', 'price_kwd', 'fx_price', 'total_kwd', 'imei_numbers']
        read_only_fields = ['total_kwd']
        extra_kwargs = {'quantity': {'min_value': 1}}


def _check_supplier(supplier):
    if supplier is not None and supplier.party_type != 'supplier':
        raise serializers.ValidationError({'supplier': f"{supplier.name} is not a supplier"})


def _check_imeis_not_in_stock(imeis):
    """New IMEIs on a purchase must not already be in inventory"""
    existing = ImeiInventory.objects.filter(imei__in=imeis)
    duplicates = list(existing.values_list('imei', flat=True))
    if duplicates:
        raise serializers.ValidationError({
            'error': f"IMEI already in inventory: {', '.join(sorted(duplicates))}"
        })


def register_purchase_imeis(purchase_order, lines, request=None, imeis_to_register=None):
    """Create inventory records for the IMEIs on a purchase order's lines"""
    branch = purchase_order.branch or Branch.get_default()
    user = getattr(request, 'user', None)
    registered = []
    for line in lines:
        for imei in line.imei_numbers or []:
            if imeis_to_register is not None and imei not in imeis_to_register:
                continue
            register_imei(
                imei,
                line.item_name,
                event_type='purchased',
                branch=branch,
                purchase_order=purchase_order,
                supplier=purchase_order.supplier,
                purchase_price_kwd=line.price_kwd,
                received_date=purchase_order.grn_date or purchase_order.purchase_date,
                reference_type='purchase_order',
                reference_id=purchase_order.id,
                user=user,
            )
            registered.append(imei)
    return registered


def create_purchase_lines(purchase_order, lines_data):
    lines = []
    for line_data in lines_data:
        Item.ensure(line_data['item_name'], purchase_price_kwd=line_data.get('price_kwd'),
                    purchase_price_fx=line_data.get('fx_price'), fx_currency=purchase_order.fx_currency)
        lines.append(PurchaseOrderLineItem.objects.create(purchase_order=purchase_order, **line_data))
    return lines


class PurchaseOrderSerializer(serializers.ModelSerializer):
    line_items = PurchaseOrderLineItemSerializer(many=True, read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)

    class Meta:
        model = PurchaseOrder
        fields = ['id', 'purchase_date', 'invoice_number', 'supplier', 'supplier_name', 'branch', 'branch_name',
                  'total_kwd', 'fx_currency', 'fx_rate', 'total_fx', 'grn_date',
                  'invoice_file_path', 'delivery_note_file_path', 'tt_copy_file_path', 'notes',
                  'line_items', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['total_kwd', 'total_fx', 'created_by', 'created_at', 'updated_at']

    def validate(self, attrs):
        _check_supplier(attrs.get('supplier'))
        lines = validate_line_items(self.context.get('items_data'), PurchaseOrderLineItemSerializer)
        if lines is not None:
            collect_imeis(lines)
        self._validated_lines = lines
        return attrs

    def create(self, validated_data):
        request = self.context.get('request')
        lines_data = getattr(self, '_validated_lines', None) or []
        fx_rate = validated_data.get('fx_rate')
        lines_data, total_kwd, total_fx = document_totals(lines_data, fx_rate)
        _check_imeis_not_in_stock(collect_imeis(lines_data))

        with transaction.atomic():
            purchase_order = PurchaseOrder.objects.create(total_kwd=total_kwd, total_fx=total_fx, **validated_data)
            lines = create_purchase_lines(purchase_order, lines_data)
            registered = register_purchase_imeis(purchase_order, lines, request=request)

            create_audit_log(
                request=request,
                action='create',
                model_name='PurchaseOrder',
                object_id=str(purchase_order.id),
                object_name=f"Purchase {purchase_order}",
                object_reference=purchase_order.invoice_number,
                imei=registered,
                changes={
                    'supplier': purchase_order.supplier.name if purchase_order.supplier else None,
                    'total_kwd': str(total_kwd),
                    'total_fx': str(total_fx) if total_fx is not None else None,
                    'line_count': len(lines),
                    'imei_count': len(registered),
                }
            )
        logger.info(f"Purchase order {purchase_order.id} created with {len(lines)} lines, total {total_kwd} KWD")
        return purchase_order

    def update(self, instance, validated_data):
        request = self.context.get('request')
        lines_data = getattr(self, '_validated_lines', None)

        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)

            if lines_data is not None:
                lines_data, total_kwd, _ = document_totals(lines_data)
                old_imeis = set(
                    imei
                    for line in instance.line_items.all()
                    for imei in (line.imei_numbers or [])
                )
                new_imeis = set(collect_imeis(lines_data))
                added = new_imeis - old_imeis
                removed = old_imeis - new_imeis
                _check_imeis_not_in_stock(list(added))

                for imei in sorted(removed):
                    record = ImeiInventory.objects.select_for_update().filter(imei=imei, purchase_order=instance).first()
                    if record is None:
                        continue
                    if not record.is_available:
                        raise serializers.ValidationError({
                            'error': f"IMEI {imei} is {record.status} and cannot be removed from this purchase"
                        })
                    record_imei_event(record, 'purchase_removed', reference_type='purchase_order',
                                      reference_id=instance.id, user=getattr(request, 'user', None),
                                      notes='Removed from purchase order lines')

                instance.line_items.all().delete()
                lines = create_purchase_lines(instance, lines_data)
                register_purchase_imeis(instance, lines, request=request, imeis_to_register=added)

                # Kept units follow the edited line's item name and cost
                for line in lines:
                    kept = [imei for imei in (line.imei_numbers or []) if imei not in added]
                    if kept:
                        ImeiInventory.objects.filter(imei__in=kept, purchase_order=instance).update(
                            item_name=line.item_name, purchase_price_kwd=line.price_kwd
                        )
                instance.total_kwd = total_kwd
                change_note = {'imeis_added': sorted(added), 'imeis_removed': sorted(removed)}
            else:
                change_note = {}

            instance.total_fx = fx_total(instance.total_kwd, instance.fx_rate)
            instance.save()

            create_audit_log(
                request=request,
                action='update',
                model_name='PurchaseOrder',
                object_id=str(instance.id),
                object_name=f"Purchase {instance}",
                object_reference=instance.invoice_number,
                changes={
                    'fields': sorted(validated_data.keys()),
                    'total_kwd': str(instance.total_kwd),
                    **change_note,
                }
            )
        return instance


class PurchaseOrderListSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    line_count = serializers.IntegerField(source='line_items.count', read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = ['id', 'purchase_date', 'invoice_number', 'supplier', 'supplier_name', 'branch',
                  'total_kwd', 'fx_currency', 'fx_rate', 'total_fx', 'grn_date', 'line_count', 'created_at']


class PurchaseOrderDraftSerializer(serializers.ModelSerializer):
    line_items = PurchaseOrderDraftItemSerializer(many=True, read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)

    class Meta:
        model = PurchaseOrderDraft
        fields = ['id', 'po_number', 'po_date', 'status', 'supplier', 'supplier_name', 'branch',
                  'total_kwd', 'fx_currency', 'fx_rate', 'total_fx', 'notes',
                  'invoice_file_path', 'delivery_note_file_path', 'tt_copy_file_path',
                  'converted_to_purchase', 'line_items', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['total_kwd', 'total_fx', 'converted_to_purchase', 'created_by', 'created_at', 'updated_at']
        extra_kwargs = {'po_number': {'required': False}}

    def validate_status(self, value):
        if value == 'converted':
            raise serializers.ValidationError("Use the convert action to convert a draft")
        return value

    def validate(self, attrs):
        if self.instance is not None and self.instance.status == 'converted':
            raise serializers.ValidationError({'error': 'Converted purchase order drafts cannot be edited'})
        _check_supplier(attrs.get('supplier'))
        lines = validate_line_items(self.context.get('items_data'), PurchaseOrderDraftItemSerializer)
        if lines is not None:
            collect_imeis(lines)
        self._validated_lines = lines
        return attrs

    def create(self, validated_data):
        request = self.context.get('request')
        lines_data = getattr(self, '_validated_lines', None) or []
        lines_data, total_kwd, total_fx = document_totals(lines_data, validated_data.get('fx_rate'))
        if not validated_data.get('po_number'):
            validated_data['po_number'] = next_document_number(PurchaseOrderDraft, 'po_number', 'PO')

        with transaction.atomic():
            draft = PurchaseOrderDraft.objects.create(total_kwd=total_kwd, total_fx=total_fx, **validated_data)
            for line_data in lines_data:
                PurchaseOrderDraftItem.objects.create(draft=draft, **line_data)
            create_audit_log(
                request=request,
                action='create',
                model_name='PurchaseOrderDraft',
                object_id=str(draft.id),
                object_name=f"PO Draft {draft.po_number}",
                object_reference=draft.po_number,
                changes={'total_kwd': str(total_kwd), 'line_count': len(lines_data)}
            )
        return draft

    def update(self, instance, validated_data):
        lines_data = getattr(self, '_validated_lines', None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            if lines_data is not None:
                lines_data, total_kwd, _ = document_totals(lines_data)
                instance.line_items.all().delete()
                for line_data in lines_data:
                    PurchaseOrderDraftItem.objects.create(draft=instance, **line_data)
                instance.total_kwd = total_kwd
            instance.total_fx = fx_total(instance.total_kwd, instance.fx_rate)
            instance.save()
        return instance


class DraftStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c in PurchaseOrderDraft.STATUS_CHOICES if c[0] != 'converted'])


class DraftConvertSerializer(serializers.Serializer):
    invoice_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    grn_date = serializers.DateField(required=False, allow_null=True)
    purchase_date = serializers.DateField(required=False, allow_null=True)
