import logging

from django.db import transaction
from rest_framework import serializers

from erp.core.money import document_totals
from erp.core.serializers import validate_line_items
from erp.core.utils import create_audit_log, next_document_number
from .imei import clean_imei_list, collect_imeis, record_imei_event, register_imei
from .models import (
    ImeiInventory, ImeiEvent, Return, ReturnLineItem,
    StockTransfer, StockTransferLineItem, InventoryAdjustment,
)

logger = logging.getLogger(__name__)


class ImeiLineMixin:
    """Line serializers carrying an imei_numbers list"""

    def validate_imei_numbers(self, value):
        return clean_imei_list(value)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        imeis = attrs.get('imei_numbers') or []
        quantity = attrs.get('quantity')
        if quantity is None:
            attrs['quantity'] = len(imeis) or 1
        elif len(imeis) > quantity:
            raise serializers.ValidationError({
                'imei_numbers': f"{len(imeis)} IMEIs given for a quantity of {quantity}"
            })
        return attrs


class ImeiEventSerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = ImeiEvent
        fields = ['id', 'imei_number', 'event_type', 'from_status', 'to_status', 'branch', 'branch_name',
                  'reference_type', 'reference_id', 'notes', 'created_by_username', 'created_at']
        read_only_fields = fields


class ImeiInventorySerializer(serializers.ModelSerializer):
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    invoice_number = serializers.CharField(source='sales_order.invoice_number', read_only=True, default=None)

    class Meta:
        model = ImeiInventory
        fields = ['id', 'imei', 'item_name', 'status', 'branch', 'branch_name', 'purchase_order',
                  'sales_order', 'invoice_number', 'supplier', 'supplier_name', 'purchase_price_kwd',
                  'received_date', 'created_at', 'updated_at']
        read_only_fields = fields


class ImeiDetailSerializer(ImeiInventorySerializer):
    events = ImeiEventSerializer(many=True, read_only=True)

    class Meta(ImeiInventorySerializer.Meta):
        fields = ImeiInventorySerializer.Meta.fields + ['events']
        read_only_fields = fields


class ImeiEventCreateSerializer(serializers.Serializer):
    event_type = serializers.CharField()
    branch = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


# Returns

class ReturnLineItemSerializer(ImeiLineMixin, serializers.ModelSerializer):
    class Meta:
        model = ReturnLineItem
        fields = ['id', 'item_name', 'quantity', 'price_kwd', 'total_kwd', 'imei_numbers', 'condition']
        read_only_fields = ['total_kwd']
        extra_kwargs = {'quantity': {'min_value': 1}}


class ReturnSerializer(serializers.ModelSerializer):
    line_items = ReturnLineItemSerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source='customer.name', read_only=True, default=None)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)

    class Meta:
        model = Return
        fields = ['id', 'return_number', 'return_date', 'return_type', 'customer', 'customer_name',
                  'supplier', 'supplier_name', 'branch', 'total_kwd', 'notes', 'line_items',
                  'created_by', 'created_at']
        read_only_fields = ['total_kwd', 'created_by', 'created_at']
        extra_kwargs = {'return_number': {'required': False}}

    def validate(self, attrs):
        if self.instance is not None:
            if self.context.get('items_data') is not None:
                raise serializers.ValidationError({'error': 'Return lines cannot be edited; delete and re-create the return'})
            for locked in ('return_type', 'customer', 'supplier'):
                if locked in attrs and attrs[locked] != getattr(self.instance, locked):
                    raise serializers.ValidationError({locked: 'Cannot be changed after the return is recorded'})
            return attrs

        return_type = attrs.get('return_type', 'sale_return')
        customer = attrs.get('customer')
        supplier = attrs.get('supplier')
        if return_type == 'sale_return':
            if customer is None:
                raise serializers.ValidationError({'customer': 'Customer is required for sale returns'})
            if customer.party_type != 'customer':
                raise serializers.ValidationError({'customer': f"{customer.name} is not a customer"})
            attrs['supplier'] = None
        else:
            if supplier is None:
                raise serializers.ValidationError({'supplier': 'Supplier is required for purchase returns'})
            if supplier.party_type != 'supplier':
                raise serializers.ValidationError({'supplier': f"{supplier.name} is not a supplier"})
            attrs['customer'] = None

        lines = validate_line_items(self.context.get('items_data'), ReturnLineItemSerializer) or []
        if not lines:
            raise serializers.ValidationError({'line_items': 'At least one line item is required'})
        collect_imeis(lines)
        self._validated_lines = lines
        return attrs

    def _apply_imei_events(self, return_order, lines):
        user = getattr(self.context.get('request'), 'user', None)
        is_sale_return = return_order.return_type == 'sale_return'
        for line in lines:
            for imei in line.imei_numbers or []:
                record = ImeiInventory.objects.select_for_update().select_related('sales_order').filter(imei=imei).first()
                if record is None:
                    raise serializers.ValidationError({'error': f"IMEI {imei} not found in inventory"})
                if is_sale_return:
                    if record.sales_order and record.sales_order.customer_id != return_order.customer_id:
                        raise serializers.ValidationError({'error': f"IMEI {imei} was not sold to this customer"})
                    record_imei_event(record, 'sale_returned', branch=return_order.branch,
                                      reference_type='return', reference_id=return_order.id, user=user)
                    if line.condition == 'defective':
                        record_imei_event(record, 'marked_defective', reference_type='return',
                                          reference_id=return_order.id, user=user,
                                          notes='Returned defective by customer')
                else:
                    if record.supplier_id and record.supplier_id != return_order.supplier_id:
                        raise serializers.ValidationError({'error': f"IMEI {imei} was not bought from this supplier"})
                    record_imei_event(record, 'purchase_returned', reference_type='return',
                                      reference_id=return_order.id, user=user)

    def create(self, validated_data):
        request = self.context.get('request')
        lines_data, total_kwd, _ = document_totals(getattr(self, '_validated_lines', []))
        if not validated_data.get('return_number'):
            validated_data['return_number'] = next_document_number(Return, 'return_number', 'RET')

        with transaction.atomic():
            return_order = Return.objects.create(total_kwd=total_kwd, **validated_data)
            lines = [ReturnLineItem.objects.create(return_order=return_order, **line_data) for line_data in lines_data]
            self._apply_imei_events(return_order, lines)
            imeis = collect_imeis([{'imei_numbers': line.imei_numbers} for line in lines])
            create_audit_log(
                request=request,
                action='return',
                model_name='Return',
                object_id=str(return_order.id),
                object_name=f"{return_order.get_return_type_display()} {return_order.return_number}",
                object_reference=return_order.return_number,
                imei=imeis,
                changes={
                    'return_type': return_order.return_type,
                    'party': return_order.party.name if return_order.party else None,
                    'total_kwd': str(total_kwd),
                    'imei_count': len(imeis),
                }
            )
        logger.info(f"Return {return_order.return_number} recorded ({return_order.return_type}, {total_kwd} KWD)")
        return return_order


def reverse_return_imeis(return_order, user=None):
    """
    Undo the IMEI events of a return before it is deleted.

    Every unit must still be in the state the return left it in; otherwise
    the return cannot be deleted.
    """
    is_sale_return = return_order.return_type == 'sale_return'
    expected = ('returned', 'defective') if is_sale_return else ('supplier_returned',)
    event_type = 'sale_return_reversed' if is_sale_return else 'purchase_return_reversed'
    records = []
    for line in return_order.line_items.all():
        for imei in line.imei_numbers or []:
            record = ImeiInventory.objects.select_for_update().filter(imei=imei).first()
            if record is None:
                continue
            if record.status not in expected:
                raise serializers.ValidationError({
                    'error': f"IMEI {imei} is now {record.status}; the return cannot be deleted"
                })
            records.append(record)
    for record in records:
        record_imei_event(record, event_type, reference_type='return', reference_id=return_order.id,
                          user=user, notes=f"Return {return_order.return_number} deleted")
    return [record.imei for record in records]


# Stock transfers

class StockTransferLineItemSerializer(ImeiLineMixin, serializers.ModelSerializer):
    class Meta:
        model = StockTransferLineItem
        fields = ['id', 'item_name', 'quantity', 'imei_numbers']
        extra_kwargs = {'quantity': {'min_value': 1}}


class StockTransferSerializer(serializers.ModelSerializer):
    line_items = StockTransferLineItemSerializer(many=True, read_only=True)
    from_branch_name = serializers.CharField(source='from_branch.name', read_only=True)
    to_branch_name = serializers.CharField(source='to_branch.name', read_only=True)

    class Meta:
        model = StockTransfer
        fields = ['id', 'transfer_number', 'transfer_date', 'from_branch', 'from_branch_name',
                  'to_branch', 'to_branch_name', 'notes', 'line_items', 'created_by', 'created_at']
        read_only_fields = ['created_by', 'created_at']
        extra_kwargs = {'transfer_number': {'required': False}}

    def validate(self, attrs):
        if self.instance is not None:
            if self.context.get('items_data') is not None:
                raise serializers.ValidationError({'error': 'Transfer lines cannot be edited; delete and re-create the transfer'})
            for locked in ('from_branch', 'to_branch'):
                if locked in attrs and attrs[locked] != getattr(self.instance, locked):
                    raise serializers.ValidationError({locked: 'Cannot be changed after the transfer is recorded'})
            return attrs

        if attrs['from_branch'] == attrs['to_branch']:
            raise serializers.ValidationError({'to_branch': 'Source and destination branches must differ'})
        lines = validate_line_items(self.context.get('items_data'), StockTransferLineItemSerializer) or []
        if not lines:
            raise serializers.ValidationError({'line_items': 'At least one line item is required'})
        collect_imeis(lines)
        for line in lines:
            if line.get('imei_numbers'):
                line['quantity'] = len(line['imei_numbers'])
        self._validated_lines = lines
        return attrs

    def create(self, validated_data):
        request = self.context.get('request')
        user = getattr(request, 'user', None)
        if not validated_data.get('transfer_number'):
            validated_data['transfer_number'] = next_document_number(StockTransfer, 'transfer_number', 'TR')

        with transaction.atomic():
            transfer = StockTransfer.objects.create(**validated_data)
            moved = []
            for line_data in self._validated_lines:
                line = StockTransferLineItem.objects.create(stock_transfer=transfer, **line_data)
                for imei in line.imei_numbers or []:
                    record = ImeiInventory.objects.select_for_update().filter(imei=imei).first()
                    if record is None:
                        raise serializers.ValidationError({'error': f"IMEI {imei} not found in inventory"})
                    if record.branch_id != transfer.from_branch_id:
                        raise serializers.ValidationError({
                            'error': f"IMEI {imei} is not at branch {transfer.from_branch.name}"
                        })
                    record_imei_event(record, 'transferred', branch=transfer.to_branch,
                                      reference_type='stock_transfer', reference_id=transfer.id, user=user)
                    moved.append(imei)

            create_audit_log(
                request=request,
                action='stock_transfer',
                model_name='StockTransfer',
                object_id=str(transfer.id),
                object_name=f"Transfer {transfer.transfer_number}",
                object_reference=transfer.transfer_number,
                imei=moved,
                changes={
                    'from_branch': transfer.from_branch.name,
                    'to_branch': transfer.to_branch.name,
                    'line_count': len(self._validated_lines),
                    'imei_count': len(moved),
                }
            )
        logger.info(f"Stock transfer {transfer.transfer_number}: {transfer.from_branch} -> {transfer.to_branch}, {len(moved)} IMEIs")
        return transfer


def reverse_transfer_imeis(transfer, user=None):
    """Move a deleted transfer's units back to the source branch"""
    records = []
    for line in transfer.line_items.all():
        for imei in line.imei_numbers or []:
            record = ImeiInventory.objects.select_for_update().filter(imei=imei).first()
            if record is None:
                continue
            if record.status != 'transferred' or record.branch_id != transfer.to_branch_id:
                raise serializers.ValidationError({
                    'error': f"IMEI {imei} has moved on since the transfer; the transfer cannot be deleted"
                })
            records.append(record)
    for record in records:
        record_imei_event(record, 'transferred', branch=transfer.from_branch, reference_type='stock_transfer',
                          reference_id=transfer.id, user=user,
                          notes=f"Transfer {transfer.transfer_number} deleted")
    return [record.imei for record in records]


# Opening stock / adjustments

class InventoryAdjustmentSerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)

    class Meta:
        model = InventoryAdjustment
        fields = ['id', 'item', 'item_name', 'branch', 'quantity', 'unit_cost_kwd', 'effective_date',
                  'imei_numbers', 'notes', 'created_by', 'created_at']
        read_only_fields = ['created_by', 'created_at']
        extra_kwargs = {'quantity': {'required': False}}

    def validate_imei_numbers(self, value):
        return clean_imei_list(value)

    def validate(self, attrs):
        if self.instance is not None:
            if 'imei_numbers' in attrs and attrs['imei_numbers'] != self.instance.imei_numbers:
                raise serializers.ValidationError({'imei_numbers': 'IMEIs cannot be changed; delete and re-create the adjustment'})
            if self.instance.imei_numbers:
                # registered units carry the item, branch and cost of the adjustment
                for locked in ('item', 'branch', 'quantity', 'unit_cost_kwd'):
                    if locked in attrs and attrs[locked] != getattr(self.instance, locked):
                        raise serializers.ValidationError({
                            locked: 'Cannot be changed once IMEIs are registered; delete and re-create the adjustment'
                        })
                return attrs
            if 'quantity' in attrs and not attrs['quantity']:
                raise serializers.ValidationError({'quantity': 'Quantity must be non-zero'})
            return attrs

        imeis = attrs.get('imei_numbers') or []
        if imeis:
            attrs['quantity'] = len(imeis)
        elif not attrs.get('quantity'):
            raise serializers.ValidationError({'quantity': 'Quantity must be non-zero'})
        return attrs

    def create(self, validated_data):
        request = self.context.get('request')
        with transaction.atomic():
            adjustment = InventoryAdjustment.objects.create(**validated_data)
            for imei in adjustment.imei_numbers or []:
                register_imei(
                    imei,
                    adjustment.item.name,
                    event_type='opening_stock',
                    branch=adjustment.branch,
                    purchase_price_kwd=adjustment.unit_cost_kwd,
                    received_date=adjustment.effective_date,
                    reference_type='adjustment',
                    reference_id=adjustment.id,
                    user=getattr(request, 'user', None),
                )
            create_audit_log(
                request=request,
                action='create',
                model_name='InventoryAdjustment',
                object_id=str(adjustment.id),
                object_name=adjustment.item.name,
                imei=adjustment.imei_numbers,
                changes={'quantity': adjustment.quantity, 'unit_cost_kwd': str(adjustment.unit_cost_kwd)}
            )
        return adjustment
