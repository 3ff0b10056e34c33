import logging

from django.db import transaction
from django.db.models import Sum
from rest_framework import serializers

from erp.core.money import document_totals, fx_total, to_decimal
from erp.core.serializers import validate_line_items
from erp.core.utils import create_audit_log, next_document_number
from erp.inventory.imei import collect_imeis, record_imei_event
from erp.inventory.models import ImeiInventory
from erp.inventory.serializers import ImeiLineMixin
from .models import SalesOrder, SalesOrderLineItem, Discount

logger = logging.getLogger(__name__)


class SalesOrderLineItemSerializer(ImeiLineMixin, serializers.ModelSerializer):
    class Meta:
        model = SalesOrderLineItem
        fields = ['id', 'item_name', 'quantity', 'price_kwd', 'total_kwd', 'imei_numbers']
        read_only_fields = ['total_kwd']
        extra_kwargs = {'quantity': {'min_value': 1}}


def sell_imeis(sales_order, imeis, user=None):
    """Mark units sold against an order; each must be in inventory and available"""
    for imei in imeis:
        record = ImeiInventory.objects.select_for_update().filter(imei=imei).first()
        if record is None:
            raise serializers.ValidationError({'error': f"IMEI {imei} not found in inventory"})
        if not record.is_available:
            raise serializers.ValidationError({
                'error': f"IMEI {imei} is {record.status} and cannot be sold"
            })
        record_imei_event(record, 'sold', sales_order=sales_order, reference_type='sales_order',
                          reference_id=sales_order.id, user=user)


def cancel_sold_imeis(sales_order, imeis, user=None, notes=''):
    """Put units sold by an order back in stock"""
    restored = []
    for imei in imeis:
        record = ImeiInventory.objects.select_for_update().filter(imei=imei, sales_order=sales_order).first()
        if record is None:
            continue
        if record.status != 'sold':
            raise serializers.ValidationError({
                'error': f"IMEI {imei} is {record.status}; reverse its return before changing this sale"
            })
        record_imei_event(record, 'sale_cancelled', reference_type='sales_order',
                          reference_id=sales_order.id, user=user, notes=notes)
        restored.append(imei)
    return restored


class SalesOrderSerializer(serializers.ModelSerializer):
    line_items = SalesOrderLineItemSerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source='customer.name', read_only=True, default=None)
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)

    class Meta:
        model = SalesOrder
        fields = ['id', 'sale_date', 'invoice_number', 'customer', 'customer_name', 'branch', 'branch_name',
                  'total_kwd', 'fx_currency', 'fx_rate', 'total_fx', 'delivery_date',
                  'invoice_file_path', 'delivery_note_file_path', 'payment_receipt_file_path', 'notes',
                  'line_items', 'created_by', 'created_at', 'updated_at']
        read_only_fields = ['total_kwd', 'total_fx', 'created_by', 'created_at', 'updated_at']
        extra_kwargs = {'invoice_number': {'required': False}}

    def validate_customer(self, value):
        if value is not None and value.party_type != 'customer':
            raise serializers.ValidationError(f"{value.name} is not a customer")
        return value

    def validate(self, attrs):
        lines = validate_line_items(self.context.get('items_data'), SalesOrderLineItemSerializer)
        if self.instance is None and not lines:
            raise serializers.ValidationError({'line_items': 'At least one line item is required'})
        if lines is not None:
            collect_imeis(lines)
        self._validated_lines = lines
        return attrs

    def create(self, validated_data):
        request = self.context.get('request')
        user = getattr(request, 'user', None)
        lines_data, total_kwd, total_fx = document_totals(self._validated_lines, validated_data.get('fx_rate'))
        if not validated_data.get('invoice_number'):
            validated_data['invoice_number'] = next_document_number(SalesOrder, 'invoice_number', 'INV')

        with transaction.atomic():
            sales_order = SalesOrder.objects.create(total_kwd=total_kwd, total_fx=total_fx, **validated_data)
            for line_data in lines_data:
                SalesOrderLineItem.objects.create(sales_order=sales_order, **line_data)
            imeis = collect_imeis(lines_data)
            sell_imeis(sales_order, imeis, user=user)

            create_audit_log(
                request=request,
                action='create',
                model_name='SalesOrder',
                object_id=str(sales_order.id),
                object_name=f"Invoice {sales_order.invoice_number}",
                object_reference=sales_order.invoice_number,
                imei=imeis,
                changes={
                    'customer': sales_order.customer.name if sales_order.customer else None,
                    'total_kwd': str(total_kwd),
                    'line_count': len(lines_data),
                    'imei_count': len(imeis),
                }
            )
        logger.info(f"Sales order {sales_order.invoice_number} created, total {total_kwd} KWD, {len(imeis)} IMEIs sold")
        return sales_order

    def update(self, instance, validated_data):
        request = self.context.get('request')
        user = getattr(request, 'user', None)
        lines_data = self._validated_lines

        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            change_note = {}

            if lines_data is not None:
                lines_data, total_kwd, _ = document_totals(lines_data)
                discounted = instance.discounts.aggregate(total=Sum('discount_amount'))['total'] or 0
                if to_decimal(discounted) > total_kwd:
                    raise serializers.ValidationError({
                        'error': f"Invoice total {total_kwd} would be less than its discounts of {discounted}"
                    })
                old_imeis = set(
                    imei
                    for line in instance.line_items.all()
                    for imei in (line.imei_numbers or [])
                )
                new_imeis = set(collect_imeis(lines_data))
                removed = sorted(old_imeis - new_imeis)
                added = sorted(new_imeis - old_imeis)
                cancel_sold_imeis(instance, removed, user=user, notes='Removed from sales order lines')
                instance.line_items.all().delete()
                for line_data in lines_data:
                    SalesOrderLineItem.objects.create(sales_order=instance, **line_data)
                sell_imeis(instance, added, user=user)
                instance.total_kwd = total_kwd
                change_note = {'imeis_added': added, 'imeis_removed': removed}

            instance.total_fx = fx_total(instance.total_kwd, instance.fx_rate)
            instance.save()

            create_audit_log(
                request=request,
                action='update',
                model_name='SalesOrder',
                object_id=str(instance.id),
                object_name=f"Invoice {instance.invoice_number}",
                object_reference=instance.invoice_number,
                changes={
                    'fields': sorted(validated_data.keys()),
                    'total_kwd': str(instance.total_kwd),
                    **change_note,
                }
            )
        return instance


class SalesOrderListSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source='customer.name', read_only=True, default=None)

    class Meta:
        model = SalesOrder
        fields = ['id', 'sale_date', 'invoice_number', 'customer', 'customer_name', 'branch',
                  'total_kwd', 'fx_currency', 'fx_rate', 'total_fx', 'delivery_date', 'created_at']


class DiscountSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source='customer.name', read_only=True)
    invoice_number = serializers.CharField(source='sales_order.invoice_number', read_only=True)

    class Meta:
        model = Discount
        fields = ['id', 'customer', 'customer_name', 'sales_order', 'invoice_number',
                  'discount_amount', 'notes', 'created_by', 'created_at']
        read_only_fields = ['created_by', 'created_at']

    def validate_discount_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Discount amount must be greater than zero")
        return value

    def validate(self, attrs):
        customer = attrs.get('customer', getattr(self.instance, 'customer', None))
        sales_order = attrs.get('sales_order', getattr(self.instance, 'sales_order', None))
        amount = attrs.get('discount_amount', getattr(self.instance, 'discount_amount', None))
        if customer is not None and customer.party_type != 'customer':
            raise serializers.ValidationError({'customer': f"{customer.name} is not a customer"})
        if sales_order.customer_id != customer.id:
            raise serializers.ValidationError({'sales_order': 'Invoice does not belong to this customer'})
        other_discounts = sales_order.discounts.all()
        if self.instance is not None:
            other_discounts = other_discounts.exclude(pk=self.instance.pk)
        already = other_discounts.aggregate(total=Sum('discount_amount'))['total'] or 0
        if to_decimal(already) + amount > to_decimal(sales_order.total_kwd):
            raise serializers.ValidationError({'discount_amount': 'Discounts cannot exceed the invoice total'})
        return attrs
