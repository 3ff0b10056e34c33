import logging
from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from erp.core.money import fx_total, quantize_kwd
from erp.core.serializers import validate_line_items
from erp.core.utils import create_audit_log
from .ledger import account_balance
from .models import (
    Account, AccountTransfer, Payment, PaymentSplit,
    ExpenseCategory, Expense, OpeningBalance,
)

logger = logging.getLogger(__name__)


class AccountSerializer(serializers.ModelSerializer):
    current_balance = serializers.SerializerMethodField()

    class Meta:
        model = Account
        fields = ['id', 'name', 'account_type', 'opening_balance', 'current_balance', 'created_at']
        read_only_fields = ['created_at']

    def get_current_balance(self, obj):
        return str(account_balance(obj))


class AccountTransferSerializer(serializers.ModelSerializer):
    from_account_name = serializers.CharField(source='from_account.name', read_only=True)
    to_account_name = serializers.CharField(source='to_account.name', read_only=True)

    class Meta:
        model = AccountTransfer
        fields = ['id', 'transfer_date', 'from_account', 'from_account_name', 'to_account', 'to_account_name',
                  'amount', 'notes', 'created_by', 'created_at']
        read_only_fields = ['created_by', 'created_at']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero")
        return value

    def validate(self, attrs):
        from_account = attrs.get('from_account', getattr(self.instance, 'from_account', None))
        to_account = attrs.get('to_account', getattr(self.instance, 'to_account', None))
        if from_account == to_account:
            raise serializers.ValidationError({'to_account': 'Source and destination accounts must differ'})
        return attrs


class PaymentSplitSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentSplit
        fields = ['id', 'payment_type', 'amount', 'fx_currency', 'fx_rate', 'fx_amount']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Split amount must be greater than zero")
        return value

    def validate(self, attrs):
        if attrs.get('fx_rate') and attrs.get('fx_amount') is None:
            attrs['fx_amount'] = fx_total(attrs['amount'], attrs['fx_rate'])
        return attrs


class PaymentSerializer(serializers.ModelSerializer):
    splits = PaymentSplitSerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source='customer.name', read_only=True, default=None)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    invoice_number = serializers.CharField(source='sales_order.invoice_number', read_only=True, default=None)
    purchase_invoice_number = serializers.CharField(source='purchase_order.invoice_number', read_only=True, default=None)
    amount = serializers.DecimalField(max_digits=14, decimal_places=3, required=False)

    class Meta:
        model = Payment
        fields = ['id', 'payment_date', 'direction', 'customer', 'customer_name', 'supplier', 'supplier_name',
                  'purchase_order', 'purchase_invoice_number', 'sales_order', 'invoice_number',
                  'payment_type', 'amount', 'fx_currency', 'fx_rate', 'fx_amount', 'reference', 'notes',
                  'splits', 'created_by', 'created_at']
        read_only_fields = ['created_by', 'created_at']

    def validate(self, attrs):
        direction = attrs.get('direction', 'IN')
        customer = attrs.get('customer')
        supplier = attrs.get('supplier')

        if direction == 'IN':
            if customer is None:
                raise serializers.ValidationError({'customer': 'Customer is required for incoming payments'})
            if customer.party_type != 'customer':
                raise serializers.ValidationError({'customer': f"{customer.name} is not a customer"})
            attrs['supplier'] = None
            sales_order = attrs.get('sales_order')
            if sales_order is not None and sales_order.customer_id != customer.id:
                raise serializers.ValidationError({'sales_order': 'Invoice does not belong to this customer'})
            attrs['purchase_order'] = None
        else:
            if supplier is None:
                raise serializers.ValidationError({'supplier': 'Supplier is required for outgoing payments'})
            if supplier.party_type != 'supplier':
                raise serializers.ValidationError({'supplier': f"{supplier.name} is not a supplier"})
            attrs['customer'] = None
            purchase_order = attrs.get('purchase_order')
            if purchase_order is not None and purchase_order.supplier_id != supplier.id:
                raise serializers.ValidationError({'purchase_order': 'Purchase order does not belong to this supplier'})
            attrs['sales_order'] = None

        splits = validate_line_items(self.context.get('splits_data'), PaymentSplitSerializer, field_name='splits')
        if splits:
            if len(splits) < 2:
                raise serializers.ValidationError({'splits': 'A split payment needs at least two payment methods'})
            attrs['amount'] = quantize_kwd(sum((split['amount'] for split in splits), Decimal('0')))
            attrs['payment_type'] = splits[0]['payment_type']
        else:
            splits = []
            amount = attrs.get('amount')
            if amount is None or amount <= 0:
                raise serializers.ValidationError({'amount': 'Amount must be greater than zero'})
        self._validated_splits = splits

        if attrs.get('fx_rate'):
            attrs.setdefault('fx_currency', 'AED')
            if attrs.get('fx_amount') is None:
                attrs['fx_amount'] = fx_total(attrs['amount'], attrs['fx_rate'])
        return attrs

    def create(self, validated_data):
        request = self.context.get('request')
        with transaction.atomic():
            payment = Payment.objects.create(**validated_data)
            for split_data in self._validated_splits:
                PaymentSplit.objects.create(payment=payment, **split_data)
            party = payment.party
            create_audit_log(
                request=request,
                action='payment_add',
                model_name='Payment',
                object_id=str(payment.id),
                object_name=f"Payment {payment.direction} {party.name if party else ''}".strip(),
                object_reference=payment.reference,
                changes={
                    'direction': payment.direction,
                    'amount': str(payment.amount),
                    'payment_type': payment.payment_type,
                    'splits': [{'payment_type': s['payment_type'], 'amount': str(s['amount'])} for s in self._validated_splits],
                }
            )
        logger.info(f"Payment {payment.id} ({payment.direction}) recorded: {payment.amount} KWD via {payment.payment_type}")
        return payment


class ExpenseCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ExpenseCategory
        fields = ['id', 'name', 'created_at']
        read_only_fields = ['created_at']


class ExpenseSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    account_name = serializers.CharField(source='account.name', read_only=True)

    class Meta:
        model = Expense
        fields = ['id', 'expense_date', 'category', 'category_name', 'account', 'account_name', 'branch',
                  'amount', 'description', 'reference', 'created_by', 'created_at']
        read_only_fields = ['created_by', 'created_at']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero")
        return value


class OpeningBalanceSerializer(serializers.ModelSerializer):
    party_name = serializers.CharField(source='party.name', read_only=True)
    party_type = serializers.CharField(source='party.party_type', read_only=True)

    class Meta:
        model = OpeningBalance
        fields = ['id', 'party', 'party_name', 'party_type', 'balance_date', 'amount', 'notes', 'created_at']
        read_only_fields = ['created_at']


