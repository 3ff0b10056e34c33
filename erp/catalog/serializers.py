from rest_framework import serializers
from .models import Item


class ItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = Item
        fields = ['id', 'name', 'code', 'purchase_price_kwd', 'purchase_price_fx', 'fx_currency',
                  'selling_price_kwd', 'tracks_imei', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required")
        return value


class ItemBulkUpdateSerializer(serializers.Serializer):
    """One row of a bulk price update"""
    id = serializers.IntegerField()
    purchase_price_kwd = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, allow_null=True)
    purchase_price_fx = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    fx_currency = serializers.ChoiceField(choices=Item._meta.get_field('fx_currency').choices, required=False)
    selling_price_kwd = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, allow_null=True)
    code = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
