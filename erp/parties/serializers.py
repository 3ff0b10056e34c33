from rest_framework import serializers
from .models import Party


class PartySerializer(serializers.ModelSerializer):
    class Meta:
        model = Party
        fields = ['id', 'name', 'party_type', 'phone', 'address', 'credit_limit', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Name is required")
        return value


class SupplierSerializer(PartySerializer):
    """Party serializer pinned to party_type=supplier"""

    class Meta(PartySerializer.Meta):
        read_only_fields = ['party_type', 'created_at', 'updated_at']

    def create(self, validated_data):
        validated_data['party_type'] = 'supplier'
        return super().create(validated_data)


class CustomerSerializer(PartySerializer):
    """Party serializer pinned to party_type=customer"""

    class Meta(PartySerializer.Meta):
        read_only_fields = ['party_type', 'created_at', 'updated_at']

    def create(self, validated_data):
        validated_data['party_type'] = 'customer'
        return super().create(validated_data)
