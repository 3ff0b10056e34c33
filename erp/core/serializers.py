from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Setting, AuditLog, RolePermission, UserRoleAssignment


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone', 'role',
                  'printer_type', 'is_active', 'is_superuser', 'created_at', 'updated_at']
        read_only_fields = ['is_superuser', 'created_at', 'updated_at']


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'first_name', 'last_name', 'phone', 'role']
        extra_kwargs = {'role': {'required': False}}

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        # Self-registration cannot pick a role; the first account becomes admin
        if not self.context.get('allow_role'):
            validated_data.pop('role', None)
            if not User.objects.filter(role='admin').exists():
                validated_data['role'] = 'admin'
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class PrinterTypeSerializer(serializers.Serializer):
    printer_type = serializers.ChoiceField(choices=User.PRINTER_TYPE_CHOICES)


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class TransactionPasswordSerializer(serializers.Serializer):
    password = serializers.CharField(min_length=4, max_length=128, trim_whitespace=False)
    current_password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'imei', 'changes', 'ip_address', 'created_at']


class RolePermissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = RolePermission
        fields = ['id', 'role', 'module_name', 'can_access', 'updated_at']
        # PUT upserts by (role, module_name)
        validators = []


class UserRoleAssignmentSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    branch_name = serializers.CharField(source='branch.name', read_only=True, default=None)

    class Meta:
        model = UserRoleAssignment
        fields = ['id', 'user', 'username', 'role', 'branch', 'branch_name', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def save(self, **kwargs):
        # the assigned role becomes the user's role
        assignment = super().save(**kwargs)
        if assignment.user.role != assignment.role:
            assignment.user.role = assignment.role
            assignment.user.save(update_fields=['role', 'updated_at'])
        return assignment


def validate_line_items(items_data, line_serializer_class, field_name='line_items'):
    """
    Validate a list of nested line dicts with ``line_serializer_class``.

    Returns the list of validated dicts or raises a ValidationError keyed by
    ``field_name`` with one error dict per line.
    """
    if items_data is None:
        return None
    if not isinstance(items_data, (list, tuple)):
        raise serializers.ValidationError({field_name: 'Expected a list of line items'})
    validated = []
    errors = []
    has_errors = False
    for item_data in items_data:
        line_serializer = line_serializer_class(data=item_data)
        if line_serializer.is_valid():
            validated.append(dict(line_serializer.validated_data))
            errors.append({})
        else:
            has_errors = True
            errors.append(line_serializer.errors)
    if has_errors:
        raise serializers.ValidationError({field_name: errors})
    return validated
