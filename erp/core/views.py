import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from . import transaction_password
from .models import Setting, AuditLog, RolePermission, UserRoleAssignment
from .permissions import IsAdminRole, accessible_modules, assigned_branch_id
from .serializers import (
    UserSerializer, UserCreateSerializer, PrinterTypeSerializer,
    SettingSerializer, TransactionPasswordSerializer, AuditLogSerializer,
    RolePermissionSerializer, UserRoleAssignmentSerializer,
)
from .utils import create_audit_log, parse_date_param

User = get_user_model()
logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


class ErpTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        return token


class ErpTokenObtainPairView(TokenObtainPairView):
    serializer_class = ErpTokenObtainPairSerializer


class ErpTokenRefreshSerializer(TokenRefreshSerializer):
    """Refresh serializer that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class ErpTokenRefreshView(TokenRefreshView):
    serializer_class = ErpTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        token = ErpTokenObtainPairSerializer.get_token(user)
        logger.info(f"Registered user {user.username} with role {user.role}")
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role-derived access flags"""
    user = request.user
    user_data = UserSerializer(user).data
    is_admin = user.is_admin_role
    user_data['is_admin'] = is_admin
    user_data['can_write'] = is_admin or user.role in ('manager', 'staff')
    user_data['can_delete'] = is_admin
    return Response(user_data)


@api_view(['PATCH', 'PUT'])
@permission_classes([IsAuthenticated])
def user_printer_type(request):
    serializer = PrinterTypeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    request.user.printer_type = serializer.validated_data['printer_type']
    request.user.save(update_fields=['printer_type', 'updated_at'])
    return Response(UserSerializer(request.user).data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        return Response(UserSerializer(users, many=True).data)

    serializer = UserCreateSerializer(data=request.data, context={'allow_role': True})
    if serializer.is_valid():
        user = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='User',
            object_id=str(user.id),
            object_name=user.username,
            changes={'role': user.role}
        )
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)
    elif request.method in ('PUT', 'PATCH'):
        old_role = user.role
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            if user.role != old_role:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='User',
                    object_id=str(user.id),
                    object_name=user.username,
                    changes={'role': {'old': old_role, 'new': user.role}}
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        username = user.username
        user.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='User',
            object_id=str(pk),
            object_name=username,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# Setting views

def _visible_settings():
    return Setting.objects.exclude(key=transaction_password.TRANSACTION_PASSWORD_KEY)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def setting_list_create(request):
    """List all settings or create a new setting"""
    if request.method == 'GET':
        return Response(SettingSerializer(_visible_settings().order_by('key'), many=True).data)

    if request.data.get('key') == transaction_password.TRANSACTION_PASSWORD_KEY:
        return Response({'error': 'Use the transaction password endpoint to set this value'},
                        status=status.HTTP_400_BAD_REQUEST)
    serializer = SettingSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_object_or_404(_visible_settings(), pk=pk)

    if request.method == 'GET':
        return Response(SettingSerializer(setting).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            if serializer.validated_data.get('key') == transaction_password.TRANSACTION_PASSWORD_KEY:
                return Response({'error': 'Use the transaction password endpoint to set this value'},
                                status=status.HTTP_400_BAD_REQUEST)
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Transaction password

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_password_status(request):
    return Response({'is_set': transaction_password.is_password_set()})


@api_view(['POST', 'DELETE'])
@permission_classes([IsAdminRole])
def transaction_password_manage(request):
    """
    POST sets or changes the password; the current one must be supplied when
    a password already exists. DELETE clears it and always needs the current
    password.
    """
    current_password = request.data.get('current_password') or ''

    if request.method == 'DELETE':
        if not transaction_password.is_password_set():
            return Response({'error': 'No transaction password is set'}, status=status.HTTP_400_BAD_REQUEST)
        if not current_password or not transaction_password.verify_password(current_password):
            return Response({'error': 'Current transaction password is incorrect'},
                            status=status.HTTP_400_BAD_REQUEST)
        transaction_password.clear_password()
        create_audit_log(
            request=request,
            action='transaction_password_change',
            model_name='Setting',
            object_id=transaction_password.TRANSACTION_PASSWORD_KEY,
            changes={'cleared': True}
        )
        logger.info(f"Transaction password cleared by {request.user.username}")
        return Response({'is_set': False})

    serializer = TransactionPasswordSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    was_set = transaction_password.is_password_set()
    if was_set and not transaction_password.verify_password(current_password):
        return Response({'error': 'Current transaction password is incorrect'}, status=status.HTTP_400_BAD_REQUEST)
    transaction_password.set_password(serializer.validated_data['password'])
    create_audit_log(
        request=request,
        action='transaction_password_change',
        model_name='Setting',
        object_id=transaction_password.TRANSACTION_PASSWORD_KEY,
        changes={'changed': was_set}
    )
    logger.info(f"Transaction password {'changed' if was_set else 'set'} by {request.user.username}")
    return Response({'is_set': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_transaction_password(request):
    raw_password = request.data.get('password') or ''
    if not transaction_password.is_password_set():
        return Response({'valid': True})
    return Response({'valid': bool(raw_password) and transaction_password.verify_password(raw_password)})


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAdminRole])
def audit_log_list(request):
    """List audit logs (filters: action, model_name, user, search, date_from, date_to)"""
    queryset = AuditLog.objects.select_related('user')
    params = request.query_params

    if params.get('action'):
        queryset = queryset.filter(action=params.get('action'))
    if params.get('model_name'):
        queryset = queryset.filter(model_name=params.get('model_name'))
    if params.get('user'):
        queryset = queryset.filter(user_id=params.get('user'))
    search = params.get('search')
    if search:
        queryset = queryset.filter(
            Q(object_name__icontains=search) |
            Q(object_reference__icontains=search) |
            Q(imei__icontains=search)
        )
    date_from = parse_date_param(params.get('date_from'))
    date_to = parse_date_param(params.get('date_to'))
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')[:500]
    return Response(AuditLogSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def audit_log_detail(request, pk):
    audit_log = get_object_or_404(AuditLog, pk=pk)
    return Response(AuditLogSerializer(audit_log).data)


# Role permissions

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_permissions(request):
    """Effective role, the modules it may open and the branch it is locked to"""
    return Response({
        'role': request.user.role,
        'modules': accessible_modules(request.user),
        'assigned_branch': assigned_branch_id(request.user),
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAdminRole])
def role_permission_list(request):
    """
    GET lists the stored module switches. PUT sets one switch, body
    ``{role, module_name, can_access}``; modules without a switch are open.
    """
    if request.method == 'GET':
        return Response(RolePermissionSerializer(RolePermission.objects.all(), many=True).data)

    serializer = RolePermissionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    switch, _ = RolePermission.objects.update_or_create(
        role=data['role'], module_name=data['module_name'],
        defaults={'can_access': data.get('can_access', True)}
    )
    create_audit_log(
        request=request,
        action='permission_change',
        model_name='RolePermission',
        object_id=str(switch.id),
        object_name=f"{switch.role}:{switch.module_name}",
        changes={'can_access': switch.can_access}
    )
    return Response(RolePermissionSerializer(switch).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def role_assignment_list_create(request):
    if request.method == 'GET':
        assignments = UserRoleAssignment.objects.select_related('user', 'branch')
        return Response(UserRoleAssignmentSerializer(assignments, many=True).data)

    serializer = UserRoleAssignmentSerializer(data=request.data)
    if serializer.is_valid():
        assignment = serializer.save()
        create_audit_log(
            request=request,
            action='permission_change',
            model_name='UserRoleAssignment',
            object_id=str(assignment.id),
            object_name=assignment.user.username,
            changes={'role': assignment.role, 'branch': assignment.branch_id}
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def role_assignment_detail(request, pk):
    assignment = get_object_or_404(UserRoleAssignment.objects.select_related('user', 'branch'), pk=pk)

    if request.method == 'GET':
        return Response(UserRoleAssignmentSerializer(assignment).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserRoleAssignmentSerializer(assignment, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            assignment = serializer.save()
            create_audit_log(
                request=request,
                action='permission_change',
                model_name='UserRoleAssignment',
                object_id=str(assignment.id),
                object_name=assignment.user.username,
                changes={'role': assignment.role, 'branch': assignment.branch_id}
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        username = assignment.user.username
        assignment.delete()
        create_audit_log(
            request=request,
            action='permission_change',
            model_name='UserRoleAssignment',
            object_id=str(pk),
            object_name=username,
            changes={'removed': True}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Global search across items, parties, invoices and IMEIs"""
    query = request.query_params.get('q', '').strip()

    if not query:
        return Response({
            'items': [],
            'customers': [],
            'suppliers': [],
            'purchase_orders': [],
            'sales_orders': [],
            'imeis': [],
        })

    from erp.catalog.filters import ItemFilter
    from erp.catalog.models import Item
    from erp.catalog.serializers import ItemSerializer
    from erp.inventory.models import ImeiInventory
    from erp.inventory.serializers import ImeiInventorySerializer
    from erp.parties.models import Party
    from erp.parties.serializers import PartySerializer
    from erp.purchasing.models import PurchaseOrder
    from erp.sales.models import SalesOrder

    results = {}

    items = ItemFilter({'search': query}, queryset=Item.objects.all()).qs[:SEARCH_LIMIT]
    results['items'] = ItemSerializer(items, many=True).data

    party_q = Q(name__icontains=query) | Q(phone__icontains=query)
    customers = Party.objects.filter(party_type='customer').filter(party_q).order_by('name')[:SEARCH_LIMIT]
    results['customers'] = PartySerializer(customers, many=True).data
    suppliers = Party.objects.filter(party_type='supplier').filter(party_q).order_by('name')[:SEARCH_LIMIT]
    results['suppliers'] = PartySerializer(suppliers, many=True).data

    purchase_orders = PurchaseOrder.objects.filter(invoice_number__icontains=query).select_related('supplier')[:SEARCH_LIMIT]
    results['purchase_orders'] = [
        {
            'id': order.id,
            'invoice_number': order.invoice_number,
            'purchase_date': order.purchase_date,
            'supplier_name': order.supplier.name if order.supplier else None,
            'total_kwd': str(order.total_kwd) if order.total_kwd is not None else None,
        }
        for order in purchase_orders
    ]

    sales_orders = SalesOrder.objects.filter(invoice_number__icontains=query).select_related('customer')[:SEARCH_LIMIT]
    results['sales_orders'] = [
        {
            'id': order.id,
            'invoice_number': order.invoice_number,
            'sale_date': order.sale_date,
            'customer_name': order.customer.name if order.customer else None,
            'total_kwd': str(order.total_kwd) if order.total_kwd is not None else None,
        }
        for order in sales_orders
    ]

    imeis = ImeiInventory.objects.filter(imei__icontains=query).select_related('branch', 'supplier', 'sales_order')[:SEARCH_LIMIT]
    results['imeis'] = ImeiInventorySerializer(imeis, many=True).data

    return Response(results)
