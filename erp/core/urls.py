from django.urls import path
from .backup import backup_download
from .uploads import file_upload
from .views import (
    ErpTokenObtainPairView, ErpTokenRefreshView, register, user_me, user_printer_type,
    user_list_create, user_detail,
    setting_list_create, setting_detail,
    transaction_password_status, transaction_password_manage, verify_transaction_password,
    audit_log_list, audit_log_detail,
    my_permissions, role_permission_list, role_assignment_list_create, role_assignment_detail,
    global_search,
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', ErpTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', ErpTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),
    path('auth/me/printer-type/', user_printer_type, name='user-printer-type'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),

    # Settings and transaction password
    path('settings/', setting_list_create, name='setting-list-create'),
    path('settings/transaction-password-status/', transaction_password_status, name='transaction-password-status'),
    path('settings/transaction-password/', transaction_password_manage, name='transaction-password'),
    path('settings/verify-transaction-password/', verify_transaction_password, name='verify-transaction-password'),
    path('settings/<int:pk>/', setting_detail, name='setting-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),

    # Role permissions
    path('my-permissions/', my_permissions, name='my-permissions'),
    path('role-permissions/', role_permission_list, name='role-permissions'),
    path('user-role-assignments/', role_assignment_list_create, name='user-role-assignment-list-create'),
    path('user-role-assignments/<int:pk>/', role_assignment_detail, name='user-role-assignment-detail'),

    path('search/', global_search, name='global-search'),
    path('backup/download/', backup_download, name='backup-download'),
    path('files/upload/', file_upload, name='file-upload'),
]
