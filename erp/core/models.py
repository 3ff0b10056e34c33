from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model with a business role"""
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('manager', 'Manager'),
        ('staff', 'Staff'),
        ('viewer', 'Viewer'),
    ]
    PRINTER_TYPE_CHOICES = [
        ('thermal', 'Thermal'),
        ('a4', 'A4'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='viewer')
    phone = models.CharField(max_length=20, blank=True, null=True)
    printer_type = models.CharField(max_length=20, choices=PRINTER_TYPE_CHOICES, default='a4')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_admin_role(self):
        return self.role == 'admin' or self.is_superuser

    class Meta:
        db_table = 'users'


class Setting(models.Model):
    """System settings stored as key/value pairs"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('convert', 'Draft Converted'),
        ('status_change', 'Status Changed'),
        ('payment_add', 'Payment Added'),
        ('imei_event', 'IMEI Event'),
        ('stock_transfer', 'Stock Transfer'),
        ('return', 'Return'),
        ('transaction_password_change', 'Transaction Password Changed'),
        ('backup_download', 'Backup Downloaded'),
        ('whatsapp_send', 'WhatsApp Message Sent'),
        ('permission_change', 'Permission Changed'),
        ('file_upload', 'File Uploaded'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., item name, invoice number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., invoice number, PO number)")
    imei = models.CharField(max_length=1000, blank=True, null=True, help_text="IMEI numbers if applicable (comma-separated)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
            models.Index(fields=['object_reference'], name='idx_audit_reference'),
        ]


class RolePermission(models.Model):
    """
    Module access switch for a role. A module without a row is open to
    the role; admins always have every module.
    """
    MODULE_CHOICES = [
        ('dashboard', 'Dashboard'),
        ('purchases', 'Purchases'),
        ('sales', 'Sales'),
        ('payments', 'Payments'),
        ('returns', 'Returns'),
        ('expenses', 'Expenses'),
        ('accounts', 'Accounts'),
        ('items', 'Item Master'),
        ('parties', 'Party Master'),
        ('reports', 'Reports'),
        ('all_transactions', 'All Transactions'),
        ('discount', 'Discount'),
        ('stock', 'Stock'),
        ('imei_history', 'IMEI History'),
        ('stock_transfers', 'Stock Transfers'),
    ]

    role = models.CharField(max_length=20, choices=User.ROLE_CHOICES)
    module_name = models.CharField(max_length=50, choices=MODULE_CHOICES)
    can_access = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.role}:{self.module_name}={'on' if self.can_access else 'off'}"

    class Meta:
        db_table = 'role_permissions'
        ordering = ['role', 'module_name']
        unique_together = [('role', 'module_name')]


class UserRoleAssignment(models.Model):
    """Role given to a user, optionally locking them to one branch"""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='role_assignment')
    role = models.CharField(max_length=20, choices=User.ROLE_CHOICES)
    branch = models.ForeignKey('branches.Branch', on_delete=models.PROTECT, null=True, blank=True,
                               related_name='role_assignments')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.username}: {self.role}"

    class Meta:
        db_table = 'user_role_assignments'
        ordering = ['user__username']
