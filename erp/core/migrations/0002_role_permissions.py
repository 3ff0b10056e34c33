# Generated manually

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

ROLE_CHOICES = [('admin', 'Admin'), ('manager', 'Manager'), ('staff', 'Staff'), ('viewer', 'Viewer')]


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
        ('branches', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='auditlog',
            name='action',
            field=models.CharField(choices=[
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
            ], max_length=50),
        ),
        migrations.CreateModel(
            name='RolePermission',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=ROLE_CHOICES, max_length=20)),
                ('module_name', models.CharField(choices=[
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
                ], max_length=50)),
                ('can_access', models.BooleanField(default=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'role_permissions',
                'ordering': ['role', 'module_name'],
                'unique_together': {('role', 'module_name')},
            },
        ),
        migrations.CreateModel(
            name='UserRoleAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('role', models.CharField(choices=ROLE_CHOICES, max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='role_assignments', to='branches.branch')),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='role_assignment', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'user_role_assignments',
                'ordering': ['user__username'],
            },
        ),
    ]
