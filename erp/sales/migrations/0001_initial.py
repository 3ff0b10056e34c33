# Generated manually

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('branches', '0001_initial'),
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SalesOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sale_date', models.DateField()),
                ('invoice_number', models.CharField(max_length=100, unique=True)),
                ('total_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('fx_currency', models.CharField(choices=[('AED', 'UAE Dirham'), ('USD', 'US Dollar')], default='AED', max_length=3)),
                ('fx_rate', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ('total_fx', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('delivery_date', models.DateField(blank=True, null=True)),
                ('invoice_file_path', models.CharField(blank=True, max_length=500, null=True)),
                ('delivery_note_file_path', models.CharField(blank=True, max_length=500, null=True)),
                ('payment_receipt_file_path', models.CharField(blank=True, max_length=500, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='sales_orders', to='branches.branch')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sales_orders', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='sales_orders', to='parties.party')),
            ],
            options={
                'db_table': 'sales_orders',
                'ordering': ['-sale_date', '-id'],
                'indexes': [
                    models.Index(fields=['-sale_date', '-id'], name='idx_so_date'),
                    models.Index(fields=['customer', 'sale_date'], name='idx_so_customer_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SalesOrderLineItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_name', models.CharField(max_length=255)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('price_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('total_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('imei_numbers', models.JSONField(blank=True, default=list)),
                ('sales_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='line_items', to='sales.salesorder')),
            ],
            options={
                'db_table': 'sales_order_line_items',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='Discount',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('discount_amount', models.DecimalField(decimal_places=3, max_digits=12)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='discounts', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='discounts', to='parties.party')),
                ('sales_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='discounts', to='sales.salesorder')),
            ],
            options={
                'db_table': 'discounts',
                'ordering': ['-created_at'],
            },
        ),
    ]
