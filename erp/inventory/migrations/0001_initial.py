# Generated manually

import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models

IMEI_STATUS_CHOICES = [
    ('in_stock', 'In Stock'),
    ('sold', 'Sold'),
    ('returned', 'Returned'),
    ('transferred', 'Transferred'),
    ('defective', 'Defective'),
    ('warranty', 'At Warranty'),
    ('supplier_returned', 'Returned to Supplier'),
]

IMEI_EVENT_CHOICES = [
    ('purchased', 'Purchased'),
    ('opening_stock', 'Opening Stock'),
    ('sold', 'Sold'),
    ('sale_cancelled', 'Sale Cancelled'),
    ('sale_returned', 'Returned by Customer'),
    ('sale_return_reversed', 'Customer Return Reversed'),
    ('transferred', 'Transferred'),
    ('marked_defective', 'Marked Defective'),
    ('sent_to_warranty', 'Sent to Warranty'),
    ('warranty_received', 'Received from Warranty'),
    ('purchase_returned', 'Returned to Supplier'),
    ('purchase_return_reversed', 'Supplier Return Reversed'),
    ('purchase_removed', 'Removed with Purchase'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('branches', '0001_initial'),
        ('catalog', '0001_initial'),
        ('parties', '0001_initial'),
        ('purchasing', '0001_initial'),
        ('sales', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ImeiInventory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('imei', models.CharField(max_length=15, unique=True)),
                ('item_name', models.CharField(max_length=255)),
                ('status', models.CharField(choices=IMEI_STATUS_CHOICES, default='in_stock', max_length=20)),
                ('purchase_price_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('received_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='imeis', to='branches.branch')),
                ('purchase_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='imeis', to='purchasing.purchaseorder')),
                ('sales_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='imeis', to='sales.salesorder')),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='supplied_imeis', to='parties.party')),
            ],
            options={
                'verbose_name': 'IMEI',
                'db_table': 'imei_inventory',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_imei_status'),
                    models.Index(fields=['item_name', 'status'], name='idx_imei_item_status'),
                    models.Index(fields=['branch', 'status'], name='idx_imei_branch_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ImeiEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('imei_number', models.CharField(db_index=True, max_length=15)),
                ('event_type', models.CharField(choices=IMEI_EVENT_CHOICES, max_length=30)),
                ('from_status', models.CharField(blank=True, choices=IMEI_STATUS_CHOICES, max_length=20, null=True)),
                ('to_status', models.CharField(blank=True, choices=IMEI_STATUS_CHOICES, max_length=20, null=True)),
                ('reference_type', models.CharField(blank=True, help_text='purchase_order, sales_order, return, stock_transfer, adjustment', max_length=50, null=True)),
                ('reference_id', models.BigIntegerField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='imei_events', to='branches.branch')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='imei_events', to=settings.AUTH_USER_MODEL)),
                ('imei', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='events', to='inventory.imeiinventory')),
            ],
            options={
                'db_table': 'imei_events',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['reference_type', 'reference_id'], name='idx_imei_event_reference')],
            },
        ),
        migrations.CreateModel(
            name='Return',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('return_number', models.CharField(max_length=50, unique=True)),
                ('return_date', models.DateField()),
                ('return_type', models.CharField(choices=[('sale_return', 'Sale Return'), ('purchase_return', 'Purchase Return')], default='sale_return', max_length=20)),
                ('total_kwd', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=14)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='returns', to='branches.branch')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='returns', to=settings.AUTH_USER_MODEL)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='customer_returns', to='parties.party')),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='supplier_returns', to='parties.party')),
            ],
            options={
                'db_table': 'returns',
                'ordering': ['-return_date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ReturnLineItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_name', models.CharField(max_length=255)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('price_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('total_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('imei_numbers', models.JSONField(blank=True, default=list)),
                ('condition', models.CharField(choices=[('good', 'Good'), ('defective', 'Defective')], default='good', max_length=20)),
                ('return_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='line_items', to='inventory.return')),
            ],
            options={
                'db_table': 'return_line_items',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='StockTransfer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('transfer_number', models.CharField(max_length=50, unique=True)),
                ('transfer_date', models.DateField()),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_transfers', to=settings.AUTH_USER_MODEL)),
                ('from_branch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transfers_out', to='branches.branch')),
                ('to_branch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transfers_in', to='branches.branch')),
            ],
            options={
                'db_table': 'stock_transfers',
                'ordering': ['-transfer_date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='StockTransferLineItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_name', models.CharField(max_length=255)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('imei_numbers', models.JSONField(blank=True, default=list)),
                ('stock_transfer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='line_items', to='inventory.stocktransfer')),
            ],
            options={
                'db_table': 'stock_transfer_line_items',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='InventoryAdjustment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.IntegerField()),
                ('unit_cost_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('effective_date', models.DateField()),
                ('imei_numbers', models.JSONField(blank=True, default=list)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='adjustments', to='branches.branch')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='inventory_adjustments', to=settings.AUTH_USER_MODEL)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='adjustments', to='catalog.item')),
            ],
            options={
                'db_table': 'inventory_adjustments',
                'ordering': ['-effective_date', '-id'],
            },
        ),
    ]
