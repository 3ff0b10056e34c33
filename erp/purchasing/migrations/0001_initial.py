# Generated manually

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

FX_CURRENCY_CHOICES = [('AED', 'UAE Dirham'), ('USD', 'US Dollar')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('branches', '0001_initial'),
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PurchaseOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('purchase_date', models.DateField()),
                ('invoice_number', models.CharField(blank=True, help_text='Supplier invoice number', max_length=100, null=True)),
                ('total_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('fx_currency', models.CharField(choices=FX_CURRENCY_CHOICES, default='AED', max_length=3)),
                ('fx_rate', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ('total_fx', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('grn_date', models.DateField(blank=True, help_text='Goods received note date', null=True)),
                ('invoice_file_path', models.CharField(blank=True, max_length=500, null=True)),
                ('delivery_note_file_path', models.CharField(blank=True, max_length=500, null=True)),
                ('tt_copy_file_path', models.CharField(blank=True, max_length=500, null=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='purchase_orders', to='branches.branch')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_orders', to=settings.AUTH_USER_MODEL)),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='purchase_orders', to='parties.party')),
            ],
            options={
                'db_table': 'purchase_orders',
                'ordering': ['-purchase_date', '-id'],
                'indexes': [
                    models.Index(fields=['-purchase_date', '-id'], name='idx_po_date'),
                    models.Index(fields=['supplier', 'purchase_date'], name='idx_po_supplier_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrderLineItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_name', models.CharField(max_length=255)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('price_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('fx_price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('total_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('imei_numbers', models.JSONField(blank=True, default=list)),
                ('purchase_order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='line_items', to='purchasing.purchaseorder')),
            ],
            options={
                'db_table': 'purchase_order_line_items',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrderDraft',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('po_number', models.CharField(max_length=50, unique=True)),
                ('po_date', models.DateField()),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('sent', 'Sent'), ('received', 'Received'), ('converted', 'Converted')], default='draft', max_length=20)),
                ('total_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('fx_currency', models.CharField(choices=FX_CURRENCY_CHOICES, default='AED', max_length=3)),
                ('fx_rate', models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True)),
                ('total_fx', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('notes', models.TextField(blank=True)),
                ('invoice_file_path', models.CharField(blank=True, max_length=500, null=True)),
                ('delivery_note_file_path', models.CharField(blank=True, max_length=500, null=True)),
                ('tt_copy_file_path', models.CharField(blank=True, max_length=500, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='purchase_order_drafts', to='branches.branch')),
                ('converted_to_purchase', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='source_drafts', to='purchasing.purchaseorder')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='purchase_order_drafts', to=settings.AUTH_USER_MODEL)),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='purchase_order_drafts', to='parties.party')),
            ],
            options={
                'db_table': 'purchase_order_drafts',
                'ordering': ['-po_date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='PurchaseOrderDraftItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_name', models.CharField(max_length=255)),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('price_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('fx_price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('total_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=14, null=True)),
                ('imei_numbers', models.JSONField(blank=True, default=list)),
                ('draft', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='line_items', to='purchasing.purchaseorderdraft')),
            ],
            options={
                'db_table': 'purchase_order_draft_items',
                'ordering': ['id'],
            },
        ),
    ]
