# Generated manually

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, unique=True)),
                ('code', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('purchase_price_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('purchase_price_fx', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('fx_currency', models.CharField(choices=[('AED', 'UAE Dirham'), ('USD', 'US Dollar')], default='AED', max_length=3)),
                ('selling_price_kwd', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True)),
                ('tracks_imei', models.BooleanField(default=True, help_text='Units of this item are tracked by IMEI')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'items',
                'ordering': ['name'],
            },
        ),
    ]
