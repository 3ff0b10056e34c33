from django.db import models

FX_CURRENCY_CHOICES = [
    ('AED', 'UAE Dirham'),
    ('USD', 'US Dollar'),
]
DEFAULT_FX_CURRENCY = 'AED'


class Item(models.Model):
    """Catalog items (handsets, accessories). Line items refer to them by name."""
    name = models.CharField(max_length=255, unique=True)
    code = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    purchase_price_kwd = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    purchase_price_fx = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    fx_currency = models.CharField(max_length=3, choices=FX_CURRENCY_CHOICES, default=DEFAULT_FX_CURRENCY)
    selling_price_kwd = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    tracks_imei = models.BooleanField(default=True, help_text='Units of this item are tracked by IMEI')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @classmethod
    def ensure(cls, name, **defaults):
        """Fetch an item by name, creating it when missing"""
        item, _created = cls.objects.get_or_create(name=name.strip(), defaults=defaults)
        return item

    class Meta:
        db_table = 'items'
        ordering = ['name']
