# Generated manually: one account per payment type

from django.db import migrations

DEFAULT_ACCOUNTS = [
    ('Cash', 'cash'),
    ('NBK Bank', 'bank'),
    ('CBK Bank', 'bank'),
    ('Knet', 'card'),
    ('Wamd', 'wallet'),
]


def create_default_accounts(apps, schema_editor):
    Account = apps.get_model('finance', 'Account')
    for name, account_type in DEFAULT_ACCOUNTS:
        Account.objects.get_or_create(name=name, defaults={'account_type': account_type})


def remove_default_accounts(apps, schema_editor):
    Account = apps.get_model('finance', 'Account')
    Account.objects.filter(name__in=[name for name, _type in DEFAULT_ACCOUNTS], opening_balance=0).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('finance', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_default_accounts, remove_default_accounts),
    ]
