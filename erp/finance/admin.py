from django.contrib import admin
from .models import Account, AccountTransfer, Payment, PaymentSplit, ExpenseCategory, Expense, OpeningBalance


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ['name', 'account_type', 'opening_balance', 'created_at']
    search_fields = ['name']


@admin.register(AccountTransfer)
class AccountTransferAdmin(admin.ModelAdmin):
    list_display = ['transfer_date', 'from_account', 'to_account', 'amount', 'created_by']
    list_filter = ['transfer_date']


class PaymentSplitInline(admin.TabularInline):
    model = PaymentSplit
    extra = 0


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'payment_date', 'direction', 'customer', 'supplier', 'payment_type', 'amount', 'reference']
    list_filter = ['direction', 'payment_type', 'payment_date']
    search_fields = ['customer__name', 'supplier__name', 'reference']
    date_hierarchy = 'payment_date'
    inlines = [PaymentSplitInline]


@admin.register(ExpenseCategory)
class ExpenseCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['expense_date', 'category', 'account', 'branch', 'amount', 'description']
    list_filter = ['category', 'account', 'expense_date']
    search_fields = ['description', 'reference']


@admin.register(OpeningBalance)
class OpeningBalanceAdmin(admin.ModelAdmin):
    list_display = ['party', 'balance_date', 'amount']
    search_fields = ['party__name']
