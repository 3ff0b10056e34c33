"""
Full data backup as an Excel workbook.

One worksheet per table; columns are the model's concrete fields with
foreign keys written as ids.
"""
import logging
from datetime import date

from rest_framework.decorators import api_view, permission_classes

from .excel import workbook_response
from .permissions import IsAdminRole
from .utils import create_audit_log

logger = logging.getLogger(__name__)


def backup_tables():
    """(sheet title, model) pairs in dependency order"""
    from erp.branches.models import Branch
    from erp.catalog.models import Item
    from erp.finance.models import (
        Account, AccountTransfer, Payment, PaymentSplit,
        ExpenseCategory, Expense, OpeningBalance,
    )
    from erp.inventory.models import (
        ImeiInventory, ImeiEvent, Return, ReturnLineItem,
        StockTransfer, StockTransferLineItem, InventoryAdjustment,
    )
    from erp.parties.models import Party
    from erp.purchasing.models import (
        PurchaseOrder, PurchaseOrderLineItem, PurchaseOrderDraft, PurchaseOrderDraftItem,
    )
    from erp.sales.models import SalesOrder, SalesOrderLineItem, Discount

    return [
        ('Branches', Branch),
        ('Items', Item),
        ('Parties', Party),
        ('Purchase Orders', PurchaseOrder),
        ('Purchase Order Lines', PurchaseOrderLineItem),
        ('PO Drafts', PurchaseOrderDraft),
        ('PO Draft Lines', PurchaseOrderDraftItem),
        ('Sales Orders', SalesOrder),
        ('Sales Order Lines', SalesOrderLineItem),
        ('Payments', Payment),
        ('Payment Splits', PaymentSplit),
        ('Accounts', Account),
        ('Account Transfers', AccountTransfer),
        ('Expense Categories', ExpenseCategory),
        ('Expenses', Expense),
        ('Returns', Return),
        ('Return Lines', ReturnLineItem),
        ('Stock Transfers', StockTransfer),
        ('Stock Transfer Lines', StockTransferLineItem),
        ('Opening Balances', OpeningBalance),
        ('Inventory Adjustments', InventoryAdjustment),
        ('Discounts', Discount),
        ('IMEI Inventory', ImeiInventory),
        ('IMEI Events', ImeiEvent),
    ]


def model_sheet(title, model):
    fields = model._meta.concrete_fields
    headers = [field.attname for field in fields]
    rows = [
        [getattr(obj, field.attname) for field in fields]
        for obj in model.objects.order_by('pk').iterator()
    ]
    return title, headers, rows


@api_view(['GET'])
@permission_classes([IsAdminRole])
def backup_download(request):
    """Download every business table as one .xlsx workbook"""
    sheets = [model_sheet(title, model) for title, model in backup_tables()]
    filename = f"ERP_Backup_{date.today().isoformat()}.xlsx"
    create_audit_log(
        request=request,
        action='backup_download',
        model_name='Backup',
        object_id='all',
        object_name=filename,
        changes={'sheets': {title: len(rows) for title, headers, rows in sheets}}
    )
    logger.info(f"Backup {filename} downloaded by {request.user.username}")
    return workbook_response(sheets, filename)
