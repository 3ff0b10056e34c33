import logging

from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from erp.core.permissions import ModuleAccessPermission
from erp.core.utils import parse_date_param, parse_int_param
from .queries import (
    build_stock_balance, build_daily_cash_flow, build_customer_report, build_profit_loss,
    build_stock_aging, build_item_sales, build_dashboard_stats,
)

logger = logging.getLogger('erp.reports')


def _report_params(request):
    params = request.query_params
    return {
        'start_date': parse_date_param(params.get('start_date')),
        'end_date': parse_date_param(params.get('end_date')),
        'branch': parse_int_param(params.get('branch')),
    }


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def stock_balance(request):
    """Quantity movement and closing balance per item"""
    return Response(build_stock_balance(**_report_params(request)))


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def daily_cash_flow(request):
    """Daily money in and out with a running balance over the period"""
    report_params = _report_params(request)
    return Response(build_daily_cash_flow(
        start_date=report_params['start_date'], end_date=report_params['end_date']
    ))


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def customer_report(request):
    return Response(build_customer_report())


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def profit_loss(request):
    return Response(build_profit_loss(**_report_params(request)))


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def stock_aging(request):
    """Age of available units, bucketed at 30/60/90 days"""
    as_of = parse_date_param(request.query_params.get('as_of')) or timezone.localdate()
    branch = parse_int_param(request.query_params.get('branch'))
    return Response(build_stock_aging(as_of=as_of, branch=branch))


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def item_sales(request):
    """Totals per item, or each sale of one item when ``item`` is given"""
    return Response(build_item_sales(
        item=parse_int_param(request.query_params.get('item')),
        customer=parse_int_param(request.query_params.get('customer')),
        **_report_params(request)
    ))


@api_view(['GET'])
@permission_classes([ModuleAccessPermission])
def dashboard_stats(request):
    """Headline numbers for the current month"""
    today = timezone.localdate()
    logger.debug(f"Dashboard stats requested by {request.user.username}")
    return Response(build_dashboard_stats(month_start=today.replace(day=1), today=today))
