import logging

from django.db.models import ProtectedError
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from erp.core.permissions import RoleWritePermission
from erp.core.utils import create_audit_log
from .models import Branch
from .serializers import BranchSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([RoleWritePermission])
def branch_list_create(request):
    """List all branches or create a new branch"""
    if request.method == 'GET':
        queryset = Branch.objects.all().order_by('name')
        is_active = request.query_params.get('is_active', None)
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() in ('1', 'true', 'yes'))
        serializer = BranchSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = BranchSerializer(data=request.data)
    if serializer.is_valid():
        branch = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='Branch',
            object_id=str(branch.id),
            object_name=branch.name,
            changes={'code': branch.code, 'is_default': branch.is_default}
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([RoleWritePermission])
def branch_detail(request, pk):
    """Retrieve, update or delete a branch"""
    branch = get_object_or_404(Branch, pk=pk)

    if request.method == 'GET':
        return Response(BranchSerializer(branch).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = BranchSerializer(branch, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        branch_name = branch.name
        try:
            branch.delete()
        except ProtectedError:
            return Response(
                {'error': f"Cannot delete branch {branch_name}: it is referenced by existing documents"},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Branch',
            object_id=str(pk),
            object_name=branch_name,
        )
        logger.info(f"Deleted branch {branch_name} ({pk})")
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def branch_default(request):
    """The branch documents fall back to when none is given"""
    branch = Branch.get_default()
    if branch is None:
        return Response({'error': 'No branches configured'}, status=status.HTTP_404_NOT_FOUND)
    return Response(BranchSerializer(branch).data)
