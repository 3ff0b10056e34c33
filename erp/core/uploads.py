"""
Document uploads for invoice, delivery note, TT copy and receipt files.

Files go to the default storage under uploads/<folder>/<yyyy>/<mm>/ and the
returned path is what the *_file_path columns on documents hold.
"""
import logging
import os

from django.conf import settings
from django.core.files.storage import default_storage
from django.utils import timezone
from django.utils.text import get_valid_filename
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response

from .permissions import RoleWritePermission
from .utils import create_audit_log

logger = logging.getLogger(__name__)

UPLOAD_FOLDERS = ('invoices', 'delivery_notes', 'tt_copies', 'receipts', 'general')
ALLOWED_EXTENSIONS = ('.pdf', '.jpg', '.jpeg', '.png', '.webp', '.xlsx', '.xls', '.csv')


def upload_path(folder, filename):
    today = timezone.localdate()
    return f"uploads/{folder}/{today:%Y}/{today:%m}/{get_valid_filename(os.path.basename(filename))}"


@api_view(['POST'])
@permission_classes([RoleWritePermission])
@parser_classes([MultiPartParser, FormParser])
def file_upload(request):
    """
    Store one uploaded document file.

    Multipart body: file, optional folder (one of UPLOAD_FOLDERS).
    Returns the stored path and its media URL.
    """
    upload = request.FILES.get('file')
    if upload is None:
        return Response({'error': 'file is required'}, status=status.HTTP_400_BAD_REQUEST)

    folder = request.data.get('folder') or 'general'
    if folder not in UPLOAD_FOLDERS:
        return Response({'error': f"folder must be one of: {', '.join(UPLOAD_FOLDERS)}"},
                        status=status.HTTP_400_BAD_REQUEST)

    extension = os.path.splitext(upload.name)[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        return Response({'error': f"File type {extension or '(none)'} is not allowed"},
                        status=status.HTTP_400_BAD_REQUEST)

    if upload.size > settings.MAX_UPLOAD_SIZE:
        return Response({'error': f"File is larger than {settings.MAX_UPLOAD_SIZE} bytes"},
                        status=status.HTTP_400_BAD_REQUEST)

    # storage renames on collision, so the saved name can differ from the requested one
    path = default_storage.save(upload_path(folder, upload.name), upload)

    create_audit_log(
        request=request,
        action='file_upload',
        model_name='File',
        object_id=path[:100],
        object_name=upload.name,
        changes={'path': path, 'folder': folder, 'size': upload.size},
    )
    logger.info(f"File {path} uploaded by {request.user.username} ({upload.size} bytes)")
    return Response({'path': path, 'url': default_storage.url(path)}, status=status.HTTP_201_CREATED)
