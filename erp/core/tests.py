"""
Test suite for the core app
Tests: money arithmetic, document numbering, auth and roles, transaction
password, audit logs, global search, the Excel backup and file uploads
"""
import io
import os
import shutil
import tempfile
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone
from openpyxl import load_workbook
from rest_framework import status

from erp.core.models import AuditLog, RolePermission, Setting, User, UserRoleAssignment
from erp.core.money import document_totals, fx_total, line_total, quantize_kwd
from erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from erp.core.transaction_password import TRANSACTION_PASSWORD_KEY
from erp.core.utils import next_document_number
from erp.purchasing.models import PurchaseOrderDraft


class MoneyTests(TestCase):
    """Rounding rules for KWD and FX amounts"""

    def test_line_total_rounds_half_up_to_three_places(self):
        self.assertEqual(line_total(3, '1.2345'), Decimal('3.704'))

    def test_fx_total_rounds_to_two_places(self):
        self.assertEqual(fx_total(Decimal('10.000'), '12.3456'), Decimal('123.46'))

    def test_fx_total_without_rate(self):
        self.assertIsNone(fx_total(Decimal('10.000'), None))
        self.assertIsNone(fx_total(Decimal('10.000'), '0'))

    def test_document_totals(self):
        lines = [
            {'quantity': 2, 'price_kwd': Decimal('95.500')},
            {'quantity': 1, 'price_kwd': Decimal('10.125')},
        ]
        lines, total_kwd, total_fx = document_totals(lines, fx_rate=Decimal('12.0000'))
        self.assertEqual(lines[0]['total_kwd'], Decimal('191.000'))
        self.assertEqual(total_kwd, Decimal('201.125'))
        self.assertEqual(total_fx, Decimal('2413.50'))

    def test_quantize_none_is_zero(self):
        self.assertEqual(quantize_kwd(None), Decimal('0.000'))


class DocumentNumberTests(TestCase):

    def test_first_number(self):
        self.assertEqual(next_document_number(PurchaseOrderDraft, 'po_number', 'PO'), 'PO-0001')

    def test_follows_highest_numeric_suffix(self):
        today = timezone.localdate()
        PurchaseOrderDraft.objects.create(po_number='PO-0009', po_date=today)
        PurchaseOrderDraft.objects.create(po_number='PO-0002', po_date=today)
        PurchaseOrderDraft.objects.create(po_number='PO-SPECIAL', po_date=today)
        self.assertEqual(next_document_number(PurchaseOrderDraft, 'po_number', 'PO'), 'PO-0010')


class AuthAPITests(TestCase):
    """Registration, login and role flags"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.password = 'Kw-Shop#2024pass'

    def _register(self, username, **extra):
        data = {
            'username': username,
            'email': f'{username}@test.com',
            'password': self.password,
            'password_confirm': self.password,
            **extra,
        }
        return self.client.post('/api/auth/register/', data, format='json')

    def test_first_registered_user_is_admin(self):
        """Test the first account becomes admin and later ones stay viewers"""
        response = self._register('owner')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'admin')
        self.assertIn('access', response.data)

        response = self._register('clerk', role='admin')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'viewer')

    def test_register_password_mismatch(self):
        response = self._register('owner', password_confirm='something-else-1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_returns_tokens_and_user(self):
        TestDataFactory.create_user(username='manager1', password=self.password, role='manager')
        response = self.client.post('/api/auth/login/', {
            'username': 'manager1',
            'password': self.password,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'manager')

    def test_me_flags_for_staff(self):
        staff = TestDataFactory.create_user(role='staff')
        self.client.authenticate_user(staff)
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertTrue(response.data['can_write'])
        self.assertFalse(response.data['can_delete'])

    def test_printer_type_update(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.patch('/api/auth/me/printer-type/', {'printer_type': 'thermal'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.printer_type, 'thermal')

    def test_unauthenticated_request_rejected(self):
        response = self.client.get('/api/branches/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class RolePermissionTests(TestCase):
    """Viewers read, staff write, only admins delete"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.branch = TestDataFactory.create_branch()

    def test_viewer_can_read_but_not_write(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='viewer'))
        self.assertEqual(self.client.get('/api/branches/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/branches/', {'name': 'Salmiya'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_can_write_but_not_delete(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='staff'))
        response = self.client.post('/api/branches/', {'name': 'Salmiya'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.delete(f'/api/branches/{self.branch.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_user_management_is_admin_only(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='manager'))
        self.assertEqual(self.client.get('/api/users/').status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_creates_user_with_role(self):
        admin = TestDataFactory.create_user(role='admin')
        self.client.authenticate_user(admin)
        response = self.client.post('/api/users/', {
            'username': 'cashier',
            'password': 'Kw-Shop#2024pass',
            'password_confirm': 'Kw-Shop#2024pass',
            'role': 'staff',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(username='cashier').role, 'staff')

    def test_admin_cannot_delete_self(self):
        admin = TestDataFactory.create_user(role='admin')
        self.client.authenticate_user(admin)
        response = self.client.delete(f'/api/users/{admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ModuleAccessTests(TestCase):
    """Per-role module switches and branch-locked role assignments"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin')
        self.admin_client = AuthenticatedAPIClient()
        self.admin_client.authenticate_user(self.admin)
        self.staff = TestDataFactory.create_user(role='staff')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.staff)

    def test_module_switched_off_for_role(self):
        self.assertEqual(self.client.get('/api/items/').status_code, status.HTTP_200_OK)
        response = self.admin_client.put('/api/role-permissions/', {
            'role': 'staff',
            'module_name': 'items',
            'can_access': False,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.assertEqual(self.client.get('/api/items/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get('/api/reports/item-sales/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.admin_client.get('/api/items/').status_code, status.HTTP_200_OK)

        response = self.client.get('/api/my-permissions/')
        self.assertEqual(response.data['role'], 'staff')
        self.assertNotIn('items', response.data['modules'])
        self.assertIn('sales', response.data['modules'])
        self.assertIsNone(response.data['assigned_branch'])

    def test_switch_is_upserted(self):
        for can_access in (False, True):
            self.admin_client.put('/api/role-permissions/', {
                'role': 'staff', 'module_name': 'reports', 'can_access': can_access,
            }, format='json')
        self.assertEqual(RolePermission.objects.count(), 1)
        self.assertTrue(RolePermission.objects.get().can_access)
        self.assertEqual(AuditLog.objects.filter(action='permission_change').count(), 2)

    def test_unknown_module_rejected(self):
        response = self.admin_client.put('/api/role-permissions/', {
            'role': 'staff', 'module_name': 'payroll', 'can_access': False,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_permissions_managed_by_admin_only(self):
        self.assertEqual(self.client.get('/api/role-permissions/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get('/api/user-role-assignments/').status_code, status.HTTP_403_FORBIDDEN)

    def test_assignment_sets_role_and_locks_branch(self):
        home = TestDataFactory.create_branch(name='Hawally')
        other = TestDataFactory.create_branch(name='Fahaheel')
        response = self.admin_client.post('/api/user-role-assignments/', {
            'user': self.staff.id,
            'role': 'manager',
            'branch': home.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['branch_name'], 'Hawally')
        self.staff.refresh_from_db()
        self.assertEqual(self.staff.role, 'manager')

        response = self.client.get('/api/my-permissions/')
        self.assertEqual(response.data['assigned_branch'], home.id)

        item = TestDataFactory.create_item(name='Nokia 105')
        adjustment = {'item': item.id, 'quantity': 4, 'unit_cost_kwd': '6.000', 'effective_date': '2026-01-01'}
        response = self.client.post('/api/inventory-adjustments/', {**adjustment, 'branch': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post('/api/inventory-adjustments/', {**adjustment, 'branch': home.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        assignment_id = UserRoleAssignment.objects.get(user=self.staff).id
        response = self.admin_client.delete(f'/api/user-role-assignments/{assignment_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.post('/api/inventory-adjustments/', {**adjustment, 'branch': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_one_assignment_per_user(self):
        self.admin_client.post('/api/user-role-assignments/', {'user': self.staff.id, 'role': 'staff'}, format='json')
        response = self.admin_client.post('/api/user-role-assignments/', {'user': self.staff.id, 'role': 'viewer'},
                                          format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TransactionPasswordTests(TestCase):
    """Setting, verifying and enforcing the transaction password"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def _set_password(self, password='4321', current=None):
        data = {'password': password}
        if current is not None:
            data['current_password'] = current
        return self.client.post('/api/settings/transaction-password/', data, format='json')

    def test_status_and_verify_without_password(self):
        response = self.client.get('/api/settings/transaction-password-status/')
        self.assertFalse(response.data['is_set'])
        response = self.client.post('/api/settings/verify-transaction-password/', {'password': 'x'}, format='json')
        self.assertTrue(response.data['valid'])

    def test_set_and_verify(self):
        response = self._set_password()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_set'])

        stored = Setting.objects.get(key=TRANSACTION_PASSWORD_KEY)
        self.assertNotEqual(stored.value, '4321')

        response = self.client.post('/api/settings/verify-transaction-password/', {'password': '4321'}, format='json')
        self.assertTrue(response.data['valid'])
        response = self.client.post('/api/settings/verify-transaction-password/', {'password': '0000'}, format='json')
        self.assertFalse(response.data['valid'])
        self.assertTrue(AuditLog.objects.filter(action='transaction_password_change').exists())

    def test_too_short_password_rejected(self):
        response = self._set_password(password='123')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_requires_current_password(self):
        self._set_password()
        response = self._set_password(password='9999', current='wrong')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self._set_password(password='9999', current='4321')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_clear_password(self):
        self._set_password()
        response = self.client.delete('/api/settings/transaction-password/', {'current_password': 'bad'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.delete('/api/settings/transaction-password/', {'current_password': '4321'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_set'])

    def test_settings_list_hides_password(self):
        self._set_password()
        Setting.objects.create(key='shop_phone', value='22223333')
        response = self.client.get('/api/settings/')
        keys = [row['key'] for row in response.data]
        self.assertEqual(keys, ['shop_phone'])
        response = self.client.post('/api/settings/', {'key': TRANSACTION_PASSWORD_KEY, 'value': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_guarded_delete_requires_password(self):
        """Test deleting a payment needs the password once one is set"""
        payment = TestDataFactory.create_payment(customer=TestDataFactory.create_customer())
        self._set_password()

        response = self.client.delete(f'/api/payments/{payment.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/payments/{payment.id}/', HTTP_X_TRANSACTION_PASSWORD='0000')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/payments/{payment.id}/', HTTP_X_TRANSACTION_PASSWORD='4321')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class AuditLogAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_writes_are_audited_and_filterable(self):
        self.client.post('/api/branches/', {'name': 'Hawally'}, format='json')
        self.client.post('/api/items/', {'name': 'iPhone 15'}, format='json')

        response = self.client.get('/api/audit-logs/', {'model_name': 'Branch'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['object_name'], 'Hawally')
        self.assertEqual(response.data[0]['username'], self.admin.username)

        response = self.client.get('/api/audit-logs/', {'search': 'iphone'})
        self.assertEqual(len(response.data), 1)

    def test_non_admin_cannot_read(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='manager'))
        response = self.client.get('/api/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class GlobalSearchTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_empty_query_returns_empty_groups(self):
        response = self.client.get('/api/search/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'], [])
        self.assertEqual(response.data['imeis'], [])

    def test_search_across_groups(self):
        TestDataFactory.create_item(name='Samsung Galaxy A54')
        TestDataFactory.create_customer(name='Galaxy Mobiles')
        TestDataFactory.create_supplier(name='Apple Trading')

        response = self.client.get('/api/search/', {'q': 'galaxy'})
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(len(response.data['customers']), 1)
        self.assertEqual(response.data['suppliers'], [])

    def test_search_finds_imei(self):
        imei = TestDataFactory.create_stock('Galaxy A54')[0]
        response = self.client.get('/api/search/', {'q': imei[-6:]})
        self.assertEqual([row['imei'] for row in response.data['imeis']], [imei])


class BackupTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user(role='admin')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_backup_download(self):
        TestDataFactory.create_item(name='Galaxy A54')
        response = self.client.get('/api/backup/download/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('ERP_Backup_', response['Content-Disposition'])

        workbook = load_workbook(io.BytesIO(response.content))
        self.assertIn('Items', workbook.sheetnames)
        self.assertIn('IMEI Events', workbook.sheetnames)
        items = workbook['Items']
        headers = [cell.value for cell in items[1]]
        self.assertIn('name', headers)
        self.assertEqual(items.cell(row=2, column=headers.index('name') + 1).value, 'Galaxy A54')

        log = AuditLog.objects.get(action='backup_download')
        self.assertEqual(log.changes['sheets']['Items'], 1)
        self.assertEqual(log.changes['sheets']['Accounts'], 5)

    def test_backup_is_admin_only(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='staff'))
        response = self.client.get('/api/backup/download/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_backup_drops_control_characters(self):
        TestDataFactory.create_customer(name='Ali\x0bKhan')
        response = self.client.get('/api/backup/download/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        parties = load_workbook(io.BytesIO(response.content))['Parties']
        headers = [cell.value for cell in parties[1]]
        self.assertEqual(parties.cell(row=2, column=headers.index('name') + 1).value, 'AliKhan')


class FileUploadTests(TestCase):

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        settings_override = override_settings(MEDIA_ROOT=self.media_root)
        settings_override.enable()
        self.addCleanup(settings_override.disable)
        self.user = TestDataFactory.create_user(role='staff')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_upload_stores_file_and_returns_path(self):
        upload = SimpleUploadedFile('INV 001.pdf', b'%PDF-1.4 invoice', content_type='application/pdf')
        response = self.client.post('/api/files/upload/', {'file': upload, 'folder': 'invoices'},
                                    format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        path = response.data['path']
        self.assertTrue(path.startswith('uploads/invoices/'))
        self.assertTrue(path.endswith('.pdf'))
        self.assertIn(path, response.data['url'])
        with open(os.path.join(self.media_root, path), 'rb') as stored:
            self.assertEqual(stored.read(), b'%PDF-1.4 invoice')
        self.assertTrue(AuditLog.objects.filter(action='file_upload', object_id=path).exists())

    def test_path_is_saved_on_purchase_order(self):
        upload = SimpleUploadedFile('tt.png', b'\x89PNG', content_type='image/png')
        path = self.client.post('/api/files/upload/', {'file': upload, 'folder': 'tt_copies'},
                                format='multipart').data['path']
        order = TestDataFactory.create_purchase_order(self.user)
        response = self.client.patch(f'/api/purchase-orders/{order.id}/', {'tt_copy_file_path': path},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tt_copy_file_path'], path)

    def test_same_name_twice_keeps_both(self):
        first = self.client.post('/api/files/upload/', {
            'file': SimpleUploadedFile('receipt.pdf', b'one')}, format='multipart').data['path']
        second = self.client.post('/api/files/upload/', {
            'file': SimpleUploadedFile('receipt.pdf', b'two')}, format='multipart').data['path']
        self.assertNotEqual(first, second)

    def test_rejects_missing_file_bad_folder_and_type(self):
        response = self.client.post('/api/files/upload/', {'folder': 'invoices'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/files/upload/', {
            'file': SimpleUploadedFile('a.pdf', b'x'), 'folder': '../etc'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/files/upload/', {
            'file': SimpleUploadedFile('run.sh', b'x')}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rejects_oversized_file(self):
        with override_settings(MAX_UPLOAD_SIZE=4):
            response = self.client.post('/api/files/upload/', {
                'file': SimpleUploadedFile('big.pdf', b'12345')}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_viewer_cannot_upload(self):
        self.client.authenticate_user(TestDataFactory.create_user(role='viewer'))
        response = self.client.post('/api/files/upload/', {
            'file': SimpleUploadedFile('a.pdf', b'x')}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
