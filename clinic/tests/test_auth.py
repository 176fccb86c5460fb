"""
Authentication, the response envelope and role gating.

Login tests go through the real endpoint; the rest authenticate with
``force_authenticate``.
"""
import pytest
from django.contrib.auth.models import AnonymousUser
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APIRequestFactory, APITestCase

from clinic.models import AuditLog, User
from clinic.permissions import IsAdminRole, IsPatientRole, IsStaffOrAdmin

from .helpers import PASSWORD, make_admin, make_doctor, make_patient

pytestmark = pytest.mark.django_db


def login(client, email, password):
    return client.post(reverse('login_view'), {'email': email, 'password': password}, format='json')


def test_login_returns_tokens_and_user():
    make_patient()
    r = login(APIClient(), 'patient@example.com', PASSWORD)
    assert r.status_code == 200
    assert r.data['success'] is True
    assert r.data['error'] is None
    assert r.data['data']['token']
    assert r.data['data']['refresh']
    assert r.data['data']['user']['role'] == 'Patient'


def test_login_is_case_insensitive_on_email():
    make_patient()
    r = login(APIClient(), 'Patient@Example.com', PASSWORD)
    assert r.status_code == 200


def test_login_wrong_password_and_unknown_email_share_message():
    make_patient()
    client = APIClient()
    wrong = login(client, 'patient@example.com', 'nope-nope')
    unknown = login(client, 'ghost@example.com', PASSWORD)
    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.data == {'success': False, 'data': None, 'error': 'Invalid credentials'}
    assert unknown.data['error'] == 'Invalid credentials'
    assert AuditLog.objects.filter(action='LOGIN', status=AuditLog.STATUS_FAILURE).count() == 2


def test_login_rejects_deactivated_account():
    make_patient(is_active=False)
    r = login(APIClient(), 'patient@example.com', PASSWORD)
    assert r.status_code == 401
    assert r.data['error'] == 'Account is deactivated'


def test_login_validation_error_uses_envelope():
    r = APIClient().post(reverse('login_view'), {'email': 'not-an-email'}, format='json')
    assert r.status_code == 400
    assert r.data['success'] is False
    assert r.data['data'] is None
    assert 'password' in r.data['error']


def test_bearer_token_authenticates_requests():
    make_patient()
    client = APIClient()
    token = login(client, 'patient@example.com', PASSWORD).data['data']['token']
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    r = client.get(reverse('me_view'))
    assert r.status_code == 200
    assert r.data['data']['email'] == 'patient@example.com'


def test_register_creates_patient_and_refuses_other_roles():
    client = APIClient()
    r = client.post(reverse('register_view'),
                    {'name': 'New Person', 'email': 'new@example.com', 'password': 'secret1'}, format='json')
    assert r.status_code == 201
    assert User.objects.get(email='new@example.com').role == User.ROLE_PATIENT

    r = client.post(reverse('register_view'),
                    {'name': 'Sneaky', 'email': 'sneaky@example.com', 'password': 'secret1', 'role': 'Admin'},
                    format='json')
    assert r.status_code == 403
    assert not User.objects.filter(email='sneaky@example.com').exists()


def test_register_duplicate_email():
    make_patient()
    r = APIClient().post(reverse('register_view'),
                         {'name': 'Again', 'email': 'patient@example.com', 'password': 'secret1'}, format='json')
    assert r.status_code == 400
    assert r.data['error'] == 'User already exists with this email'


def test_refresh_and_logout_blacklists_token():
    make_patient()
    client = APIClient()
    data = login(client, 'patient@example.com', PASSWORD).data['data']
    r = client.post(reverse('refresh_view'), {'refresh': data['refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['data']['token']
    rotated = r.data['data']['refresh']

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {data['token']}")
    r = client.post(reverse('logout_view'), {'refresh': rotated}, format='json')
    assert r.status_code == 200
    assert AuditLog.objects.filter(action='LOGOUT').exists()

    client.credentials()
    for stale in (data['refresh'], rotated):
        r = client.post(reverse('refresh_view'), {'refresh': stale}, format='json')
        assert r.status_code == 401


def test_update_password_requires_current_password():
    make_patient()
    client = APIClient()
    token = login(client, 'patient@example.com', PASSWORD).data['data']['token']
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    r = client.put(reverse('update_password_view'),
                   {'currentPassword': 'wrong-one', 'newPassword': 'brandnew1'}, format='json')
    assert r.status_code == 401
    r = client.put(reverse('update_password_view'),
                   {'currentPassword': PASSWORD, 'newPassword': 'brandnew1'}, format='json')
    assert r.status_code == 200
    assert login(APIClient(), 'patient@example.com', 'brandnew1').status_code == 200


class GatingTests(APITestCase):
    def setUp(self) -> None:
        self.patient = make_patient()
        self.doctor = make_doctor()
        self.admin = make_admin()

    def test_anonymous_gets_401_envelope(self):
        r = self.client.get(reverse('appointments_me'))
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(r.data['success'])
        self.assertIsNone(r.data['data'])
        self.assertTrue(r.data['error'])

    def test_patient_cannot_reach_staff_routes(self):
        self.client.force_authenticate(user=self.patient)
        for name in ('appointments_all', 'labs_pending', 'inventory_list', 'triage_list'):
            r = self.client.get(reverse(name))
            self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN, name)

    def test_staff_cannot_reach_admin_routes(self):
        self.client.force_authenticate(user=self.doctor)
        self.assertEqual(self.client.get(reverse('admin_users')).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get(reverse('admin_audit_logs')).status_code, status.HTTP_403_FORBIDDEN)

    def test_role_permission_classes(self):
        factory = APIRequestFactory()
        expected = {
            IsPatientRole: {'Patient'},
            IsStaffOrAdmin: {'Staff', 'Admin'},
            IsAdminRole: {'Admin'},
        }
        for permission, allowed in expected.items():
            for user in (self.patient, self.doctor, self.admin, AnonymousUser()):
                request = factory.get('/')
                request.user = user
                granted = permission().has_permission(request, None)
                self.assertEqual(granted, getattr(user, 'role', None) in allowed, (permission.__name__, user))

    def test_health_is_public(self):
        r = self.client.get(reverse('api_health'))
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data['success'])
        self.assertEqual(r.data['data']['db'], 'ok')

    def test_profile_role_data(self):
        self.client.force_authenticate(user=self.doctor)
        r = self.client.get(reverse('profile'))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['displayRole'], 'Doctor')
        self.assertTrue(r.data['data']['roleData']['isDoctor'])

        self.client.force_authenticate(user=self.patient)
        r = self.client.put(reverse('profile'), {'bloodType': 'O+', 'phone': '555-0100'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['roleData']['bloodGroup'], 'O+')
        self.assertEqual(r.data['data']['roleData']['recentAppointments'], [])
