"""Administrator account management, statistics and the audit trail."""
from django.core.cache import cache
from django.urls import reverse
from rest_framework.test import APITestCase

from clinic.models import AuditLog, User
from clinic.services.users import STATS_CACHE_KEY

from .helpers import make_admin, make_doctor, make_patient, make_staff


class AdminUserTests(APITestCase):
    def setUp(self) -> None:
        self.admin = make_admin()
        self.client.force_authenticate(user=self.admin)

    def test_created_accounts_are_always_staff(self):
        r = self.client.post(reverse('admin_users'), {
            'name': 'Dr. New', 'email': 'New.Doc@Example.com', 'password': 'secret123',
            'specialization': 'Neurology', 'role': 'Admin',
        }, format='json')
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.data['data']['role'], User.ROLE_STAFF)
        self.assertEqual(r.data['data']['email'], 'new.doc@example.com')
        self.assertTrue(AuditLog.objects.filter(action='CREATE_USER', user=self.admin).exists())

        r = self.client.post(reverse('admin_users'), {
            'name': 'Dup', 'email': 'new.doc@example.com', 'password': 'secret123',
        }, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error'], 'User already exists with this email')

    def test_list_is_paginated_and_filtered(self):
        for i in range(3):
            make_patient(email=f'p{i}@example.com', name=f'Patient {i}')
        make_doctor()
        r = self.client.get(reverse('admin_users'), {'role': 'Patient', 'limit': 2})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(r.data['data']['users']), 2)
        self.assertEqual(r.data['data']['pagination'], {'page': 1, 'limit': 2, 'total': 3, 'pages': 2})

        r = self.client.get(reverse('admin_users'), {'specialization': 'cardio'})
        self.assertEqual([u['email'] for u in r.data['data']['users']], ['doctor@example.com'])

    def test_status_requires_boolean(self):
        staff = make_staff()
        url = reverse('admin_user_status', args=[staff.id])
        r = self.client.patch(url, {'isActive': 'no'}, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error'], 'isActive must be a boolean')
        self.assertEqual(self.client.patch(url, {}, format='json').status_code, 400)

        r = self.client.patch(url, {'isActive': False}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertFalse(r.data['data']['isActive'])
        self.assertFalse(User.objects.get(id=staff.id).is_active)

    def test_update_user(self):
        staff = make_staff()
        r = self.client.put(reverse('admin_user_detail', args=[staff.id]),
                            {'department': 'Radiology', 'licenseNumber': 'LIC-42'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['department'], 'Radiology')
        self.assertEqual(r.data['data']['licenseNumber'], 'LIC-42')

    def test_delete_user_but_not_self(self):
        r = self.client.delete(reverse('admin_user_detail', args=[self.admin.id]))
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error'], 'You cannot delete your own account')

        patient = make_patient()
        r = self.client.delete(reverse('admin_user_detail', args=[patient.id]))
        self.assertEqual(r.status_code, 200)
        self.assertFalse(User.objects.filter(id=patient.id).exists())
        self.assertTrue(AuditLog.objects.filter(action='DELETE_USER', resource_id=str(patient.id)).exists())

    def test_stats_are_cached_until_a_write(self):
        make_patient()
        make_doctor()
        r = self.client.get(reverse('admin_user_stats'))
        stats = r.data['data']
        self.assertEqual(stats['totalUsers'], 3)
        self.assertEqual(stats['byRole'], {'staff': 1, 'patient': 1, 'admin': 1, 'doctors': 1})
        self.assertIsNotNone(cache.get(STATS_CACHE_KEY))

        User.objects.create_user(email='bypass@example.com', password='x', name='Bypass', role=User.ROLE_PATIENT)
        self.assertEqual(self.client.get(reverse('admin_user_stats')).data['data']['totalUsers'], 3)

        self.client.post(reverse('admin_users'), {
            'name': 'Staff Two', 'email': 'staff2@example.com', 'password': 'secret123',
        }, format='json')
        self.assertEqual(self.client.get(reverse('admin_user_stats')).data['data']['totalUsers'], 5)

    def test_audit_log_listing(self):
        make_staff()
        self.client.post(reverse('admin_users'), {
            'name': 'Staff Two', 'email': 'staff2@example.com', 'password': 'secret123',
        }, format='json')
        r = self.client.get(reverse('admin_audit_logs'), {'action': 'CREATE_USER'})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(r.data['data']), 1)
        entry = r.data['data'][0]
        self.assertEqual(entry['userId'], self.admin.id)
        self.assertEqual(entry['userRole'], 'Admin')
        self.assertIsNotNone(entry['timestamp'])

        self.assertEqual(self.client.get(reverse('admin_audit_logs'), {'limit': 'x'}).status_code, 400)
        self.assertEqual(self.client.get(reverse('admin_audit_logs'), {'userId': 'abc'}).status_code, 400)
        r = self.client.get(reverse('admin_audit_logs'), {'userId': self.admin.id, 'limit': 1})
        self.assertEqual(len(r.data['data']), 1)


class DirectoryTests(APITestCase):
    def test_staff_directory_and_patient_search(self):
        nurse = make_staff()
        make_patient(email='jane@example.com', name='Jane Roe')
        make_patient(email='john@example.com', name='John Doe')
        make_patient(email='gone@example.com', name='Jane Gone', is_active=False)
        self.client.force_authenticate(user=nurse)

        r = self.client.get(reverse('users_patients'), {'search': 'jane'})
        self.assertEqual([p['name'] for p in r.data['data']], ['Jane Roe'])
        r = self.client.get(reverse('users_staff'))
        self.assertEqual([s['id'] for s in r.data['data']], [nurse.id])

    def test_patient_cannot_browse_directory(self):
        self.client.force_authenticate(user=make_patient())
        self.assertEqual(self.client.get(reverse('users_patients')).status_code, 403)
