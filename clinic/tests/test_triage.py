"""Emergency triage queue and bed assignment."""
from django.urls import reverse
from rest_framework.test import APITestCase

from clinic.models import AuditLog, Bed, Notification, TriageRecord
from clinic.services.triage import MISSING_PATIENT

from .helpers import make_doctor, make_patient, make_staff


def triage_payload(patient, severity='Normal', **extra):
    return {
        'patientId': patient.id,
        'vitals': {'bp': '120/80', 'hr': 88, 'temp': '37.2'},
        'symptoms': 'Chest pain',
        'severityLevel': severity,
        **extra,
    }


class TriageTests(APITestCase):
    def setUp(self) -> None:
        self.nurse = make_staff(email='nurse@example.com', name='ER Nurse')
        self.patient = make_patient(digital_health_card_id='DHC-0001')
        self.client.force_authenticate(user=self.nurse)

    def test_create_flattens_vitals_and_audits(self):
        r = self.client.post(reverse('triage_list'), triage_payload(self.patient, 'Urgent'), format='json')
        self.assertEqual(r.status_code, 201)
        data = r.data['data']
        self.assertEqual(data['vitals']['bp'], '120/80')
        self.assertEqual(data['vitals']['hr'], 88)
        self.assertEqual(data['admissionStatus'], 'Queued')
        record = TriageRecord.objects.get(id=data['id'])
        self.assertEqual(record.heart_rate, 88)
        self.assertTrue(AuditLog.objects.filter(action='CREATE_TRIAGE', resource_id=str(record.id)).exists())

    def test_queue_orders_by_severity(self):
        for severity in ('Normal', 'Stable', 'Critical', 'Urgent'):
            self.client.post(reverse('triage_list'), triage_payload(self.patient, severity), format='json')
        r = self.client.get(reverse('triage_list'))
        self.assertEqual([t['severityLevel'] for t in r.data['data']], ['Critical', 'Urgent', 'Stable', 'Normal'])

        r = self.client.get(reverse('triage_list'), {'severityLevel': 'Stable'})
        self.assertEqual(len(r.data['data']), 1)

    def test_patient_cannot_triage(self):
        self.client.force_authenticate(user=self.patient)
        r = self.client.post(reverse('triage_list'), triage_payload(self.patient), format='json')
        self.assertEqual(r.status_code, 403)

    def test_verify_patient_by_card(self):
        r = self.client.post(reverse('triage_verify_patient'),
                             {'digitalHealthCardId': self.patient.digital_health_card_id}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data['data']['verified'])
        self.assertEqual(r.data['data']['patient']['id'], self.patient.id)

    def test_verify_unknown_patient(self):
        r = self.client.post(reverse('triage_verify_patient'), {'patientId': 99999}, format='json')
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.data['error'], MISSING_PATIENT)
        self.assertTrue(AuditLog.objects.filter(action='VERIFY_PATIENT', status='Failure').exists())

    def test_patient_history_is_audited(self):
        self.client.post(reverse('triage_list'), triage_payload(self.patient), format='json')
        r = self.client.get(reverse('triage_patient_history', args=[self.patient.id]))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(r.data['data']['medicalHistory']['triageRecords']), 1)
        self.assertTrue(AuditLog.objects.filter(action='VIEW_PATIENT_HISTORY').exists())

    def test_update_record(self):
        r = self.client.post(reverse('triage_list'), triage_payload(self.patient), format='json')
        url = reverse('triage_detail', args=[r.data['data']['id']])
        r = self.client.put(url, {'severityLevel': 'Critical', 'notes': 'Deteriorating'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['severityLevel'], 'Critical')
        self.assertEqual(r.data['data']['vitals']['bp'], '120/80')


class BedTests(APITestCase):
    def setUp(self) -> None:
        self.nurse = make_staff(email='nurse@example.com', name='ER Nurse')
        self.doctor = make_doctor()
        self.patient = make_patient()
        self.client.force_authenticate(user=self.nurse)
        self.bed = Bed.objects.create(bed_number='ER-1', ward='Emergency')

    def assign(self, patient, **extra):
        return self.client.put(reverse('beds_assign'), {'bedId': self.bed.id, 'patientId': patient.id, **extra},
                               format='json')

    def test_create_bed_and_duplicate(self):
        r = self.client.post(reverse('beds'), {'bedNumber': 'ER-2', 'ward': 'Emergency'}, format='json')
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.data['data']['status'], 'Vacant')
        r = self.client.post(reverse('beds'), {'bedNumber': 'ER-2', 'ward': 'Emergency'}, format='json')
        self.assertEqual(r.status_code, 400)

    def test_assign_links_triage_and_notifies_doctor(self):
        r = self.client.post(reverse('triage_list'), triage_payload(self.patient, 'Critical'), format='json')
        record_id = r.data['data']['id']
        r = self.assign(self.patient, triageRecordId=record_id, notifyDoctorId=self.doctor.id)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['bed']['status'], 'Occupied')
        self.assertEqual(r.data['data']['triageRecord']['admissionStatus'], 'Admitted-ER')
        note = Notification.objects.get(recipient=self.doctor, type='PATIENT_ADMITTED')
        self.assertIn('ER-1', note.message)
        self.assertTrue(AuditLog.objects.filter(action='NOTIFY_DOCTOR').exists())

    def test_occupied_bed_rejected(self):
        self.assertEqual(self.assign(self.patient).status_code, 200)
        other = make_patient(email='other@example.com', name='Other Patient')
        r = self.assign(other)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error'], 'Bed is already occupied')
        self.assertEqual(Bed.objects.get(id=self.bed.id).current_patient_id, self.patient.id)
        failure = AuditLog.objects.get(action='ASSIGN_BED', status='Failure')
        self.assertEqual(failure.error_message, 'Bed is already occupied')

    def test_release_then_reassign(self):
        self.assign(self.patient)
        r = self.client.put(reverse('beds_release', args=[self.bed.id]))
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['status'], 'Vacant')
        self.assertIsNone(r.data['data']['currentPatient'])
        other = make_patient(email='other@example.com', name='Other Patient')
        self.assertEqual(self.assign(other).status_code, 200)

    def test_maintenance_bed_rejected(self):
        self.client.put(reverse('bed_detail', args=[self.bed.id]), {'status': 'Maintenance'}, format='json')
        r = self.assign(self.patient)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error'], 'Bed is under maintenance')
