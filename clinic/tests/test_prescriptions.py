"""E-prescriptions: pharmacy checks, clarification and dispensing."""
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import AuditLog, EPrescription, Inventory, Notification

from .helpers import make_admin, make_doctor, make_patient, make_staff

pytestmark = pytest.mark.django_db


@pytest.fixture
def doctor():
    return make_doctor()


@pytest.fixture
def pharmacist():
    return make_staff(email='pharmacy@example.com', name='Pharmacist')


@pytest.fixture
def patient():
    return make_patient()


def client_for(user) -> APIClient:
    c = APIClient()
    c.force_authenticate(user=user)
    return c


def prescribe(doctor, patient, *names):
    r = client_for(doctor).post(reverse('prescriptions_create'), {
        'patientId': patient.id,
        'medications': [{'name': n, 'dosage': '500mg', 'frequency': 'twice daily'} for n in names],
    }, format='json')
    assert r.status_code == 201
    return r.data['data']['id']


def test_create_requires_medications(doctor, patient):
    r = client_for(doctor).post(reverse('prescriptions_create'), {'patientId': patient.id, 'medications': []},
                                format='json')
    assert r.status_code == 400
    assert r.data['success'] is False


def test_patient_cannot_prescribe(patient):
    r = client_for(patient).post(reverse('prescriptions_create'), {
        'patientId': patient.id, 'medications': [{'name': 'X', 'dosage': '1', 'frequency': 'daily'}],
    }, format='json')
    assert r.status_code == 403


def test_dispense_once_only(doctor, pharmacist, patient):
    Inventory.objects.create(drug_name='Amoxicillin', quantity=50, reorder_level=5)
    rx_id = prescribe(doctor, patient, 'Amoxicillin')
    c = client_for(pharmacist)

    r = c.post(reverse('prescription_dispense', args=[rx_id]), {}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Dispensed'
    assert Inventory.objects.get(drug_name='Amoxicillin').quantity == 49
    assert Notification.objects.filter(recipient=patient, type='PRESCRIPTION_DISPENSED').exists()

    r = c.post(reverse('prescription_dispense', args=[rx_id]), {}, format='json')
    assert r.status_code == 400
    assert r.data['error'] == 'Prescription already dispensed'
    assert Inventory.objects.get(drug_name='Amoxicillin').quantity == 49
    assert AuditLog.objects.filter(action='DISPENSE_PRESCRIPTION').count() == 1


def test_partial_dispense_then_complete(doctor, pharmacist, patient):
    Inventory.objects.create(drug_name='Ibuprofen', quantity=20)
    rx_id = prescribe(doctor, patient, 'Ibuprofen', 'Metformin')
    c = client_for(pharmacist)

    r = c.post(reverse('prescription_dispense', args=[rx_id]), {}, format='json')
    assert r.status_code == 206
    assert r.data['data']['status'] == 'Partially_Dispensed'
    assert r.data['data']['message'] == 'Prescription partially dispensed'
    assert [u['medicationName'] for u in r.data['data']['unavailableMedications']] == ['Metformin']
    assert Notification.objects.filter(recipient=doctor, type='PARTIAL_DISPENSE').exists()
    assert AuditLog.objects.get(action='DISPENSE_PRESCRIPTION').status == 'Partial'

    r = c.post(reverse('prescription_dispense', args=[rx_id]), {}, format='json')
    assert r.status_code == 400
    assert r.data['error'] == 'None of the outstanding medications are in stock'

    Inventory.objects.create(drug_name='Metformin', quantity=30)
    r = c.post(reverse('prescription_dispense', args=[rx_id]), {}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Dispensed'
    assert Inventory.objects.get(drug_name='Ibuprofen').quantity == 19
    assert len(r.data['data']['dispensedMedications']) == 2


def test_low_stock_alerts_admins(doctor, pharmacist, patient):
    admin = make_admin()
    Inventory.objects.create(drug_name='Warfarin', quantity=6, reorder_level=5)
    rx_id = prescribe(doctor, patient, 'Warfarin')
    client_for(pharmacist).post(reverse('prescription_dispense', args=[rx_id]), {}, format='json')
    item = Inventory.objects.get(drug_name='Warfarin')
    assert item.status == Inventory.STATUS_LOW
    note = Notification.objects.get(recipient=admin, type='INVENTORY_LOW')
    assert 'Warfarin' in note.title


def test_clarification_round_trip(doctor, pharmacist, patient):
    Inventory.objects.create(drug_name='Lisinopril', quantity=10)
    rx_id = prescribe(doctor, patient, 'Lisinopril')
    c = client_for(pharmacist)

    r = c.post(reverse('prescription_clarify', args=[rx_id]), {'reason': 'Dose looks high'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Clarification_Required'
    assert Notification.objects.filter(recipient=doctor, type='PRESCRIPTION_UNCLEAR').exists()

    r = c.post(reverse('prescription_dispense', args=[rx_id]), {}, format='json')
    assert r.status_code == 400
    assert r.data['error'] == 'Prescription is awaiting clarification'

    r = client_for(pharmacist).post(reverse('prescription_respond_clarification', args=[rx_id]),
                                   {'response': 'Use 10mg'}, format='json')
    assert r.status_code == 403

    r = client_for(doctor).post(reverse('prescription_respond_clarification', args=[rx_id]),
                               {'response': 'Use 10mg'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Pending'
    assert r.data['data']['clarificationRequest']['resolved'] is True
    assert Notification.objects.filter(recipient=pharmacist, title='Prescription Clarified').exists()


def test_check_inventory_and_alternatives(doctor, pharmacist, patient):
    Inventory.objects.create(drug_name='Atorvastatin', quantity=0, alternatives=[{'drugName': 'Simvastatin'}])
    rx_id = prescribe(doctor, patient, 'Atorvastatin')
    c = client_for(pharmacist)

    r = c.post(reverse('prescription_check_inventory', args=[rx_id]))
    assert r.status_code == 200
    assert r.data['data']['allAvailable'] is False
    assert r.data['data']['medications'][0]['alternatives'] == [{'drugName': 'Simvastatin'}]

    r = c.post(reverse('prescription_suggest_alternative', args=[rx_id]), {
        'medicationName': 'Atorvastatin', 'alternatives': ['Simvastatin'],
    }, format='json')
    assert r.status_code == 200
    assert Notification.objects.get(recipient=doctor, type='DRUG_UNAVAILABLE').priority == 'Urgent'


def test_status_update_is_staff_only(doctor, pharmacist, patient):
    rx_id = prescribe(doctor, patient, 'Aspirin')
    r = client_for(patient).put(reverse('prescription_detail', args=[rx_id]), {'status': 'Rejected'}, format='json')
    assert r.status_code == 403
    r = client_for(pharmacist).put(reverse('prescription_detail', args=[rx_id]), {'status': 'Rejected'},
                                   format='json')
    assert r.status_code == 200
    assert EPrescription.objects.get(id=rx_id).status == 'Rejected'


def test_patient_sees_own_prescriptions(doctor, patient):
    rx_id = prescribe(doctor, patient, 'Aspirin')
    r = client_for(patient).get(reverse('prescription_detail', args=[rx_id]))
    assert r.status_code == 200
    other = make_patient(email='other@example.com', name='Other')
    assert client_for(other).get(reverse('prescription_detail', args=[rx_id])).status_code == 403


def test_expired_prescription_cannot_be_dispensed(doctor, pharmacist, patient):
    Inventory.objects.create(drug_name='Amoxicillin', quantity=10)
    rx_id = prescribe(doctor, patient, 'Amoxicillin')
    EPrescription.objects.filter(id=rx_id).update(expires_at=timezone.now() - timedelta(minutes=1))

    r = client_for(pharmacist).post(reverse('prescription_dispense', args=[rx_id]), {}, format='json')
    assert r.status_code == 400
    assert r.data['error'] == 'Prescription has expired'
    assert EPrescription.objects.get(id=rx_id).status == EPrescription.STATUS_EXPIRED
    assert Inventory.objects.get(drug_name='Amoxicillin').quantity == 10


def test_all_prescriptions_filters(doctor, pharmacist, patient):
    rx_id = prescribe(doctor, patient, 'Amoxicillin')
    c = client_for(pharmacist)
    r = c.get(reverse('prescriptions_all'), {'patientId': patient.id, 'status': 'Pending'})
    assert r.status_code == 200
    assert [p['id'] for p in r.data['data']] == [rx_id]
    assert c.get(reverse('prescriptions_all'), {'patientId': 'abc'}).status_code == 400
    assert c.get(reverse('prescriptions_all'), {'doctorId': 'abc'}).status_code == 400
    assert c.get(reverse('prescriptions_all'), {'status': 'Lost'}).status_code == 400
