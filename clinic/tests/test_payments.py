"""Payment records and gateway outcomes."""
import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from clinic.models import Notification, Payment

from .helpers import make_patient, make_staff

pytestmark = pytest.mark.django_db


@pytest.fixture
def patient():
    return make_patient()


@pytest.fixture
def api(patient):
    c = APIClient()
    c.force_authenticate(user=patient)
    return c


def create(api, amount='50.00', **extra):
    return api.post(reverse('payments_create'), {'amount': amount, **extra}, format='json')


def test_create_pending_payment(api, patient):
    r = create(api, currency='eur', description='<span>Consultation</span>')
    assert r.status_code == 201
    data = r.data['data']
    assert data['status'] == 'Pending'
    assert data['currency'] == 'EUR'
    assert data['description'] == 'Consultation'
    assert data['gatewayPaymentId'].startswith('PAY-')
    assert data['userId'] == patient.id


@pytest.mark.parametrize('amount', ['0', '-5.00'])
def test_non_positive_amount_rejected(api, amount):
    r = create(api, amount=amount)
    assert r.status_code == 400
    assert r.data['success'] is False
    assert not Payment.objects.exists()


def test_execute_completes_payment(api):
    payment_id = create(api).data['data']['id']
    r = api.post(reverse('payments_execute'), {'paymentId': payment_id, 'payerId': 'PAYER-1'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Completed'
    assert r.data['data']['payerId'] == 'PAYER-1'

    r = api.post(reverse('payments_execute'), {'paymentId': payment_id, 'payerId': 'PAYER-1'}, format='json')
    assert r.status_code == 400


def test_execute_by_other_user_forbidden(api):
    payment_id = create(api).data['data']['id']
    intruder = APIClient()
    intruder.force_authenticate(user=make_patient(email='other@example.com', name='Other'))
    r = intruder.post(reverse('payments_execute'), {'paymentId': payment_id, 'payerId': 'X'}, format='json')
    assert r.status_code == 403
    assert Payment.objects.get(id=payment_id).status == 'Pending'
    assert intruder.get(reverse('payment_detail', args=[payment_id])).status_code == 403


def test_failure_notifies_and_retry_resets(api, patient):
    payment_id = create(api).data['data']['id']
    r = api.post(reverse('payments_fail', args=[payment_id]), {'reason': 'Card declined'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Failed'
    note = Notification.objects.get(recipient=patient, type='PAYMENT_FAILED')
    assert 'Card declined' in note.message
    assert note.related_payment_id == payment_id

    old_gateway_id = Payment.objects.get(id=payment_id).gateway_payment_id
    r = api.post(reverse('payments_retry', args=[payment_id]))
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Pending'
    assert r.data['data']['gatewayPaymentId'] != old_gateway_id

    r = api.post(reverse('payments_retry', args=[payment_id]))
    assert r.status_code == 400
    assert r.data['error'] == 'Only failed payments can be retried'


def test_alternate_method_after_failure(api):
    payment_id = create(api).data['data']['id']
    api.post(reverse('payments_fail', args=[payment_id]), {}, format='json')
    r = api.post(reverse('payments_alternate'), {'paymentId': payment_id, 'method': 'Cash'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['method'] == 'Cash'
    assert r.data['data']['status'] == 'Completed'


def test_refund_is_staff_only(api):
    payment_id = create(api).data['data']['id']
    api.post(reverse('payments_execute'), {'paymentId': payment_id, 'payerId': 'P'}, format='json')
    assert api.post(reverse('payments_refund', args=[payment_id]), {}, format='json').status_code == 403

    staff = APIClient()
    staff.force_authenticate(user=make_staff())
    r = staff.post(reverse('payments_refund', args=[payment_id]), {'reason': 'Cancelled visit'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Refunded'
    assert r.data['data']['metadata']['refundReason'] == 'Cancelled visit'


def test_my_payments_lists_only_own(api):
    create(api)
    other = make_patient(email='other@example.com', name='Other')
    Payment.objects.create(user=other, amount='10.00', gateway_payment_id='PAY-OTHER')
    r = api.get(reverse('payments_me'))
    assert len(r.data['data']) == 1


def test_all_payments_filters_for_staff(api, patient):
    payment_id = create(api).data['data']['id']
    staff = APIClient()
    staff.force_authenticate(user=make_staff())
    r = staff.get(reverse('payments_all'), {'userId': patient.id, 'status': 'Pending'})
    assert r.status_code == 200
    assert [p['id'] for p in r.data['data']] == [payment_id]
    assert staff.get(reverse('payments_all'), {'userId': 'abc'}).status_code == 400
    assert staff.get(reverse('payments_all'), {'status': 'Lost'}).status_code == 400
