"""
Booking, conflicts, cancellation and the calendar invitation.
"""
from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from clinic.models import Appointment, AuditLog, Notification, Payment, ScheduleSlot, Waitlist

from .helpers import make_doctor, make_patient, make_schedule, make_staff, tomorrow


class BookingTests(APITestCase):
    def setUp(self) -> None:
        self.doctor = make_doctor()
        self.nurse = make_staff()
        self.patient = make_patient()
        self.other = make_patient(email='other@example.com', name='Other Patient')
        self.schedule = make_schedule(self.doctor)
        self.day = tomorrow()

    def book(self, user, time='09:00', **extra):
        self.client.force_authenticate(user=user)
        payload = {'doctorId': self.doctor.id, 'date': self.day.isoformat(), 'time': time, **extra}
        return self.client.post(reverse('appointments_create'), payload, format='json')

    def test_patient_books_open_slot(self):
        r = self.book(self.patient, reason='Chest pain')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        data = r.data['data']
        self.assertEqual(data['appointment']['status'], 'Scheduled')
        self.assertIn('BEGIN:VCALENDAR', data['icsFile'])

        slot = self.schedule.slots.get(time='09:00')
        self.assertEqual(slot.status, ScheduleSlot.STATUS_BOOKED)
        self.assertEqual(slot.appointment_id, data['appointment']['id'])
        self.assertTrue(Notification.objects.filter(recipient=self.patient, title='Appointment Confirmed').exists())
        self.assertTrue(AuditLog.objects.filter(action='CREATE_APPOINTMENT').exists())

    def test_second_booking_of_same_slot_conflicts(self):
        self.assertEqual(self.book(self.patient).status_code, 201)
        r = self.book(self.other)
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(r.data, {'success': False, 'data': None, 'error': 'This time slot is already taken'})
        self.assertEqual(Appointment.objects.count(), 1)

    def test_conflict_without_published_schedule(self):
        self.schedule.delete()
        self.assertEqual(self.book(self.patient).status_code, 201)
        self.assertEqual(self.book(self.other).status_code, status.HTTP_409_CONFLICT)

    def test_slot_held_by_someone_else_conflicts(self):
        self.client.force_authenticate(user=self.other)
        self.client.post(reverse('schedules_hold'), {'scheduleId': self.schedule.id, 'time': '09:00'}, format='json')
        r = self.book(self.patient)
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(r.data['error'], 'This time slot is currently held by another user')
        self.assertFalse(Appointment.objects.exists())

    def test_holder_can_book_own_hold(self):
        self.client.force_authenticate(user=self.patient)
        self.client.post(reverse('schedules_hold'), {'scheduleId': self.schedule.id, 'time': '09:00'}, format='json')
        r = self.book(self.patient)
        self.assertEqual(r.status_code, 201)
        slot = self.schedule.slots.get(time='09:00')
        self.assertEqual(slot.status, ScheduleSlot.STATUS_BOOKED)
        self.assertIsNone(slot.held_by)

    def test_failed_booking_leaves_nothing_behind(self):
        r = self.book(self.patient, paymentId=999)
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['error'], 'Invalid or incomplete payment')
        self.assertFalse(Appointment.objects.exists())
        self.assertEqual(self.schedule.slots.get(time='09:00').status, ScheduleSlot.STATUS_AVAILABLE)

    def test_pending_payment_is_rejected_completed_is_linked(self):
        pending = Payment.objects.create(user=self.patient, amount=Decimal('40.00'))
        self.assertEqual(self.book(self.patient, paymentId=pending.id).status_code, 400)
        pending.status = Payment.STATUS_COMPLETED
        pending.save()
        r = self.book(self.patient, paymentId=pending.id)
        self.assertEqual(r.status_code, 201)
        self.assertEqual(Appointment.objects.get().payment, pending)

    def test_time_off_schedule_and_past_dates_rejected(self):
        self.assertEqual(self.book(self.patient, time='15:00').status_code, 400)
        self.client.force_authenticate(user=self.patient)
        r = self.client.post(reverse('appointments_create'), {
            'doctorId': self.doctor.id, 'date': '2000-01-01', 'time': '09:00',
        }, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error'], 'Cannot book an appointment in the past')

    def test_staff_books_for_patient(self):
        r = self.book(self.nurse, patientId=self.patient.id)
        self.assertEqual(r.status_code, 201)
        self.assertEqual(Appointment.objects.get().patient, self.patient)
        self.assertEqual(self.book(self.nurse, time='09:30').status_code, 400)

    def test_non_doctor_rejected(self):
        self.client.force_authenticate(user=self.patient)
        r = self.client.post(reverse('appointments_create'), {
            'doctorId': self.nurse.id, 'date': self.day.isoformat(), 'time': '09:00',
        }, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['error'], 'Invalid doctor ID')


class AppointmentLifecycleTests(APITestCase):
    def setUp(self) -> None:
        self.doctor = make_doctor()
        self.patient = make_patient()
        self.other = make_patient(email='other@example.com', name='Other Patient')
        self.schedule = make_schedule(self.doctor)
        self.client.force_authenticate(user=self.patient)
        r = self.client.post(reverse('appointments_create'), {
            'doctorId': self.doctor.id, 'date': tomorrow().isoformat(), 'time': '09:00',
        }, format='json')
        self.appointment_id = r.data['data']['appointment']['id']

    def test_cancel_frees_slot_for_rebooking(self):
        r = self.client.put(reverse('appointment_detail', args=[self.appointment_id]), {'status': 'Cancelled'},
                            format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['status'], 'Cancelled')
        self.assertEqual(self.schedule.slots.get(time='09:00').status, ScheduleSlot.STATUS_AVAILABLE)
        self.assertTrue(AuditLog.objects.filter(action='CANCEL_APPOINTMENT').exists())

        self.client.force_authenticate(user=self.other)
        r = self.client.post(reverse('appointments_create'), {
            'doctorId': self.doctor.id, 'date': tomorrow().isoformat(), 'time': '09:00',
        }, format='json')
        self.assertEqual(r.status_code, 201)

    def test_delete_frees_slot_and_notifies_waitlist(self):
        self.client.force_authenticate(user=self.other)
        r = self.client.post(reverse('waitlist_join'), {
            'doctorId': self.doctor.id, 'preferredDate': tomorrow().isoformat(),
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)

        url = reverse('appointment_detail', args=[self.appointment_id])
        self.client.force_authenticate(user=self.patient)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=make_staff())
        r = self.client.delete(url)
        self.assertEqual(r.status_code, 200)
        self.assertFalse(Appointment.objects.filter(id=self.appointment_id).exists())
        slot = self.schedule.slots.get(time='09:00')
        self.assertEqual(slot.status, ScheduleSlot.STATUS_AVAILABLE)
        self.assertIsNone(slot.appointment_id)
        self.assertTrue(
            Notification.objects.filter(recipient=self.other, title='Appointment Slot Available').exists()
        )
        self.assertEqual(Waitlist.objects.get(patient=self.other).notifications_sent, 1)

    def test_cancelled_appointment_cannot_change(self):
        url = reverse('appointment_detail', args=[self.appointment_id])
        self.client.put(url, {'status': 'Cancelled'}, format='json')
        self.client.force_authenticate(user=self.doctor)
        r = self.client.put(url, {'status': 'Completed'}, format='json')
        self.assertEqual(r.status_code, 400)

    def test_patient_may_only_cancel(self):
        r = self.client.put(reverse('appointment_detail', args=[self.appointment_id]), {'status': 'Completed'},
                            format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_patient_cannot_read(self):
        self.client.force_authenticate(user=self.other)
        r = self.client.get(reverse('appointment_detail', args=[self.appointment_id]))
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

    def test_reschedule_moves_slot(self):
        self.client.force_authenticate(user=self.doctor)
        r = self.client.put(reverse('appointment_detail', args=[self.appointment_id]), {'time': '10:00'},
                            format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(self.schedule.slots.get(time='09:00').status, ScheduleSlot.STATUS_AVAILABLE)
        self.assertEqual(self.schedule.slots.get(time='10:00').appointment_id, self.appointment_id)

    def test_doctor_lists_own_appointments(self):
        self.client.force_authenticate(user=self.doctor)
        r = self.client.get(reverse('appointments_me'))
        self.assertEqual([a['id'] for a in r.data['data']], [self.appointment_id])

    def test_ics_download(self):
        r = self.client.get(reverse('appointment_ics', args=[self.appointment_id]))
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r['Content-Type'].startswith('text/calendar'))
        body = r.content.decode()
        self.assertIn('\r\nBEGIN:VEVENT\r\n', body)
        self.assertIn('SUMMARY:Medical Appointment with Dr. Alice Morgan', body)
        self.assertIn('LOCATION:Wing A', body)
        self.assertIn('TRIGGER:-PT1H', body)
        self.assertIn('DTSTART:' + tomorrow().strftime('%Y%m%d') + 'T090000', body)
        self.assertTrue(body.endswith('END:VCALENDAR\r\n'))
