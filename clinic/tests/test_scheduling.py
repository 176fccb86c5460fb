"""Doctor schedules, slot holds and the hold-expiry sweep."""
from datetime import timedelta
from io import StringIO

from django.conf import settings
from django.core.management import call_command
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from clinic.models import DoctorSchedule, ScheduleSlot
from clinic.services.scheduling import hold_minutes

from .helpers import make_admin, make_doctor, make_patient, make_schedule, make_staff, tomorrow


class ScheduleManagementTests(APITestCase):
    def setUp(self) -> None:
        self.doctor = make_doctor()
        self.nurse = make_staff()
        self.admin = make_admin()
        self.client.force_authenticate(user=self.nurse)

    def test_create_from_range_then_replace(self):
        payload = {
            'doctorId': self.doctor.id,
            'date': tomorrow().isoformat(),
            'startTime': '09:00',
            'endTime': '11:00',
            'intervalMinutes': 30,
        }
        r = self.client.post(reverse('schedules'), payload, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual([s['time'] for s in r.data['data']['slots']], ['09:00', '09:30', '10:00', '10:30'])

        r = self.client.post(reverse('schedules'), {**payload, 'slots': ['09:00', '14:00']}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([s['time'] for s in r.data['data']['slots']], ['09:00', '14:00'])
        self.assertEqual(DoctorSchedule.objects.count(), 1)

    def test_rejects_non_doctor(self):
        r = self.client.post(reverse('schedules'), {
            'doctorId': self.nurse.id, 'date': tomorrow().isoformat(), 'slots': ['09:00'],
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['error'], 'Invalid doctor ID')

    def test_block_and_unblock(self):
        schedule = make_schedule(self.doctor)
        r = self.client.put(reverse('schedule_detail', args=[schedule.id]),
                            {'times': ['09:00'], 'block': True}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(schedule.slots.get(time='09:00').status, ScheduleSlot.STATUS_BLOCKED)
        self.client.put(reverse('schedule_detail', args=[schedule.id]), {'times': ['09:00'], 'block': False},
                        format='json')
        self.assertEqual(schedule.slots.get(time='09:00').status, ScheduleSlot.STATUS_AVAILABLE)

    def test_only_admin_deletes(self):
        schedule = make_schedule(self.doctor)
        r = self.client.delete(reverse('schedule_detail', args=[schedule.id]))
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.client.force_authenticate(user=self.admin)
        r = self.client.delete(reverse('schedule_detail', args=[schedule.id]))
        self.assertEqual(r.status_code, 200)
        self.assertFalse(DoctorSchedule.objects.exists())

    def test_replace_keeps_booked_slots(self):
        schedule = make_schedule(self.doctor)
        schedule.slots.filter(time='09:00').update(status=ScheduleSlot.STATUS_BOOKED)
        r = self.client.post(reverse('schedules'), {
            'doctorId': self.doctor.id, 'date': schedule.date.isoformat(), 'slots': ['14:00'],
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([s['time'] for s in r.data['data']['slots']], ['09:00', '14:00'])
        self.assertEqual(schedule.slots.get(time='09:00').status, ScheduleSlot.STATUS_BOOKED)

    def test_delete_refuses_booked_schedule(self):
        schedule = make_schedule(self.doctor)
        schedule.slots.filter(time='09:30').update(status=ScheduleSlot.STATUS_BOOKED)
        self.client.force_authenticate(user=self.admin)
        r = self.client.delete(reverse('schedule_detail', args=[schedule.id]))
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['error'], 'Cannot delete a schedule with booked appointments')
        self.assertTrue(DoctorSchedule.objects.filter(id=schedule.id).exists())

    def test_list_filters(self):
        make_schedule(self.doctor)
        r = self.client.get(reverse('schedules'), {'doctorId': self.doctor.id, 'date': tomorrow().isoformat()})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(r.data['data']), 1)
        self.assertEqual(self.client.get(reverse('schedules'), {'date': 'bad'}).status_code, 400)
        self.assertEqual(self.client.get(reverse('schedules'), {'doctorId': 'abc'}).status_code, 400)


class SlotHoldTests(APITestCase):
    def setUp(self) -> None:
        self.doctor = make_doctor()
        self.patient = make_patient()
        self.other = make_patient(email='other@example.com', name='Other Patient')
        self.schedule = make_schedule(self.doctor)

    def hold(self, user, time='09:00'):
        self.client.force_authenticate(user=user)
        return self.client.post(reverse('schedules_hold'), {'scheduleId': self.schedule.id, 'time': time},
                                format='json')

    def test_available_listing_is_public_and_hides_held_slots(self):
        r = self.client.get(reverse('schedules_available'), {'doctorId': self.doctor.id})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(r.data['data'][0]['availableSlots']), 3)

        self.hold(self.patient)
        self.client.force_authenticate(user=None)
        r = self.client.get(reverse('schedules_available'), {'doctorId': self.doctor.id})
        times = [s['time'] for s in r.data['data'][0]['availableSlots']]
        self.assertEqual(times, ['09:30', '10:00'])

    def test_hold_then_conflict_for_someone_else(self):
        r = self.hold(self.patient)
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data['data']['holdUntil'])
        slot = self.schedule.slots.get(time='09:00')
        self.assertEqual(slot.status, ScheduleSlot.STATUS_HELD)
        self.assertEqual(slot.held_by, self.patient)

        r = self.hold(self.other)
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(r.data['error'], 'Slot not available')

    def test_expired_hold_can_be_taken_over(self):
        self.hold(self.patient)
        ScheduleSlot.objects.filter(schedule=self.schedule, time='09:00').update(
            held_until=timezone.now() - timedelta(minutes=1)
        )
        r = self.hold(self.other)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(self.schedule.slots.get(time='09:00').held_by, self.other)

    def test_release_by_holder_only(self):
        self.hold(self.patient)
        self.client.force_authenticate(user=self.other)
        r = self.client.post(reverse('schedules_release'), {'scheduleId': self.schedule.id, 'time': '09:00'},
                             format='json')
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.patient)
        r = self.client.post(reverse('schedules_release'), {'scheduleId': self.schedule.id, 'time': '09:00'},
                             format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['data']['message'], 'Slot released successfully')
        self.assertEqual(self.schedule.slots.get(time='09:00').status, ScheduleSlot.STATUS_AVAILABLE)

    def test_unknown_time_is_404(self):
        r = self.hold(self.patient, time='13:00')
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_release_expired_holds_command(self):
        self.hold(self.patient)
        self.hold(self.other, time='09:30')
        ScheduleSlot.objects.filter(schedule=self.schedule, time='09:00').update(
            held_until=timezone.now() - timedelta(seconds=5)
        )
        out = StringIO()
        call_command('release_expired_holds', stdout=out)
        self.assertIn('Released 1 expired holds', out.getvalue())
        self.assertEqual(self.schedule.slots.get(time='09:00').status, ScheduleSlot.STATUS_AVAILABLE)
        self.assertEqual(self.schedule.slots.get(time='09:30').status, ScheduleSlot.STATUS_HELD)

    def test_hold_duration_is_capped(self):
        self.client.force_authenticate(user=self.patient)
        before = timezone.now()
        r = self.client.post(reverse('schedules_hold'),
                             {'scheduleId': self.schedule.id, 'time': '09:00', 'minutes': 999}, format='json')
        self.assertEqual(r.status_code, 200)
        held_until = self.schedule.slots.get(time='09:00').held_until
        self.assertLessEqual(held_until, timezone.now() + timedelta(minutes=settings.SLOT_HOLD_MAX_MINUTES))
        self.assertGreater(held_until, before + timedelta(minutes=settings.SLOT_HOLD_MAX_MINUTES - 1))

    def test_hold_minutes_bounds(self):
        self.assertEqual(hold_minutes(999), settings.SLOT_HOLD_MAX_MINUTES)
        self.assertEqual(hold_minutes(-5), 1)
        self.assertEqual(hold_minutes(None), min(settings.SLOT_HOLD_MINUTES, settings.SLOT_HOLD_MAX_MINUTES))

    def test_cannot_hold_a_slot_earlier_today(self):
        today = make_schedule(self.doctor, on_date=timezone.localdate(), times=('00:00',))
        self.client.force_authenticate(user=self.patient)
        r = self.client.post(reverse('schedules_hold'), {'scheduleId': today.id, 'time': '00:00'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['error'], 'Cannot hold a slot in the past')
        self.assertEqual(today.slots.get(time='00:00').status, ScheduleSlot.STATUS_AVAILABLE)
