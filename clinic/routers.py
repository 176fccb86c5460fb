"""
URL mappings for the SmartCare API.

Paths carry no trailing slash; ``APPEND_SLASH`` is off in settings.
Every route is named so tests can ``reverse()`` them.
"""
from django.urls import path

from .auth_views import (
    login_view,
    logout_view,
    me_view,
    refresh_view,
    register_view,
    update_password_view,
)
from .views import admin_users
from .views import appointments
from .views import health
from .views import inventory
from .views import labs
from .views import notifications
from .views import payments
from .views import prescriptions
from .views import profile
from .views import schedules
from .views import triage
from .views import users
from .views import waitlist


urlpatterns = [
    path('healthz', health.healthz, name='healthz'),
    path('api/health', health.api_health, name='api_health'),
    # Authentication
    path('api/auth/register', register_view, name='register_view'),
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', refresh_view, name='refresh_view'),
    path('api/auth/logout', logout_view, name='logout_view'),
    path('api/auth/me', me_view, name='me_view'),
    path('api/auth/updatepassword', update_password_view, name='update_password_view'),
    # Profile
    path('api/v1/profile', profile.profile, name='profile'),
    path('api/v1/profile/password', profile.profile_password, name='profile_password'),
    # Schedules
    path('api/schedules', schedules.schedules, name='schedules'),
    path('api/schedules/available', schedules.available_schedules, name='schedules_available'),
    path('api/schedules/doctor/<int:doctor_id>', schedules.doctor_schedules, name='schedules_doctor'),
    path('api/schedules/hold', schedules.hold_slot, name='schedules_hold'),
    path('api/schedules/release', schedules.release_slot, name='schedules_release'),
    path('api/schedules/<int:schedule_id>', schedules.schedule_detail, name='schedule_detail'),
    # Appointments
    path('api/appointments', appointments.create_appointment, name='appointments_create'),
    path('api/appointments/me', appointments.my_appointments, name='appointments_me'),
    path('api/appointments/all', appointments.all_appointments, name='appointments_all'),
    path('api/appointments/<int:appointment_id>', appointments.appointment_detail, name='appointment_detail'),
    path('api/appointments/<int:appointment_id>/ics', appointments.appointment_ics, name='appointment_ics'),
    # Waitlist
    path('api/waitlist', waitlist.join_waitlist, name='waitlist_join'),
    path('api/waitlist/me', waitlist.my_waitlist, name='waitlist_me'),
    path('api/waitlist/doctor/<int:doctor_id>', waitlist.doctor_waitlist, name='waitlist_doctor'),
    path('api/waitlist/notify/<int:entry_id>', waitlist.notify_waitlist, name='waitlist_notify'),
    path('api/waitlist/<int:entry_id>/fulfill', waitlist.fulfill_waitlist, name='waitlist_fulfill'),
    path('api/waitlist/<int:entry_id>', waitlist.cancel_waitlist, name='waitlist_cancel'),
    # Lab orders
    path('api/labs/order', labs.create_lab_order, name='labs_order_create'),
    path('api/labs/orders', labs.pending_lab_orders, name='labs_pending'),
    path('api/labs/all', labs.all_lab_orders, name='labs_all'),
    path('api/labs/order/<int:order_id>', labs.lab_order_detail, name='labs_order_detail'),
    path('api/labs/patient/<int:patient_id>', labs.patient_lab_orders, name='labs_patient'),
    path('api/labs/collect-sample/<int:order_id>', labs.collect_sample, name='labs_collect_sample'),
    path('api/labs/reject-sample/<int:order_id>', labs.reject_sample, name='labs_reject_sample'),
    path('api/labs/results/<int:order_id>', labs.lab_results, name='labs_results'),
    path('api/labs/interpretation/<int:order_id>', labs.lab_interpretation, name='labs_interpretation'),
    path('api/labs/acknowledge-critical/<int:order_id>', labs.acknowledge_critical, name='labs_acknowledge'),
    path('api/labs/status/<int:order_id>', labs.lab_status, name='labs_status'),
    # Prescriptions
    path('api/prescriptions', prescriptions.create_prescription, name='prescriptions_create'),
    path('api/prescriptions/pending', prescriptions.pending_prescriptions, name='prescriptions_pending'),
    path('api/prescriptions/all', prescriptions.all_prescriptions, name='prescriptions_all'),
    path('api/prescriptions/staff/me', prescriptions.my_written_prescriptions, name='prescriptions_staff_me'),
    path('api/prescriptions/patient/<int:patient_id>', prescriptions.patient_prescriptions,
         name='prescriptions_patient'),
    path('api/prescriptions/search/patients', prescriptions.search_patients, name='prescriptions_search_patients'),
    path('api/prescriptions/<int:prescription_id>', prescriptions.prescription_detail, name='prescription_detail'),
    path('api/prescriptions/<int:prescription_id>/check-inventory', prescriptions.check_inventory,
         name='prescription_check_inventory'),
    path('api/prescriptions/<int:prescription_id>/clarify', prescriptions.request_clarification,
         name='prescription_clarify'),
    path('api/prescriptions/<int:prescription_id>/respond-clarification', prescriptions.respond_clarification,
         name='prescription_respond_clarification'),
    path('api/prescriptions/<int:prescription_id>/suggest-alternative', prescriptions.suggest_alternative,
         name='prescription_suggest_alternative'),
    path('api/prescriptions/<int:prescription_id>/dispense', prescriptions.dispense_prescription,
         name='prescription_dispense'),
    # Inventory
    path('api/inventory', inventory.inventory_list, name='inventory_list'),
    path('api/inventory/check/<str:drug_name>', inventory.check_drug, name='inventory_check'),
    path('api/inventory/<int:item_id>', inventory.inventory_detail, name='inventory_detail'),
    path('api/inventory/<int:item_id>/restock', inventory.restock_item, name='inventory_restock'),
    # Triage and beds
    path('api/triage', triage.triage_list, name='triage_list'),
    path('api/triage/verify-patient', triage.verify_patient, name='triage_verify_patient'),
    path('api/triage/patient-history/<int:patient_id>', triage.patient_history, name='triage_patient_history'),
    path('api/triage/<int:record_id>', triage.triage_detail, name='triage_detail'),
    path('api/beds', triage.beds, name='beds'),
    path('api/beds/assign', triage.assign_bed, name='beds_assign'),
    path('api/beds/release/<int:bed_id>', triage.release_bed, name='beds_release'),
    path('api/beds/<int:bed_id>', triage.bed_detail, name='bed_detail'),
    # Payments
    path('api/payments', payments.create_payment, name='payments_create'),
    path('api/payments/execute', payments.execute_payment, name='payments_execute'),
    path('api/payments/alternate', payments.alternate_payment, name='payments_alternate'),
    path('api/payments/me', payments.my_payments, name='payments_me'),
    path('api/payments/all', payments.all_payments, name='payments_all'),
    path('api/payments/fail/<int:payment_id>', payments.fail_payment, name='payments_fail'),
    path('api/payments/retry/<int:payment_id>', payments.retry_payment, name='payments_retry'),
    path('api/payments/refund/<int:payment_id>', payments.refund_payment, name='payments_refund'),
    path('api/payments/<int:payment_id>', payments.payment_detail, name='payment_detail'),
    # Notifications
    path('api/notifications/me', notifications.my_notifications, name='notifications_me'),
    path('api/notifications/unread-count', notifications.unread_count, name='notifications_unread_count'),
    path('api/notifications/read-all', notifications.mark_all_read, name='notifications_read_all'),
    path('api/notifications/<int:notification_id>', notifications.notification_detail,
         name='notification_detail'),
    path('api/notifications/<int:notification_id>/read', notifications.mark_read, name='notification_read'),
    # Administration
    path('api/admin/users', admin_users.admin_users, name='admin_users'),
    path('api/admin/users/stats/overview', admin_users.user_stats, name='admin_user_stats'),
    path('api/admin/users/<int:user_id>', admin_users.admin_user_detail, name='admin_user_detail'),
    path('api/admin/users/<int:user_id>/status', admin_users.admin_user_status, name='admin_user_status'),
    path('api/admin/audit-logs', admin_users.audit_logs, name='admin_audit_logs'),
    # Directories
    path('api/users/patients', users.patients, name='users_patients'),
    path('api/users/staff', users.staff, name='users_staff'),
]
