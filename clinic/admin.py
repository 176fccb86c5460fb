"""
Django admin registrations for the clinic models, available under
``/admin/`` to superusers.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AuditLog,
    Bed,
    DoctorSchedule,
    EPrescription,
    Inventory,
    LabOrder,
    Notification,
    Payment,
    ScheduleSlot,
    TriageRecord,
    User,
    Waitlist,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'role', 'specialization', 'department', 'is_active')
    list_filter = ('role', 'is_active', 'department')
    search_fields = ('email', 'name', 'digital_health_card_id')


class ScheduleSlotInline(admin.TabularInline):
    model = ScheduleSlot
    extra = 0
    fields = ('time', 'status', 'held_by', 'held_until', 'appointment')


@admin.register(DoctorSchedule)
class DoctorScheduleAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'date', 'department', 'location', 'is_active')
    list_filter = ('is_active', 'department', 'date')
    search_fields = ('doctor__name', 'doctor__email')
    inlines = [ScheduleSlotInline]


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'date', 'time', 'status')
    list_filter = ('status', 'date', 'department')
    search_fields = ('patient__name', 'doctor__name')


@admin.register(Waitlist)
class WaitlistAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'preferred_date', 'priority', 'status', 'expires_at')
    list_filter = ('status', 'priority')


@admin.register(LabOrder)
class LabOrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'test_type', 'priority', 'status', 'is_critical')
    list_filter = ('status', 'priority', 'is_critical')
    search_fields = ('test_type', 'patient__name')


@admin.register(Inventory)
class InventoryAdmin(admin.ModelAdmin):
    list_display = ('drug_name', 'quantity', 'reorder_level', 'expiry_date', 'status')
    list_filter = ('status', 'category')
    search_fields = ('drug_name', 'generic_name')
    readonly_fields = ('status',)


@admin.register(EPrescription)
class EPrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'status', 'payment_status', 'expires_at')
    list_filter = ('status',)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'amount', 'currency', 'method', 'status', 'created_at')
    list_filter = ('status', 'method')
    search_fields = ('gateway_payment_id', 'payer_id')


@admin.register(Bed)
class BedAdmin(admin.ModelAdmin):
    list_display = ('bed_number', 'ward', 'status', 'current_patient', 'assigned_date')
    list_filter = ('status', 'ward')


@admin.register(TriageRecord)
class TriageRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'severity_level', 'admission_status', 'assigned_bed', 'created_at')
    list_filter = ('severity_level', 'admission_status')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'recipient', 'type', 'priority', 'status', 'created_at')
    list_filter = ('type', 'status', 'priority')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user', 'action', 'resource', 'resource_id', 'status')
    list_filter = ('action', 'status', 'resource')
    search_fields = ('resource_id', 'details')
