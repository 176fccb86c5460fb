"""
Database models for the SmartCare back end.

These models capture the hospital workflows: users and their roles,
doctor schedules with bookable time slots, appointments, the waitlist,
laboratory orders, e-prescriptions and pharmacy inventory, triage and
bed management, payments, notifications and the audit trail. Field
names follow Django conventions; the JSON representation exposed by
the API uses camelCase keys (see ``clinic.serializers``).
"""
from __future__ import annotations

from datetime import datetime

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone


class UserManager(BaseUserManager):
    """Manager for the e-mail based :class:`User` model."""

    use_in_migrations = True

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("An email address is required")
        email = self.normalize_email(email).lower()
        extra_fields.setdefault("username", email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("role", User.ROLE_ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Custom user model keyed by e-mail address.

    Roles are ``Patient``, ``Staff`` and ``Admin``. A doctor is a Staff
    user with a non-empty ``specialization``; lab technicians,
    pharmacists and nurses are Staff users as well, distinguished only
    by their specialization text.
    """
    ROLE_PATIENT = 'Patient'
    ROLE_STAFF = 'Staff'
    ROLE_ADMIN = 'Admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_STAFF, 'Staff'),
        (ROLE_ADMIN, 'Admin'),
    ]
    GENDER_CHOICES = [
        ('Male', 'Male'),
        ('Female', 'Female'),
        ('Other', 'Other'),
    ]

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone = models.CharField(max_length=30, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    blood_type = models.CharField(max_length=5, blank=True)
    address = models.TextField(blank=True)
    emergency_contact = models.JSONField(default=dict, blank=True)
    insurance = models.JSONField(default=dict, blank=True)
    specialization = models.CharField(max_length=100, blank=True, db_index=True)
    department = models.CharField(max_length=100, blank=True)
    license_number = models.CharField(max_length=50, blank=True)
    digital_health_card_id = models.CharField(max_length=64, unique=True, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    objects = UserManager()

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return f"{self.name or self.email} ({self.role})"

    def get_full_name(self) -> str:
        return self.name or self.email

    @property
    def is_patient(self) -> bool:
        return self.role == self.ROLE_PATIENT

    @property
    def is_staff_member(self) -> bool:
        return self.role == self.ROLE_STAFF

    @property
    def is_admin_role(self) -> bool:
        return self.role == self.ROLE_ADMIN

    @property
    def is_doctor(self) -> bool:
        return self.role == self.ROLE_STAFF and bool(self.specialization)

    @property
    def display_role(self) -> str:
        return 'Doctor' if self.is_doctor else self.role


class DoctorSchedule(models.Model):
    """A doctor's working day with its bookable time slots."""
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='schedules')
    date = models.DateField(db_index=True)
    location = models.CharField(max_length=255, blank=True)
    department = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'date'], name='uniq_schedule_doctor_date'),
        ]

    def __str__(self) -> str:
        return f"{self.doctor} @ {self.date}"


class ScheduleSlot(models.Model):
    """One bookable time on a :class:`DoctorSchedule`.

    ``Held`` slots carry the holder and an expiry; an expired hold is
    treated as ``Available`` even before the sweep resets it.
    """
    STATUS_AVAILABLE = 'Available'
    STATUS_HELD = 'Held'
    STATUS_BOOKED = 'Booked'
    STATUS_BLOCKED = 'Blocked'
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_HELD, 'Held'),
        (STATUS_BOOKED, 'Booked'),
        (STATUS_BLOCKED, 'Blocked'),
    ]

    schedule = models.ForeignKey(DoctorSchedule, on_delete=models.CASCADE, related_name='slots')
    time = models.CharField(max_length=5, help_text="HH:MM")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_AVAILABLE, db_index=True)
    held_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='held_slots')
    held_until = models.DateTimeField(null=True, blank=True, db_index=True)
    appointment = models.ForeignKey(
        'Appointment', null=True, blank=True, on_delete=models.SET_NULL, related_name='slots'
    )

    class Meta:
        ordering = ['time']
        constraints = [
            models.UniqueConstraint(fields=['schedule', 'time'], name='uniq_slot_schedule_time'),
        ]

    def __str__(self) -> str:
        return f"{self.schedule.date} {self.time} ({self.status})"

    def hold_expired(self, now: datetime | None = None) -> bool:
        if self.status != self.STATUS_HELD:
            return False
        now = now or timezone.now()
        return self.held_until is None or self.held_until <= now

    def is_open(self, now: datetime | None = None) -> bool:
        return self.status == self.STATUS_AVAILABLE or self.hold_expired(now)

    def reset(self) -> None:
        self.status = self.STATUS_AVAILABLE
        self.held_by = None
        self.held_until = None
        self.appointment = None


class Appointment(models.Model):
    """A patient's booking of a doctor at a date and time.

    At most one ``Scheduled`` appointment may exist per doctor, date and
    time; the conditional unique constraint backs the locking done in
    :mod:`clinic.services.appointments`.
    """
    STATUS_SCHEDULED = 'Scheduled'
    STATUS_COMPLETED = 'Completed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_NO_SHOW = 'No-Show'
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_NO_SHOW, 'No-Show'),
    ]

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_appointments')
    date = models.DateField(db_index=True)
    time = models.CharField(max_length=5)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_SCHEDULED, db_index=True)
    department = models.CharField(max_length=100, blank=True)
    reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    payment = models.ForeignKey(
        'Payment', null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='created_appointments'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date', '-time']
        constraints = [
            models.UniqueConstraint(
                fields=['doctor', 'date', 'time'],
                condition=Q(status='Scheduled'),
                name='uniq_scheduled_doctor_slot',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.patient} with {self.doctor} on {self.date} {self.time}"


class Waitlist(models.Model):
    """A patient's request to be told when a doctor's slot frees up."""
    STATUS_ACTIVE = 'Active'
    STATUS_FULFILLED = 'Fulfilled'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_EXPIRED = 'Expired'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_FULFILLED, 'Fulfilled'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_EXPIRED, 'Expired'),
    ]
    PRIORITY_CHOICES = [
        ('Normal', 'Normal'),
        ('High', 'High'),
        ('Urgent', 'Urgent'),
    ]

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='waitlist_entries')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_waitlist')
    preferred_date = models.DateField()
    alternative_dates = models.JSONField(default=list, blank=True)
    department = models.CharField(max_length=100, blank=True)
    reason = models.TextField(blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='Normal')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    notifications_sent = models.PositiveIntegerField(default=0)
    last_notified_at = models.DateTimeField(null=True, blank=True)
    fulfilled_appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='waitlist_entries'
    )
    expires_at = models.DateTimeField(db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']


class LabOrder(models.Model):
    """A laboratory test ordered for a patient.

    Status moves forward only; see :data:`LAB_TRANSITIONS` in
    :mod:`clinic.services.labs`.
    """
    STATUS_ORDERED = 'Ordered'
    STATUS_SAMPLE_COLLECTED = 'Sample-Collected'
    STATUS_PROCESSING = 'Processing'
    STATUS_COMPLETED = 'Completed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_SAMPLE_REJECTED = 'Sample-Rejected'
    STATUS_CHOICES = [
        (STATUS_ORDERED, 'Ordered'),
        (STATUS_SAMPLE_COLLECTED, 'Sample Collected'),
        (STATUS_PROCESSING, 'Processing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_SAMPLE_REJECTED, 'Sample Rejected'),
    ]
    PRIORITY_ROUTINE = 'Routine'
    PRIORITY_URGENT = 'Urgent'
    PRIORITY_STAT = 'STAT'
    PRIORITY_CHOICES = [
        (PRIORITY_ROUTINE, 'Routine'),
        (PRIORITY_URGENT, 'Urgent'),
        (PRIORITY_STAT, 'STAT'),
    ]
    QUALITY_CHOICES = [
        ('Good', 'Good'),
        ('Poor', 'Poor'),
        ('Contaminated', 'Contaminated'),
        ('Insufficient', 'Insufficient'),
    ]

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='lab_orders')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='ordered_lab_tests')
    test_type = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ORDERED, db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default=PRIORITY_ROUTINE)
    results = models.JSONField(null=True, blank=True)
    clinical_notes = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    sample_type = models.CharField(max_length=100, blank=True)
    collection_method = models.CharField(max_length=100, blank=True)
    sample_quality = models.CharField(max_length=15, choices=QUALITY_CHOICES, blank=True)
    sample_collected_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='collected_samples'
    )
    sample_collected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    rejected_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='rejected_samples'
    )
    rejected_at = models.DateTimeField(null=True, blank=True)

    is_critical = models.BooleanField(default=False)
    critical_flagged_at = models.DateTimeField(null=True, blank=True)
    critical_message = models.TextField(blank=True)
    critical_acknowledged_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='acknowledged_lab_alerts'
    )
    critical_acknowledged_at = models.DateTimeField(null=True, blank=True)

    interpretation = models.TextField(blank=True)
    follow_up_actions = models.TextField(blank=True)
    interpreted_at = models.DateTimeField(null=True, blank=True)

    notification_sent = models.BooleanField(default=False)
    notification_sent_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='completed_lab_orders'
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']


class Inventory(models.Model):
    """A pharmacy stock item. ``status`` is derived on every save."""
    STATUS_AVAILABLE = 'Available'
    STATUS_LOW = 'Low Stock'
    STATUS_OUT = 'Out of Stock'
    STATUS_EXPIRED = 'Expired'
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_LOW, 'Low Stock'),
        (STATUS_OUT, 'Out of Stock'),
        (STATUS_EXPIRED, 'Expired'),
    ]

    drug_name = models.CharField(max_length=255, unique=True)
    generic_name = models.CharField(max_length=255, blank=True)
    category = models.CharField(max_length=100, blank=True)
    quantity = models.PositiveIntegerField(default=0)
    unit = models.CharField(max_length=30, default='units')
    reorder_level = models.PositiveIntegerField(default=10)
    expiry_date = models.DateField(null=True, blank=True)
    batch_number = models.CharField(max_length=100, blank=True)
    supplier = models.CharField(max_length=255, blank=True)
    cost_per_unit = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    alternatives = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default=STATUS_AVAILABLE, db_index=True)
    last_restocked = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['drug_name']
        verbose_name_plural = 'inventory'

    def __str__(self) -> str:
        return f"{self.drug_name} ({self.quantity} {self.unit})"

    @property
    def is_expired(self) -> bool:
        return bool(self.expiry_date and self.expiry_date < timezone.localdate())

    def compute_status(self) -> str:
        if self.is_expired:
            return self.STATUS_EXPIRED
        if self.quantity == 0:
            return self.STATUS_OUT
        if self.quantity <= self.reorder_level:
            return self.STATUS_LOW
        return self.STATUS_AVAILABLE

    def save(self, *args, **kwargs):
        self.status = self.compute_status()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'status' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['status']
        super().save(*args, **kwargs)

    def check_availability(self, quantity: int = 1) -> dict:
        if self.is_expired:
            return {'available': False, 'reason': 'Drug expired', 'alternatives': self.alternatives}
        if self.quantity < quantity:
            return {
                'available': False,
                'reason': 'Insufficient stock',
                'availableQuantity': self.quantity,
                'alternatives': self.alternatives,
            }
        return {'available': True, 'availableQuantity': self.quantity}


class Payment(models.Model):
    """A payment for an appointment or a prescription."""
    STATUS_PENDING = 'Pending'
    STATUS_COMPLETED = 'Completed'
    STATUS_FAILED = 'Failed'
    STATUS_REFUNDED = 'Refunded'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_REFUNDED, 'Refunded'),
    ]
    METHOD_CHOICES = [
        ('PayPal', 'PayPal'),
        ('Card', 'Card'),
        ('Cash', 'Cash'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=3, default='USD')
    method = models.CharField(max_length=10, choices=METHOD_CHOICES, default='PayPal')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    gateway_payment_id = models.CharField(max_length=255, blank=True)
    payer_id = models.CharField(max_length=255, blank=True)
    description = models.CharField(max_length=255, blank=True)
    failure_reason = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']


class EPrescription(models.Model):
    """An electronic prescription and its dispensing history."""
    STATUS_PENDING = 'Pending'
    STATUS_DISPENSED = 'Dispensed'
    STATUS_REJECTED = 'Rejected'
    STATUS_EXPIRED = 'Expired'
    STATUS_CLARIFICATION = 'Clarification_Required'
    STATUS_PARTIAL = 'Partially_Dispensed'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_DISPENSED, 'Dispensed'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_CLARIFICATION, 'Clarification Required'),
        (STATUS_PARTIAL, 'Partially Dispensed'),
    ]

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='prescriptions')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='written_prescriptions')
    medications = models.JSONField(default=list)
    status = models.CharField(max_length=25, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    validated_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='validated_prescriptions'
    )
    validated_at = models.DateTimeField(null=True, blank=True)
    refills_remaining = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True)

    clarification_reason = models.TextField(blank=True)
    clarification_requested_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='requested_clarifications'
    )
    clarification_requested_at = models.DateTimeField(null=True, blank=True)
    clarification_resolved = models.BooleanField(default=False)
    clarification_response = models.TextField(blank=True)

    unavailable_medications = models.JSONField(default=list, blank=True)
    dispensed_medications = models.JSONField(default=list, blank=True)
    payment = models.ForeignKey(
        Payment, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    payment_status = models.CharField(max_length=10, default='Pending')
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def is_past_expiry(self) -> bool:
        return bool(self.expires_at and self.expires_at < timezone.now())


class Bed(models.Model):
    STATUS_VACANT = 'Vacant'
    STATUS_OCCUPIED = 'Occupied'
    STATUS_RESERVED = 'Reserved'
    STATUS_MAINTENANCE = 'Maintenance'
    STATUS_CHOICES = [
        (STATUS_VACANT, 'Vacant'),
        (STATUS_OCCUPIED, 'Occupied'),
        (STATUS_RESERVED, 'Reserved'),
        (STATUS_MAINTENANCE, 'Maintenance'),
    ]

    bed_number = models.CharField(max_length=20, unique=True)
    ward = models.CharField(max_length=100)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_VACANT, db_index=True)
    current_patient = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='occupied_beds'
    )
    assigned_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['ward', 'bed_number']

    def __str__(self) -> str:
        return f"{self.ward}/{self.bed_number} ({self.status})"


class TriageRecord(models.Model):
    """Vitals and severity assessment made when a patient arrives."""
    SEVERITY_CRITICAL = 'Critical'
    SEVERITY_URGENT = 'Urgent'
    SEVERITY_STABLE = 'Stable'
    SEVERITY_NORMAL = 'Normal'
    SEVERITY_CHOICES = [
        (SEVERITY_CRITICAL, 'Critical'),
        (SEVERITY_URGENT, 'Urgent'),
        (SEVERITY_STABLE, 'Stable'),
        (SEVERITY_NORMAL, 'Normal'),
    ]
    SEVERITY_RANK = {
        SEVERITY_CRITICAL: 1,
        SEVERITY_URGENT: 2,
        SEVERITY_STABLE: 3,
        SEVERITY_NORMAL: 4,
    }
    ADMISSION_CHOICES = [
        ('Queued', 'Queued'),
        ('Admitted-ER', 'Admitted to ER'),
        ('Admitted-Ward', 'Admitted to Ward'),
        ('Discharged', 'Discharged'),
    ]

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='triage_records')
    blood_pressure = models.CharField(max_length=20)
    heart_rate = models.PositiveIntegerField()
    temperature = models.DecimalField(max_digits=4, decimal_places=1)
    respiratory_rate = models.PositiveIntegerField(null=True, blank=True)
    oxygen_saturation = models.PositiveIntegerField(null=True, blank=True)
    symptoms = models.TextField()
    severity_level = models.CharField(max_length=10, choices=SEVERITY_CHOICES, db_index=True)
    admission_status = models.CharField(max_length=15, choices=ADMISSION_CHOICES, default='Queued')
    assigned_bed = models.ForeignKey(
        Bed, null=True, blank=True, on_delete=models.SET_NULL, related_name='triage_records'
    )
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='created_triage_records'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']


class Notification(models.Model):
    """An in-app message for one recipient."""
    TYPE_PRESCRIPTION_UNCLEAR = 'PRESCRIPTION_UNCLEAR'
    TYPE_DRUG_UNAVAILABLE = 'DRUG_UNAVAILABLE'
    TYPE_PARTIAL_DISPENSE = 'PARTIAL_DISPENSE'
    TYPE_PAYMENT_FAILED = 'PAYMENT_FAILED'
    TYPE_PRESCRIPTION_DISPENSED = 'PRESCRIPTION_DISPENSED'
    TYPE_INVENTORY_LOW = 'INVENTORY_LOW'
    TYPE_PATIENT_ADMITTED = 'PATIENT_ADMITTED'
    TYPE_LAB_CRITICAL = 'LAB_CRITICAL'
    TYPE_LAB_RESULT = 'LAB_RESULT'
    TYPE_GENERAL = 'GENERAL'
    TYPE_CHOICES = [
        (TYPE_PRESCRIPTION_UNCLEAR, 'Prescription unclear'),
        (TYPE_DRUG_UNAVAILABLE, 'Drug unavailable'),
        (TYPE_PARTIAL_DISPENSE, 'Partial dispense'),
        (TYPE_PAYMENT_FAILED, 'Payment failed'),
        (TYPE_PRESCRIPTION_DISPENSED, 'Prescription dispensed'),
        (TYPE_INVENTORY_LOW, 'Inventory low'),
        (TYPE_PATIENT_ADMITTED, 'Patient admitted'),
        (TYPE_LAB_CRITICAL, 'Critical lab result'),
        (TYPE_LAB_RESULT, 'Lab result'),
        (TYPE_GENERAL, 'General'),
    ]
    STATUS_UNREAD = 'Unread'
    STATUS_READ = 'Read'
    STATUS_ARCHIVED = 'Archived'
    STATUS_CHOICES = [
        (STATUS_UNREAD, 'Unread'),
        (STATUS_READ, 'Read'),
        (STATUS_ARCHIVED, 'Archived'),
    ]
    PRIORITY_CHOICES = [
        ('Low', 'Low'),
        ('Medium', 'Medium'),
        ('High', 'High'),
        ('Urgent', 'Urgent'),
    ]

    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    sender = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='sent_notifications'
    )
    type = models.CharField(max_length=25, choices=TYPE_CHOICES, default=TYPE_GENERAL)
    title = models.CharField(max_length=255)
    message = models.TextField()
    related_prescription = models.ForeignKey(
        EPrescription, null=True, blank=True, on_delete=models.SET_NULL, related_name='notifications'
    )
    related_payment = models.ForeignKey(
        Payment, null=True, blank=True, on_delete=models.SET_NULL, related_name='notifications'
    )
    metadata = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_UNREAD, db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='Medium')
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'status']),
        ]


class AuditLog(models.Model):
    """Immutable record of a sensitive action."""
    ACTION_CHOICES = [(a, a) for a in (
        'CREATE_TRIAGE',
        'UPDATE_TRIAGE',
        'ASSIGN_BED',
        'RELEASE_BED',
        'VIEW_PATIENT_HISTORY',
        'VERIFY_PATIENT',
        'NOTIFY_DOCTOR',
        'LOGIN',
        'LOGOUT',
        'CREATE_APPOINTMENT',
        'UPDATE_APPOINTMENT',
        'CANCEL_APPOINTMENT',
        'CREATE_LAB_ORDER',
        'UPDATE_LAB_ORDER',
        'CREATE_PRESCRIPTION',
        'DISPENSE_PRESCRIPTION',
        'CREATE_USER',
        'UPDATE_USER',
        'DELETE_USER',
        'OTHER',
    )]
    STATUS_SUCCESS = 'Success'
    STATUS_FAILURE = 'Failure'
    STATUS_PARTIAL = 'Partial'
    STATUS_CHOICES = [
        (STATUS_SUCCESS, 'Success'),
        (STATUS_FAILURE, 'Failure'),
        (STATUS_PARTIAL, 'Partial'),
    ]

    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='audit_logs')
    user_role = models.CharField(max_length=10, blank=True)
    action = models.CharField(max_length=30, choices=ACTION_CHOICES, db_index=True)
    resource = models.CharField(max_length=50)
    resource_id = models.CharField(max_length=64, blank=True)
    details = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_SUCCESS)
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
