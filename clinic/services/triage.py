"""
Emergency triage and bed management.

Bed assignment locks the bed row, so two nurses racing for the same
bed cannot both succeed; the loser gets a 400 and a Failure audit entry.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Case, IntegerField, Value, When
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import (
    Appointment, AuditLog, Bed, EPrescription, LabOrder, Notification, TriageRecord, User,
)
from clinic.services.audit import log_action
from clinic.services.common import clean_text, get_patient
from clinic.services.notifications import notify

logger = logging.getLogger(__name__)

MISSING_PATIENT = 'Patient details are missing or incomplete. Please contact support.'

TRIAGE_FIELDS = (
    'blood_pressure', 'heart_rate', 'temperature', 'respiratory_rate', 'oxygen_saturation',
    'symptoms', 'severity_level', 'admission_status', 'notes',
)


def verify_patient(*, user: User, card_id: Optional[str] = None, patient_id=None, request=None) -> User:
    patient = None
    if card_id:
        patient = User.objects.filter(digital_health_card_id=card_id, role=User.ROLE_PATIENT).first()
    elif patient_id:
        patient = User.objects.filter(id=patient_id, role=User.ROLE_PATIENT).first()
    if patient is None or not patient.name:
        log_action(
            user=user, action='VERIFY_PATIENT', resource='Patient', resource_id=patient_id or card_id,
            status=AuditLog.STATUS_FAILURE, error_message=MISSING_PATIENT, request=request,
        )
        raise NotFound(MISSING_PATIENT)
    log_action(user=user, action='VERIFY_PATIENT', resource='Patient', resource_id=patient.id, request=request)
    return patient


def patient_history(patient_id, *, user: User, request=None) -> dict:
    patient = User.objects.filter(id=patient_id, role=User.ROLE_PATIENT).first()
    if patient is None:
        raise NotFound(MISSING_PATIENT)
    history = {
        'appointments': list(
            Appointment.objects.filter(patient=patient).select_related('doctor').order_by('-date', '-time')[:10]
        ),
        'triageRecords': list(TriageRecord.objects.filter(patient=patient).order_by('-created_at')[:5]),
        'labOrders': list(LabOrder.objects.filter(patient=patient).select_related('doctor')[:10]),
        'prescriptions': list(EPrescription.objects.filter(patient=patient).select_related('doctor')[:10]),
    }
    log_action(user=user, action='VIEW_PATIENT_HISTORY', resource='Patient', resource_id=patient.id,
               details='Viewed medical history', request=request)
    return {'patient': patient, 'medicalHistory': history}


def create_record(*, user: User, patient_id, data: dict, request=None) -> TriageRecord:
    patient = get_patient(patient_id)
    record = TriageRecord.objects.create(
        patient=patient,
        created_by=user,
        **{k: clean_text(v) if isinstance(v, str) else v for k, v in data.items() if k in TRIAGE_FIELDS},
    )
    log_action(user=user, action='CREATE_TRIAGE', resource='Triage', resource_id=record.id,
               details=f"{record.severity_level} triage for patient {patient.id}", request=request)
    if record.severity_level == TriageRecord.SEVERITY_CRITICAL:
        logger.warning('Critical triage record %s for patient %s', record.id, patient.id)
    return record


def severity_order():
    return Case(
        *[When(severity_level=level, then=Value(rank)) for level, rank in TriageRecord.SEVERITY_RANK.items()],
        default=Value(5),
        output_field=IntegerField(),
    )


def queue(*, admission_status: Optional[str] = None, severity: Optional[str] = None):
    qs = TriageRecord.objects.select_related('patient', 'assigned_bed', 'created_by')
    if admission_status:
        qs = qs.filter(admission_status=admission_status)
    if severity:
        qs = qs.filter(severity_level=severity)
    return qs.annotate(severity_rank=severity_order()).order_by('severity_rank', 'created_at')


def get_record(record_id) -> TriageRecord:
    return get_object_or_404(TriageRecord.objects.select_related('patient', 'assigned_bed'), id=record_id)


@transaction.atomic
def update_record(record_id, *, user: User, data: dict, request=None) -> TriageRecord:
    record = get_object_or_404(TriageRecord.objects.select_for_update(), id=record_id)
    for field, value in data.items():
        if field in TRIAGE_FIELDS:
            setattr(record, field, clean_text(value) if isinstance(value, str) else value)
    record.save()
    log_action(user=user, action='UPDATE_TRIAGE', resource='Triage', resource_id=record.id,
               details=f"Updated fields: {', '.join(sorted(k for k in data if k in TRIAGE_FIELDS))}",
               request=request)
    return record


def list_beds(*, status: Optional[str] = None, ward: Optional[str] = None):
    qs = Bed.objects.select_related('current_patient')
    if status:
        qs = qs.filter(status=status)
    if ward:
        qs = qs.filter(ward__iexact=ward)
    return qs


def get_bed(bed_id) -> Bed:
    return get_object_or_404(Bed.objects.select_related('current_patient'), id=bed_id)


def create_bed(*, bed_number: str, ward: str, status: str = Bed.STATUS_VACANT, notes: str = '') -> Bed:
    if Bed.objects.filter(bed_number=bed_number).exists():
        raise ValidationError('Bed number already exists')
    try:
        with transaction.atomic():
            return Bed.objects.create(bed_number=bed_number, ward=ward, status=status, notes=clean_text(notes))
    except IntegrityError as exc:
        raise ValidationError('Bed number already exists') from exc


@transaction.atomic
def update_bed(bed_id, data: dict) -> Bed:
    bed = get_object_or_404(Bed.objects.select_for_update(), id=bed_id)
    for field in ('ward', 'status', 'notes'):
        if field in data:
            setattr(bed, field, clean_text(data[field]) if field == 'notes' else data[field])
    if bed.status == Bed.STATUS_VACANT:
        bed.current_patient = None
        bed.assigned_date = None
    bed.save()
    return bed


def assign_bed(
    *,
    user: User,
    bed_id,
    patient_id,
    triage_record_id=None,
    notify_doctor_id=None,
    request=None,
) -> tuple[Bed, Optional[TriageRecord]]:
    error = None
    with transaction.atomic():
        bed = get_object_or_404(Bed.objects.select_for_update(), id=bed_id)
        patient = get_patient(patient_id)
        if bed.status == Bed.STATUS_OCCUPIED:
            error = 'Bed is already occupied'
        elif bed.status == Bed.STATUS_MAINTENANCE:
            error = 'Bed is under maintenance'
        elif Bed.objects.filter(current_patient=patient, status=Bed.STATUS_OCCUPIED).exists():
            error = 'Patient already occupies another bed'
        record = None
        if error is None:
            if triage_record_id:
                record = TriageRecord.objects.select_for_update().filter(id=triage_record_id, patient=patient).first()
                if record is None:
                    raise ValidationError('Triage record not found for this patient')
            bed.status = Bed.STATUS_OCCUPIED
            bed.current_patient = patient
            bed.assigned_date = timezone.now()
            bed.save()
            if record is not None:
                record.assigned_bed = bed
                record.admission_status = 'Admitted-ER'
                record.save(update_fields=['assigned_bed', 'admission_status', 'updated_at'])

    if error is not None:
        log_action(user=user, action='ASSIGN_BED', resource='Bed', resource_id=bed_id,
                   status=AuditLog.STATUS_FAILURE, error_message=error, request=request)
        raise ValidationError(error)

    log_action(user=user, action='ASSIGN_BED', resource='Bed', resource_id=bed.id,
               details=f"Bed {bed.bed_number} assigned to patient {patient.id}",
               metadata={'triageRecordId': record.id if record else None}, request=request)
    if notify_doctor_id:
        doctor = User.objects.filter(id=notify_doctor_id, role=User.ROLE_STAFF).first()
        if doctor is not None:
            severity = f" ({record.severity_level})" if record else ''
            notify(
                recipient=doctor,
                sender=user,
                type=Notification.TYPE_PATIENT_ADMITTED,
                title='Patient Admission Notification',
                message=f"{patient.get_full_name()}{severity} was admitted to bed {bed.bed_number} in {bed.ward}.",
                priority='High',
                metadata={'bedId': bed.id, 'patientId': patient.id},
            )
            log_action(user=user, action='NOTIFY_DOCTOR', resource='User', resource_id=doctor.id,
                       details=f"Admission of patient {patient.id}", request=request)
    return bed, record


def release_bed(bed_id, *, user: User, request=None) -> Bed:
    with transaction.atomic():
        bed = get_object_or_404(Bed.objects.select_for_update(), id=bed_id)
        previous = bed.current_patient_id
        bed.status = Bed.STATUS_VACANT
        bed.current_patient = None
        bed.assigned_date = None
        bed.save()
    log_action(user=user, action='RELEASE_BED', resource='Bed', resource_id=bed.id,
               details=f"Released from patient {previous}", request=request)
    return bed
