"""
E-prescription workflow: creation, pharmacy checks and dispensing.

Dispensing locks the prescription row and every inventory row it
touches, so the same prescription can never be dispensed twice and
stock can never go negative. A partial dispense records what is still
outstanding; the next dispense only takes those medications.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from clinic.models import AuditLog, EPrescription, Inventory, Notification, Payment, User
from clinic.services import inventory as inventory_service
from clinic.services.audit import log_action
from clinic.services.common import clean_text, ensure_party, get_patient
from clinic.services.notifications import notify

logger = logging.getLogger(__name__)

OPEN_STATUSES = [EPrescription.STATUS_PENDING, EPrescription.STATUS_PARTIAL]


def create_prescription(
    *,
    doctor: User,
    patient_id,
    medications: list[dict],
    notes: str = '',
    refills_remaining: int = 0,
) -> EPrescription:
    patient = get_patient(patient_id)
    if not medications:
        raise ValidationError('At least one medication is required')
    prescription = EPrescription.objects.create(
        patient=patient,
        doctor=doctor,
        medications=[{k: clean_text(str(v)) for k, v in m.items() if v not in (None, '')} for m in medications],
        notes=clean_text(notes),
        refills_remaining=refills_remaining or 0,
        expires_at=timezone.now() + timedelta(days=settings.PRESCRIPTION_TTL_DAYS),
    )
    log_action(user=doctor, action='CREATE_PRESCRIPTION', resource='EPrescription', resource_id=prescription.id,
               details=f"{len(medications)} medication(s) for patient {patient.id}")
    return prescription


def _base():
    return EPrescription.objects.select_related('patient', 'doctor', 'validated_by')


def pending():
    return _base().filter(status__in=OPEN_STATUSES + [EPrescription.STATUS_CLARIFICATION]).order_by('created_at')


def list_all(*, status: Optional[str] = None, patient_id=None, doctor_id=None):
    qs = _base()
    if status:
        qs = qs.filter(status=status)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    return qs


def get_for_user(prescription_id, user: User) -> EPrescription:
    prescription = get_object_or_404(_base(), id=prescription_id)
    ensure_party(user, patient_id=prescription.patient_id, doctor_id=prescription.doctor_id,
                 message='Not authorized to view this prescription')
    return prescription


def search_patients(search: str = ''):
    qs = User.objects.filter(role=User.ROLE_PATIENT, is_active=True)
    search = (search or '').strip()
    if len(search) >= 2:
        qs = qs.filter(Q(name__icontains=search) | Q(email__icontains=search))
    return qs.order_by('name')[:20]


def _locked(prescription_id) -> EPrescription:
    return get_object_or_404(
        EPrescription.objects.select_for_update().select_related('patient', 'doctor'), id=prescription_id
    )


@transaction.atomic
def update_status(prescription_id, *, user: User, status: str, notes: str = '') -> EPrescription:
    prescription = _locked(prescription_id)
    if prescription.status != EPrescription.STATUS_PENDING:
        raise ValidationError(f'Cannot change a {prescription.status} prescription')
    if status not in (EPrescription.STATUS_REJECTED, EPrescription.STATUS_EXPIRED):
        raise ValidationError('Status can only be set to Rejected or Expired')
    prescription.status = status
    if notes:
        prescription.notes = clean_text(notes)
    prescription.validated_by = user
    prescription.validated_at = timezone.now()
    prescription.save()
    return prescription


def _medication_names(prescription: EPrescription) -> list[str]:
    return [m.get('name', '') for m in prescription.medications if m.get('name')]


def check_inventory(prescription_id, *, user: User) -> dict:
    prescription = get_for_user(prescription_id, user)
    medications = []
    for name in _medication_names(prescription):
        result = inventory_service.check(name, 1)
        result.pop('drugName', None)
        medications.append({'medication': name, 'availableQuantity': 0, 'alternatives': [], **result})
    return {
        'prescriptionId': prescription.id,
        'allAvailable': all(m['available'] for m in medications),
        'medications': medications,
    }


@transaction.atomic
def request_clarification(prescription_id, *, user: User, reason: str) -> EPrescription:
    if not (reason or '').strip():
        raise ValidationError('Clarification reason is required')
    prescription = _locked(prescription_id)
    if prescription.status not in OPEN_STATUSES:
        raise ValidationError(f'Cannot request clarification on a {prescription.status} prescription')
    prescription.status = EPrescription.STATUS_CLARIFICATION
    prescription.clarification_reason = clean_text(reason)
    prescription.clarification_requested_by = user
    prescription.clarification_requested_at = timezone.now()
    prescription.clarification_resolved = False
    prescription.clarification_response = ''
    prescription.save()
    notify(
        recipient=prescription.doctor,
        sender=user,
        type=Notification.TYPE_PRESCRIPTION_UNCLEAR,
        title='Prescription Clarification Required',
        message=f"Prescription #{prescription.id} for {prescription.patient.get_full_name()}: {prescription.clarification_reason}",
        priority='High',
        prescription=prescription,
    )
    return prescription


@transaction.atomic
def respond_clarification(prescription_id, *, user: User, response: str) -> EPrescription:
    if not (response or '').strip():
        raise ValidationError('Response is required')
    prescription = _locked(prescription_id)
    if prescription.doctor_id != user.id and user.role != User.ROLE_ADMIN:
        raise PermissionDenied('Only the prescribing doctor can respond to a clarification')
    if prescription.status != EPrescription.STATUS_CLARIFICATION:
        raise ValidationError('Prescription is not awaiting clarification')
    prescription.clarification_response = clean_text(response)
    prescription.clarification_resolved = True
    prescription.status = (
        EPrescription.STATUS_PARTIAL if prescription.dispensed_medications else EPrescription.STATUS_PENDING
    )
    prescription.save()
    if prescription.clarification_requested_by_id:
        notify(
            recipient=prescription.clarification_requested_by,
            sender=user,
            title='Prescription Clarified',
            message=f"Prescription #{prescription.id}: {prescription.clarification_response}",
            prescription=prescription,
        )
    return prescription


@transaction.atomic
def suggest_alternative(
    prescription_id, *, user: User, medication_name: str, alternatives: Iterable[str], reason: str = ''
) -> EPrescription:
    alternatives = [clean_text(a) for a in alternatives or [] if a]
    if not medication_name or not alternatives:
        raise ValidationError('medicationName and alternatives are required')
    prescription = _locked(prescription_id)
    if medication_name.lower() not in {n.lower() for n in _medication_names(prescription)}:
        raise ValidationError('Medication is not on this prescription')
    prescription.unavailable_medications = list(prescription.unavailable_medications) + [{
        'medicationName': medication_name,
        'reason': clean_text(reason) or 'Out of stock',
        'alternatives': alternatives,
        'suggestedBy': user.id,
    }]
    prescription.save(update_fields=['unavailable_medications', 'updated_at'])
    notify(
        recipient=prescription.doctor,
        sender=user,
        type=Notification.TYPE_DRUG_UNAVAILABLE,
        title='Medication Unavailable',
        message=f"{medication_name} is unavailable. Suggested alternatives: {', '.join(alternatives)}",
        priority='Urgent',
        prescription=prescription,
    )
    return prescription


def _ensure_dispensable(prescription: EPrescription) -> None:
    if prescription.status == EPrescription.STATUS_DISPENSED:
        raise ValidationError('Prescription already dispensed')
    if prescription.status == EPrescription.STATUS_CLARIFICATION:
        raise ValidationError('Prescription is awaiting clarification')
    if prescription.status not in OPEN_STATUSES:
        raise ValidationError(f'Cannot dispense a {prescription.status} prescription')


def _completed_payment(payment_id) -> Optional[Payment]:
    if not payment_id:
        return None
    payment = Payment.objects.filter(id=payment_id, status=Payment.STATUS_COMPLETED).first()
    if payment is None:
        raise ValidationError('Invalid or incomplete payment')
    return payment


def _dispense_locked(prescription: EPrescription, pharmacist: User, payment: Optional[Payment]) -> bool:
    now = timezone.now()
    done = {d['medicationName'].lower() for d in prescription.dispensed_medications}
    outstanding = sorted(
        (n for n in _medication_names(prescription) if n.lower() not in done), key=str.lower
    )
    dispensed, unavailable = [], []
    for name in outstanding:
        item = Inventory.objects.select_for_update().filter(drug_name__iexact=name).first()
        if item is None:
            unavailable.append({'medicationName': name, 'reason': 'Not in inventory', 'alternatives': []})
            continue
        availability = item.check_availability(1)
        if not availability['available']:
            unavailable.append({
                'medicationName': name,
                'reason': availability['reason'],
                'alternatives': item.alternatives,
            })
            continue
        inventory_service.take(item, 1)
        dispensed.append({'medicationName': name, 'quantity': 1, 'dispensedAt': now.isoformat()})

    if not dispensed:
        raise ValidationError('None of the outstanding medications are in stock')

    complete = not unavailable
    prescription.dispensed_medications = list(prescription.dispensed_medications) + dispensed
    prescription.unavailable_medications = [
        u for u in prescription.unavailable_medications if u.get('suggestedBy')
    ] + unavailable
    prescription.status = EPrescription.STATUS_DISPENSED if complete else EPrescription.STATUS_PARTIAL
    prescription.validated_by = pharmacist
    prescription.validated_at = now
    if payment is not None:
        prescription.payment = payment
        prescription.payment_status = Payment.STATUS_COMPLETED
    prescription.save()

    if complete:
        notify(
            recipient=prescription.patient,
            sender=pharmacist,
            type=Notification.TYPE_PRESCRIPTION_DISPENSED,
            title='Prescription Dispensed',
            message=f"Your prescription #{prescription.id} has been dispensed and is ready for pickup.",
            prescription=prescription,
        )
    else:
        missing = ', '.join(u['medicationName'] for u in unavailable)
        notify(
            recipient=prescription.doctor,
            sender=pharmacist,
            type=Notification.TYPE_PARTIAL_DISPENSE,
            title='Prescription Partially Dispensed',
            message=f"Prescription #{prescription.id} was partially dispensed. Unavailable: {missing}",
            priority='High',
            prescription=prescription,
            metadata={'unavailable': [u['medicationName'] for u in unavailable]},
        )
    return complete


def dispense(prescription_id, *, pharmacist: User, payment_id=None) -> tuple[EPrescription, bool]:
    """Dispense outstanding medications; return the prescription and whether it is now complete."""
    with transaction.atomic():
        prescription = _locked(prescription_id)
        _ensure_dispensable(prescription)
        expired = prescription.is_past_expiry()
        if expired:
            prescription.status = EPrescription.STATUS_EXPIRED
            prescription.save(update_fields=['status', 'updated_at'])
        else:
            complete = _dispense_locked(prescription, pharmacist, _completed_payment(payment_id))
    if expired:
        raise ValidationError('Prescription has expired')
    log_action(
        user=pharmacist,
        action='DISPENSE_PRESCRIPTION',
        resource='EPrescription',
        resource_id=prescription.id,
        status=AuditLog.STATUS_SUCCESS if complete else AuditLog.STATUS_PARTIAL,
        details=f"Status {prescription.status}",
    )
    logger.info('Prescription %s dispensed by %s (%s)', prescription.id, pharmacist.id, prescription.status)
    return prescription, complete
