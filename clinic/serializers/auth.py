from __future__ import annotations

from rest_framework import serializers

from clinic.models import User
from clinic.serializers import iso


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()

    def validate_email(self, v):
        return (v or '').strip().lower()


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    role = serializers.ChoiceField(choices=[c[0] for c in User.ROLE_CHOICES], required=False)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    dateOfBirth = serializers.DateField(source='date_of_birth', required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=[c[0] for c in User.GENDER_CHOICES], required=False, allow_blank=True)

    def validate_name(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Name is required')
        return v


class MeUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    address = serializers.CharField(required=False, allow_blank=True)
    dateOfBirth = serializers.DateField(source='date_of_birth', required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=[c[0] for c in User.GENDER_CHOICES], required=False, allow_blank=True)


class PasswordChangeSerializer(serializers.Serializer):
    currentPassword = serializers.CharField()
    newPassword = serializers.CharField(min_length=6)


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)


def user_brief(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        'id': user.id,
        'name': user.get_full_name(),
        'email': user.email,
        'role': user.role,
        'specialization': user.specialization or None,
    }


def user_dict(user: User) -> dict:
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'displayRole': user.display_role,
        'phone': user.phone,
        'dateOfBirth': iso(user.date_of_birth),
        'gender': user.gender,
        'bloodType': user.blood_type,
        'address': user.address,
        'specialization': user.specialization,
        'department': user.department,
        'licenseNumber': user.license_number,
        'digitalHealthCardId': user.digital_health_card_id,
        'emergencyContact': user.emergency_contact,
        'insurance': user.insurance,
        'isActive': user.is_active,
        'createdAt': iso(user.created_at),
    }
