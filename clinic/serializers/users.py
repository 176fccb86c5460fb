from __future__ import annotations

from rest_framework import serializers

from clinic.models import User

GENDERS = [c[0] for c in User.GENDER_CHOICES]


class AdminUserCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    specialization = serializers.CharField(required=False, allow_blank=True, max_length=100)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
    licenseNumber = serializers.CharField(source='license_number', required=False, allow_blank=True, max_length=50)


class AdminUserUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    specialization = serializers.CharField(required=False, allow_blank=True, max_length=100)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
    licenseNumber = serializers.CharField(source='license_number', required=False, allow_blank=True, max_length=50)
    address = serializers.CharField(required=False, allow_blank=True)
    gender = serializers.ChoiceField(choices=GENDERS, required=False, allow_blank=True)
    dateOfBirth = serializers.DateField(source='date_of_birth', required=False, allow_null=True)
    isActive = serializers.BooleanField(source='is_active', required=False)


class UserListQuerySerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=[c[0] for c in User.ROLE_CHOICES], required=False)
    specialization = serializers.CharField(required=False, allow_blank=True)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=10)


class AuditLogQuerySerializer(serializers.Serializer):
    action = serializers.CharField(required=False, allow_blank=True, max_length=50)
    resource = serializers.CharField(required=False, allow_blank=True, max_length=50)
    userId = serializers.IntegerField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1, default=100)


class ProfileUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    dateOfBirth = serializers.DateField(source='date_of_birth', required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=GENDERS, required=False, allow_blank=True)
    bloodType = serializers.CharField(source='blood_type', required=False, allow_blank=True, max_length=5)
    address = serializers.CharField(required=False, allow_blank=True)
    emergencyContact = serializers.DictField(source='emergency_contact', required=False)
    insurance = serializers.DictField(required=False)
    specialization = serializers.CharField(required=False, allow_blank=True, max_length=100)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
