from rest_framework import serializers

from clinic.models import User


class UserListQuerySerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)


class ProfileFieldsMixin(serializers.Serializer):
    firstName = serializers.CharField(source='first_name', required=False, max_length=100)
    lastName = serializers.CharField(source='last_name', required=False, max_length=100)
    dateOfBirth = serializers.DateField(source='date_of_birth', required=False)
    gender = serializers.CharField(required=False, allow_blank=True, max_length=20)
    bloodType = serializers.CharField(source='blood_type', required=False, allow_blank=True, max_length=5)
    address = serializers.CharField(required=False, allow_blank=True, max_length=255)
    specialization = serializers.CharField(required=False, max_length=100)
    licenseNumber = serializers.CharField(source='license_number', required=False, max_length=64)
    department = serializers.CharField(required=False, allow_blank=True, max_length=100)
    consultationFee = serializers.DecimalField(source='consultation_fee', max_digits=10, decimal_places=2,
                                               required=False, allow_null=True)
    bio = serializers.CharField(required=False, allow_blank=True)
    verified = serializers.BooleanField(required=False)
    isAvailable = serializers.BooleanField(source='is_available', required=False)
    staffRole = serializers.CharField(source='staff_role', required=False, max_length=50)


class UserCreateSerializer(ProfileFieldsMixin):
    email = serializers.EmailField()
    password = serializers.CharField(required=False, allow_blank=True, write_only=True)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)


class UserUpdateSerializer(ProfileFieldsMixin):
    email = serializers.EmailField(required=False)
    password = serializers.CharField(required=False, allow_blank=True, write_only=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    isActive = serializers.BooleanField(source='is_active', required=False)
