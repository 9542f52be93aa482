from rest_framework import serializers

from clinic.models import User


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField()

    def validate_email(self, v):
        v = (v or '').strip().lower()
        if not v:
            raise serializers.ValidationError('Email is required')
        return v

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(choices=[User.ROLE_PATIENT], required=False, default=User.ROLE_PATIENT)
    firstName = serializers.CharField(source='first_name', required=False, allow_blank=True, max_length=100)
    lastName = serializers.CharField(source='last_name', required=False, allow_blank=True, max_length=100)
    dateOfBirth = serializers.DateField(source='date_of_birth', required=False, allow_null=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
