from rest_framework import serializers


class PatientListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)


class PatientUpdateSerializer(serializers.Serializer):
    firstName = serializers.CharField(source='first_name', required=False, max_length=100)
    lastName = serializers.CharField(source='last_name', required=False, max_length=100)
    dateOfBirth = serializers.DateField(source='date_of_birth', required=False)
    gender = serializers.CharField(required=False, allow_blank=True, max_length=20)
    bloodType = serializers.CharField(source='blood_type', required=False, allow_blank=True, max_length=5)
    address = serializers.CharField(required=False, allow_blank=True, max_length=255)
    emergencyContactName = serializers.CharField(source='emergency_contact_name', required=False,
                                                 allow_blank=True, max_length=100)
    emergencyContactPhone = serializers.CharField(source='emergency_contact_phone', required=False,
                                                  allow_blank=True, max_length=32)
    insuranceProvider = serializers.CharField(source='insurance_provider', required=False,
                                              allow_blank=True, max_length=100)
    insurancePolicyNumber = serializers.CharField(source='insurance_policy_number', required=False,
                                                  allow_blank=True, max_length=64)
    email = serializers.EmailField(required=False)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    isActive = serializers.BooleanField(source='is_active', required=False)
