from rest_framework import serializers

from clinic.models import Billing


class BillingListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Billing.STATUS_CHOICES, required=False)


class BillingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Billing.STATUS_CHOICES)
