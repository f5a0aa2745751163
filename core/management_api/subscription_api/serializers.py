from rest_framework import serializers


class UpgradeSerializer(serializers.Serializer):
    plan = serializers.CharField()


class CheckoutSessionSerializer(serializers.Serializer):
    """Optional redirect overrides for the Stripe checkout page"""
    success_url = serializers.URLField(required=False)
    cancel_url = serializers.URLField(required=False)
