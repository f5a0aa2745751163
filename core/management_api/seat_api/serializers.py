from django.conf import settings
from rest_framework import serializers


class SeatQuantitySerializer(serializers.Serializer):
    """Seats to purchase or add in one request"""
    quantity = serializers.IntegerField(min_value=1)

    def validate_quantity(self, value):
        if value > settings.MAX_SEATS:
            raise serializers.ValidationError(f"Cannot exceed {settings.MAX_SEATS} seats")
        return value


class RemoveSeatsSerializer(serializers.Serializer):
    """Seats to give back. ``seatsToRemove`` is the older name of ``quantity``"""
    quantity = serializers.IntegerField(min_value=1, required=False)
    seatsToRemove = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):
        quantity = attrs.get('quantity', attrs.get('seatsToRemove'))
        if quantity is None:
            raise serializers.ValidationError({'quantity': ["This field is required."]})
        return {'quantity': quantity}
