from rest_framework import serializers

from reservation.models import Reservation
from restaurant.serializers import RestaurantSummarySerializer
from users.serializers import UserSummarySerializer


class ReservationSerializer(serializers.ModelSerializer):
    """
    Reservation with user and restaurant resolved for display.
    """

    user = UserSummarySerializer(read_only=True)
    restaurant = RestaurantSummarySerializer(read_only=True)
    partySize = serializers.IntegerField(source="party_size", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Reservation
        fields = [
            "id",
            "user",
            "restaurant",
            "date",
            "time",
            "partySize",
            "status",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields


class ReservationRequestSerializer(serializers.Serializer):
    """
    Body of a reservation request.
    Presence and range checks are done by ReservationService so every
    caller gets the same errors.
    """

    restaurant = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    date = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False
    )
    time = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False
    )
    partySize = serializers.IntegerField(required=False, allow_null=True)


class ReservationUpdateSerializer(serializers.Serializer):
    date = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False
    )
    time = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False
    )
    partySize = serializers.IntegerField(required=False, allow_null=True)


class ReservationStatusSerializer(serializers.Serializer):
    status = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text="One of: " + ", ".join(Reservation.Status.values),
    )


class ReservationMessageSerializer(serializers.Serializer):
    message = serializers.CharField()
    reservation = ReservationSerializer()
