from rest_framework import serializers

from .models import Restaurant


class RestaurantSerializer(serializers.ModelSerializer):
    cuisineType = serializers.CharField(source="cuisine_type", required=False, allow_blank=True)
    priceRange = serializers.CharField(source="price_range", required=False, allow_blank=True)
    menuItems = serializers.JSONField(source="menu_items", required=False)
    tablesPerSlot = serializers.IntegerField(
        source="tables_per_slot", required=False, allow_null=True, min_value=1
    )
    capacity = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Restaurant
        fields = [
            "id",
            "owner",
            "name",
            "description",
            "cuisineType",
            "price",
            "priceRange",
            "location",
            "contact",
            "features",
            "menuItems",
            "hours",
            "tablesPerSlot",
            "capacity",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = ["id", "owner"]

    def validate_features(self, value):
        if not isinstance(value, list) or not all(isinstance(f, str) for f in value):
            raise serializers.ValidationError("Features must be a list of strings.")
        return value


class RestaurantSummarySerializer(serializers.ModelSerializer):
    """
    Identifying fields of a restaurant embedded in reservations and reviews.
    """

    cuisineType = serializers.CharField(source="cuisine_type", read_only=True)

    class Meta:
        model = Restaurant
        fields = ["id", "name", "location", "cuisineType", "owner"]
        read_only_fields = fields


class AvailabilityQuerySerializer(serializers.Serializer):
    """
    Query parameters of the availability endpoint. Values are kept as the
    exact strings used when booking.
    """

    date = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    time = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate(self, attrs):
        if not attrs.get("date") or not attrs.get("time"):
            raise serializers.ValidationError(
                "date and time query parameters required"
            )
        return attrs


class AvailabilitySerializer(serializers.Serializer):
    restaurant = serializers.IntegerField()
    date = serializers.CharField()
    time = serializers.CharField()
    capacity = serializers.IntegerField()
    booked = serializers.IntegerField()
    available = serializers.IntegerField()
