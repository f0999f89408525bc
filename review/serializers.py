from rest_framework import serializers

from restaurant.models import Restaurant
from restaurant.serializers import RestaurantSummarySerializer
from review.models import Review
from users.serializers import UserSummarySerializer


class ReviewSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)
    restaurant = serializers.PrimaryKeyRelatedField(queryset=Restaurant.objects.all())
    restaurantDetail = RestaurantSummarySerializer(source="restaurant", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Review
        fields = [
            "id",
            "restaurant",
            "restaurantDetail",
            "user",
            "rating",
            "comment",
            "response",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = ["id", "user", "response"]


class ReviewUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Review
        fields = ["rating", "comment"]
        extra_kwargs = {
            "rating": {"required": False},
            "comment": {"required": False},
        }


class ReviewResponseSerializer(serializers.Serializer):
    response = serializers.CharField(allow_blank=True)
