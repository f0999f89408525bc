import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.viewsets import ModelViewSet
from drf_spectacular.utils import extend_schema, OpenApiParameter

from config import permissions
from config.exceptions import parse_id
from notifications.gateway import notification_gateway
from reservation.services.capacity import CapacityService
from .models import Restaurant
from .serializers import (
    RestaurantSerializer,
    AvailabilitySerializer,
    AvailabilityQuerySerializer,
)

logger = logging.getLogger(__name__)


class RestaurantViewSet(ModelViewSet):
    """
    Restaurant directory. Reads are public; owners manage their own
    restaurants and admins manage all of them.
    """

    queryset = Restaurant.objects.select_related("owner").all()
    serializer_class = RestaurantSerializer
    notifier = notification_gateway

    def get_permissions(self):
        if self.action in ("list", "retrieve", "availability"):
            return [AllowAny()]
        if self.action in ("create", "my"):
            return [permissions.IsOwnerOrAdmin()]
        if self.action == "destroy":
            return [permissions.IsAdminRole()]
        return [
            permissions.IsAuthenticatedUser(),
            permissions.IsRestaurantOwnerOrAdmin(),
        ]

    def get_object(self):
        # Malformed ids are a client error, not a missing restaurant
        parse_id(self.kwargs[self.lookup_field], "Invalid id")
        return super().get_object()

    def perform_create(self, serializer):
        restaurant = serializer.save(owner=self.request.user)
        logger.info(f"Restaurant {restaurant.pk} created by user {self.request.user.pk}")

    def update(self, request, *args, **kwargs):
        # PUT and PATCH both apply only the fields sent
        kwargs["partial"] = True
        return super().update(request, *args, **kwargs)

    def perform_update(self, serializer):
        old_capacity = CapacityService.resolve_capacity(serializer.instance)
        restaurant = serializer.save()
        new_capacity = CapacityService.resolve_capacity(restaurant)

        # Connected clients refresh their availability view
        if new_capacity != old_capacity:
            logger.info(
                f"Restaurant {restaurant.pk} capacity changed {old_capacity} -> {new_capacity}"
            )
            self.notifier.broadcast(
                "restaurantCapacityChanged",
                {"restaurantId": str(restaurant.pk), "capacity": new_capacity},
                restaurant_id=restaurant.pk,
            )

    def perform_destroy(self, instance):
        restaurant_id = instance.pk
        # Reservations and reviews cascade with the restaurant
        instance.delete()

        logger.info(f"Restaurant {restaurant_id} deleted by user {self.request.user.pk}")
        self.notifier.publish("restaurantDeleted", {"restaurantId": str(restaurant_id)})

    @extend_schema(summary="Restaurants owned by the current user")
    @action(detail=False, methods=["get"])
    def my(self, request):
        restaurants = self.get_queryset().filter(owner=request.user)
        serializer = self.get_serializer(restaurants, many=True)
        return Response(serializer.data)

    @extend_schema(
        summary="Slot availability",
        parameters=[
            OpenApiParameter(name="date", type=str, required=True, description="Date, e.g. 2025-01-01"),
            OpenApiParameter(name="time", type=str, required=True, description="Slot, e.g. 19:00"),
        ],
        responses={200: AvailabilitySerializer},
    )
    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):
        restaurant_id = parse_id(pk, "Invalid restaurant id")

        query_serializer = AvailabilityQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)
        date = query_serializer.validated_data["date"]
        time = query_serializer.validated_data["time"]

        result = CapacityService.availability(restaurant_id, date, time)

        return Response(
            {"restaurant": restaurant_id, "date": date, "time": time, **result},
            status=status.HTTP_200_OK,
        )
