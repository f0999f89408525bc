from rest_framework import generics, status
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from config import permissions
from reservation.serializers import (
    ReservationSerializer,
    ReservationRequestSerializer,
    ReservationUpdateSerializer,
    ReservationStatusSerializer,
    ReservationMessageSerializer,
)
from reservation.services.reservation import ReservationService


class ReservationServiceMixin:
    """
    Gives a view its ReservationService. Views never touch the
    reservation table directly.
    """

    def get_service(self) -> ReservationService:
        return ReservationService()


class ReservationListCreateView(ReservationServiceMixin, generics.ListCreateAPIView):
    """
    POST: book a slot for the authenticated user.
    GET: every reservation, admins only.
    """

    serializer_class = ReservationSerializer

    def get_permissions(self):
        if self.request.method == "GET":
            return [permissions.IsAdminRole()]
        return [permissions.IsAuthenticatedUser()]

    def get_queryset(self):
        return self.get_service().list_all()

    @extend_schema(
        summary="Create a reservation",
        request=ReservationRequestSerializer,
        responses={
            201: ReservationSerializer,
            400: {"description": "Missing fields, invalid restaurant id or duplicate slot"},
            404: {"description": "Restaurant not found"},
            409: {"description": "No availability for selected slot"},
        },
    )
    def post(self, request, *args, **kwargs):
        request_serializer = ReservationRequestSerializer(data=request.data)
        request_serializer.is_valid(raise_exception=True)
        data = request_serializer.validated_data

        reservation = self.get_service().create_reservation(
            user=request.user,
            restaurant_id=data.get("restaurant"),
            date=data.get("date"),
            time=data.get("time"),
            party_size=data.get("partySize"),
        )

        return Response(
            ReservationSerializer(reservation).data, status=status.HTTP_201_CREATED
        )


class MyReservationsView(ReservationServiceMixin, generics.ListAPIView):
    """
    Reservations of the authenticated user, earliest slot first.
    """

    serializer_class = ReservationSerializer
    permission_classes = [permissions.IsAuthenticatedUser]

    def get_queryset(self):
        return self.get_service().list_for_user(self.request.user)


class OwnerReservationsView(ReservationServiceMixin, generics.ListAPIView):
    """
    Reservations for every restaurant owned by the authenticated owner.
    """

    serializer_class = ReservationSerializer
    permission_classes = [permissions.IsOwnerOrAdmin]

    def get_queryset(self):
        return self.get_service().list_for_owner(self.request.user)


class UpdateReservationView(ReservationServiceMixin, generics.GenericAPIView):
    """
    Move a reservation to another slot and/or change the party size.
    """

    serializer_class = ReservationUpdateSerializer
    permission_classes = [permissions.IsAuthenticatedUser]

    @extend_schema(
        summary="Update a reservation",
        responses={
            200: ReservationMessageSerializer,
            400: {"description": "Invalid reservation id or party size"},
            403: {"description": "Not the reservation's user or an admin"},
            404: {"description": "Reservation not found"},
            409: {"description": "Requested slot is fully booked"},
        },
    )
    def put(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        reservation = self.get_service().update_reservation(
            actor=request.user,
            reservation_id=kwargs["pk"],
            date=data.get("date"),
            time=data.get("time"),
            party_size=data.get("partySize"),
        )

        return Response(
            {
                "message": "Reservation updated",
                "reservation": ReservationSerializer(reservation).data,
            },
            status=status.HTTP_200_OK,
        )

    def patch(self, request, *args, **kwargs):
        return self.put(request, *args, **kwargs)


class CancelReservationView(ReservationServiceMixin, generics.GenericAPIView):
    """
    API endpoint to cancel an existing reservation.
    """

    permission_classes = [permissions.IsAuthenticatedUser]

    @extend_schema(
        summary="Cancel a reservation",
        description="Allowed for the reservation's user, the restaurant's owner "
        "and admins. Frees the slot immediately.",
        request=None,
        responses={
            200: ReservationMessageSerializer,
            400: {"description": "Invalid id or reservation already cancelled/completed"},
            403: {"description": "Not authorized to cancel this reservation"},
            404: {"description": "Reservation not found"},
        },
    )
    def put(self, request, *args, **kwargs):
        reservation = self.get_service().cancel_reservation(
            actor=request.user, reservation_id=kwargs["pk"]
        )

        return Response(
            {
                "message": "Reservation cancelled",
                "reservation": ReservationSerializer(reservation).data,
            },
            status=status.HTTP_200_OK,
        )

    def post(self, request, *args, **kwargs):
        return self.put(request, *args, **kwargs)


class ReservationStatusView(ReservationServiceMixin, generics.GenericAPIView):
    """
    Owner/admin endpoint to set a reservation's status.
    """

    serializer_class = ReservationStatusSerializer
    permission_classes = [permissions.IsAuthenticatedUser]

    @extend_schema(
        summary="Update reservation status",
        responses={
            200: ReservationMessageSerializer,
            400: {"description": "Invalid id or status"},
            403: {"description": "Not the restaurant's owner or an admin"},
            404: {"description": "Reservation not found"},
        },
    )
    def put(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reservation = self.get_service().update_status(
            actor=request.user,
            reservation_id=kwargs["pk"],
            status=serializer.validated_data.get("status"),
        )

        return Response(
            {
                "message": "Status updated",
                "reservation": ReservationSerializer(reservation).data,
            },
            status=status.HTTP_200_OK,
        )
