from django.urls import path

from reservation import views

urlpatterns = [
    path(
        "",
        views.ReservationListCreateView.as_view(),
        name="reservation-list-create",
    ),
    path(
        "me/",
        views.MyReservationsView.as_view(),
        name="my-reservations",
    ),
    path(
        "owner/",
        views.OwnerReservationsView.as_view(),
        name="owner-reservations",
    ),
    path(
        "<str:pk>/",
        views.UpdateReservationView.as_view(),
        name="update-reservation",
    ),
    path(
        "<str:pk>/cancel/",
        views.CancelReservationView.as_view(),
        name="cancel-reservation",
    ),
    path(
        "<str:pk>/status/",
        views.ReservationStatusView.as_view(),
        name="reservation-status",
    ),
]
