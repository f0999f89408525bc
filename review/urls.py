from django.urls import path

from review import views

urlpatterns = [
    path("", views.ReviewCreateView.as_view(), name="create-review"),
    path("me/", views.MyReviewsView.as_view(), name="my-reviews"),
    path(
        "restaurant/<str:restaurant_id>/",
        views.RestaurantReviewsView.as_view(),
        name="restaurant-reviews",
    ),
    path("<str:pk>/", views.ReviewDetailView.as_view(), name="review-detail"),
    path("<str:pk>/respond/", views.RespondToReviewView.as_view(), name="respond-review"),
]
