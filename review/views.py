import logging

from rest_framework import generics, status
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from config import permissions
from config.exceptions import Forbidden, parse_id
from notifications.gateway import notification_gateway
from review.models import Review
from review.serializers import (
    ReviewSerializer,
    ReviewUpdateSerializer,
    ReviewResponseSerializer,
)

logger = logging.getLogger(__name__)


def get_review(pk) -> Review:
    review = (
        Review.objects.select_related("restaurant", "user")
        .filter(pk=parse_id(pk, "Invalid review id"))
        .first()
    )
    if review is None:
        raise NotFound("Review not found")
    return review


class ReviewCreateView(generics.CreateAPIView):
    """
    API endpoint for reviewing a restaurant as the authenticated user.
    """

    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticatedUser]

    def perform_create(self, serializer):
        serializer.save(user=self.request.user)


class MyReviewsView(generics.ListAPIView):
    """
    Reviews written by the authenticated user, latest first.
    """

    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticatedUser]

    def get_queryset(self):
        return (
            Review.objects.filter(user=self.request.user)
            .select_related("restaurant", "user")
            .order_by("-created_at")
        )


class RestaurantReviewsView(generics.ListAPIView):
    serializer_class = ReviewSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        restaurant_id = parse_id(self.kwargs["restaurant_id"], "Invalid restaurant id")
        return Review.objects.filter(restaurant_id=restaurant_id).select_related(
            "restaurant", "user"
        )


class ReviewDetailView(generics.GenericAPIView):
    """
    Authors edit their reviews; authors and admins delete them.
    """

    serializer_class = ReviewUpdateSerializer
    permission_classes = [permissions.IsAuthenticatedUser]
    notifier = notification_gateway

    @extend_schema(responses={200: ReviewSerializer})
    def put(self, request, *args, **kwargs):
        review = get_review(kwargs["pk"])
        if review.user_id != request.user.pk:
            raise Forbidden("Not authorized")

        serializer = self.get_serializer(review, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()

        return Response(ReviewSerializer(review).data, status=status.HTTP_200_OK)

    def patch(self, request, *args, **kwargs):
        return self.put(request, *args, **kwargs)

    def delete(self, request, *args, **kwargs):
        review = get_review(kwargs["pk"])
        is_author = review.user_id == request.user.pk
        if not is_author and not request.user.is_admin:
            raise Forbidden("Not authorized")

        review_id = review.pk
        review.delete()
        logger.info(f"Review {review_id} deleted by user {request.user.pk}")

        if not is_author:
            self.notifier.publish("reviewDeleted", {"reviewId": str(review_id)})

        return Response({"message": "Review deleted"}, status=status.HTTP_200_OK)


class RespondToReviewView(generics.GenericAPIView):
    """
    The reviewed restaurant's owner answers a review.
    """

    serializer_class = ReviewResponseSerializer
    permission_classes = [permissions.IsAuthenticatedUser]

    def put(self, request, *args, **kwargs):
        review = get_review(kwargs["pk"])
        if not review.restaurant.is_owned_by(request.user):
            raise Forbidden("Not authorized to respond")

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review.response = serializer.validated_data["response"]
        review.save(update_fields=["response", "updated_at"])

        return Response(
            {"message": "Response added", "review": ReviewSerializer(review).data},
            status=status.HTTP_200_OK,
        )
