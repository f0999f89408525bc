# urls.py
from rest_framework.routers import SimpleRouter
from .views import RestaurantViewSet

router = SimpleRouter()
router.register('', RestaurantViewSet, basename='restaurant')

urlpatterns = router.urls
