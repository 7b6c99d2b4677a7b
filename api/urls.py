"""
Batchline API URLs.

Include this in your project's urlpatterns:

    path('api/batchline/', include('batchline.api.urls')),
"""

from rest_framework.routers import DefaultRouter

from .views import AdjustmentOrderViewSet, BatchViewSet, RecipeViewSet, RunViewSet

router = DefaultRouter()
router.register("recipes", RecipeViewSet)
router.register("runs", RunViewSet)
router.register("batches", BatchViewSet)
router.register("adjustments", AdjustmentOrderViewSet)

urlpatterns = router.urls
