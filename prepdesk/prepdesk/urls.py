"""
URL configuration for prepdesk project.

The dashboard front end talks to the JSON API mounted under /api/.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


@require_http_methods(["GET"])
def api_root(request):
    """API root view with available endpoints."""
    return JsonResponse({
        'message': 'Order Preparation API',
        'version': '1.0.0',
        'endpoints': {
            'authentication': {
                'token': '/api/auth/token/',
                'token_refresh': '/api/auth/token/refresh/',
            },
            'order_prep': {
                'assignments': '/api/prep/assignments/',
                'claim': '/api/prep/assignments/claim/',
                'my_assignment': '/api/prep/assignments/mine/',
                'history': '/api/prep/history/',
                'priority_marks': '/api/prep/priority-marks/',
                'admin': '/api/prep/admin/',
                'stock_reconcile': '/api/prep/stock/reconcile/',
                'locations': '/api/prep/locations/',
            },
        }
    })


urlpatterns = [
    path("admin/", admin.site.urls),

    # API endpoints
    path('api/', api_root, name='api-root'),
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/prep/', include('order_prep.urls')),
]
