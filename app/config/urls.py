"""
URL configuration for the e-transfer gateway service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/etransfer/             - E-transfer endpoints
        session/login/             - Processor account login (POST)
        session/logout/            - Processor account logout (POST)
        gateway/                   - Checkout page information (GET)
        orders/{id}/checkout/      - Issue payment link (POST)
        orders/{id}/payment-link/  - Payment link for confirmation page (GET)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("etransfer/", include("etransfer.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "E-Transfer Gateway Admin"
admin.site.site_title = "E-Transfer Gateway"
admin.site.index_title = "Orders and gateway settings"
