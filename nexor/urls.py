"""Nexor URL map: admin, auth, OpenAPI docs and the CRM API."""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .views import ApiHomeView

docs_permissions = [AllowAny]

urlpatterns = [
    path("admin/", admin.site.urls),

    # Index must precede crm_core's router root at the same path
    path("api/", ApiHomeView.as_view(), name="api-home"),

    # JWT for the SPA; session login for the browsable API
    path("api/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/auth/", include("rest_framework.urls")),

    path(
        "api/schema/",
        SpectacularAPIView.as_view(permission_classes=docs_permissions),
        name="schema",
    ),
    path(
        "api/schema/swagger-ui/",
        SpectacularSwaggerView.as_view(url_name="schema", permission_classes=docs_permissions),
        name="swagger-ui",
    ),

    path("", include("crm_core.urls")),
]
