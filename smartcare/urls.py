"""Top-level routes: clinic API, admin site, metrics and API docs."""
from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework.permissions import AllowAny

api_info = openapi.Info(
    title="Smart Health Care System API",
    default_version="v1",
    description="Scheduling, appointments, laboratory, pharmacy, triage, payments and administration.",
)

docs = get_schema_view(api_info, public=True, permission_classes=(AllowAny,))

urlpatterns = [
    path("", include("clinic.routers")),
    path("", include("django_prometheus.urls")),
    path("admin/", admin.site.urls),
    path("swagger/", docs.with_ui("swagger", cache_timeout=0), name="docs-swagger"),
    path("redoc/", docs.with_ui("redoc", cache_timeout=0), name="docs-redoc"),
]
