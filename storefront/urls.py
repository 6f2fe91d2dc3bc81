# storefront/urls.py - admin site, health check and the shop API
from django.contrib import admin
from django.urls import path, include

from shop.views import health

urlpatterns = [
    path("admin/", admin.site.urls),

    path("health", health, name="health"),
    path("health/", health),

    path("api/", include("shop.urls")),
]

handler404 = "shop.views.not_found"
handler500 = "shop.views.server_error"
