"""URL configuration: the ops console is the only HTTP surface."""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path("admin/", admin.site.urls),
]
