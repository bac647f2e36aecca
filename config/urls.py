from django.contrib import admin
from django.urls import path
from django.views.generic import RedirectView

admin.site.site_header = "Gym Billing — Админка"
admin.site.site_title = "Gym Billing"
admin.site.index_title = "Управление"

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", RedirectView.as_view(url="/admin/", permanent=False)),
]
