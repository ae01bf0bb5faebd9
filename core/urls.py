from django.urls import path

from .views import BarangayListView, TagListView

urlpatterns = [
    path("tags/", TagListView.as_view(), name="tag-list"),
    path("barangays/", BarangayListView.as_view(), name="barangay-list"),
]
