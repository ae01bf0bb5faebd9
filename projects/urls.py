from django.urls import path

from .views import (
    MediaDiscardView,
    MediaSetView,
    MediaUploadView,
    ProjectCommentListCreateView,
    ProjectDetailView,
    ProjectListCreateView,
    ProjectReactionView,
    ProjectReportView,
    UpdateDetailView,
    UpdateListCreateView,
)

urlpatterns = [
    path("", ProjectListCreateView.as_view(), name="project-list"),

    # Direct uploads (refs later attached to an update or discarded)
    path("media/upload/", MediaUploadView.as_view(), name="media-upload"),
    path("media/discard/", MediaDiscardView.as_view(), name="media-discard"),

    path("<int:project_id>/", ProjectDetailView.as_view(), name="project-detail"),
    path("<int:project_id>/media/", MediaSetView.as_view(), name="project-media"),

    path("<int:project_id>/updates/", UpdateListCreateView.as_view(), name="update-list"),
    path("<int:project_id>/updates/<int:update_id>/", UpdateDetailView.as_view(), name="update-detail"),
    path("<int:project_id>/updates/<int:update_id>/media/", MediaSetView.as_view(), name="update-media"),

    path("<int:project_id>/comments/", ProjectCommentListCreateView.as_view(), name="project-comments"),
    path("<int:project_id>/react/", ProjectReactionView.as_view(), name="project-react"),
    path("<int:project_id>/report/", ProjectReportView.as_view(), name="project-report"),
]
