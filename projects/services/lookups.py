from rest_framework.exceptions import NotFound

from ..models import Project, Update


def get_project_or_404(project_id, queryset=None) -> Project:
    queryset = Project.objects.all() if queryset is None else queryset
    try:
        return queryset.get(pk=project_id)
    except Project.DoesNotExist:
        raise NotFound(f"Project {project_id} not found.")


def get_update_or_404(project, update_id, queryset=None) -> Update:
    queryset = Update.objects.all() if queryset is None else queryset
    try:
        return queryset.get(pk=update_id, project=project)
    except Update.DoesNotExist:
        raise NotFound(f"Update {update_id} not found in project {project.id}.")


def lock_project(project_id) -> Project:
    """Re-read the project with a row lock; call inside a transaction."""
    return get_project_or_404(project_id, Project.objects.select_for_update())
