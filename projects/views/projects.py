from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from projects.serializers import ProjectSerializer, ProjectWriteSerializer
from projects.services.projects import (
    add_project,
    delete_all_projects,
    delete_project,
    get_project,
    list_projects,
    update_project,
)


class ProjectListCreateView(APIView):
    """
    GET    /api/projects/  -> filtered, sorted, paginated list
    POST   /api/projects/  -> create (multipart: fields + "files")
    DELETE /api/projects/  -> delete every project the caller may delete
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get(self, request):
        result = list_projects(request.query_params)
        serializer = ProjectSerializer(result["projects"], many=True, context={"request": request})
        return Response({
            "totalCount": result["totalCount"],
            "count": result["count"],
            "projects": serializer.data,
        })

    def post(self, request):
        serializer = ProjectWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        project = add_project(
            serializer.validated_data,
            request.FILES.getlist("files"),
            request.user,
        )
        return Response(
            {
                "msg": "Project created",
                "project": ProjectSerializer(project, context={"request": request}).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def delete(self, request):
        deleted = delete_all_projects(request.user)
        msg = "All projects deleted" if deleted else "No projects found"
        return Response({"msg": msg, "deleted": deleted})


class ProjectDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, project_id):
        project = get_project(project_id, request.user)
        return Response({"project": ProjectSerializer(project, context={"request": request}).data})

    def patch(self, request, project_id):
        serializer = ProjectWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        project = update_project(project_id, serializer.validated_data, request.user)
        return Response({
            "msg": f"Project {project_id} updated",
            "project": ProjectSerializer(project, context={"request": request}).data,
        })

    def delete(self, request, project_id):
        delete_project(project_id, request.user)
        return Response({"msg": f"Project {project_id} deleted"})
