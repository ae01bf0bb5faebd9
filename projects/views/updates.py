from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from projects.serializers import UpdateSerializer, UpdateWriteSerializer
from projects.services.updates import (
    create_update,
    delete_all_updates,
    delete_update,
    edit_update,
    get_update,
    list_updates,
)


class UpdateListCreateView(APIView):
    """
    GET    /api/projects/<project_id>/updates/
    POST   /api/projects/<project_id>/updates/   remarks, progress, uploadedImages and/or "files"
    DELETE /api/projects/<project_id>/updates/   project status is left as it is
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get(self, request, project_id):
        result = list_updates(project_id, request.query_params)
        return Response({
            "project_id": result["project_id"],
            "totalCount": result["totalCount"],
            "count": result["count"],
            "updates": UpdateSerializer(result["updates"], many=True).data,
        })

    def post(self, request, project_id):
        serializer = UpdateWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        update = create_update(
            project_id,
            data["remarks"],
            data["progress"],
            data.get("media_refs", []),
            request.user,
            files=request.FILES.getlist("files"),
        )
        return Response(
            {"msg": "Update created", "project_id": project_id, "update": UpdateSerializer(update).data},
            status=status.HTTP_201_CREATED,
        )

    def delete(self, request, project_id):
        deleted = delete_all_updates(project_id, request.user)
        msg = "All updates and media files deleted" if deleted else "No update"
        return Response({"msg": msg, "deleted": deleted})


class UpdateDetailView(APIView):
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get(self, request, project_id, update_id):
        update = get_update(project_id, update_id)
        return Response({"update": UpdateSerializer(update).data})

    def patch(self, request, project_id, update_id):
        serializer = UpdateWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        refs = data.pop("media_refs", [])

        update = edit_update(
            project_id,
            update_id,
            data,
            refs,
            request.user,
            files=request.FILES.getlist("files"),
        )
        return Response({"msg": "Update edited", "update": UpdateSerializer(update).data})

    def delete(self, request, project_id, update_id):
        delete_update(project_id, update_id, request.user)
        return Response({"msg": "Update and media files deleted"})
