from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from projects.serializers import DiscardMediaSerializer, MediaSerializer
from projects.services.media import (
    delete_owner_media,
    discard_refs,
    list_media,
    replace_owner_media,
    upload_refs,
)


class MediaSetView(APIView):
    """
    Media of a project (top-level only) or of one update.

    GET    .../media/  -> list
    PUT    .../media/  -> replace with uploaded "files" (no files: unchanged)
    DELETE .../media/  -> delete all
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get(self, request, project_id, update_id=None):
        result = list_media(project_id, update_id, request.query_params)
        result["media"] = MediaSerializer(result["media"], many=True).data
        return Response(result)

    def put(self, request, project_id, update_id=None):
        files = request.FILES.getlist("files")
        media = replace_owner_media(project_id, update_id, files, request.user)

        owner = "update" if update_id is not None else "project"
        msg = "Media replaced" if files else "You have not uploaded any files"
        return Response({
            "msg": msg,
            owner: {
                "id": update_id if update_id is not None else project_id,
                "media": MediaSerializer(media, many=True).data,
            },
        })

    def delete(self, request, project_id, update_id=None):
        deleted = delete_owner_media(project_id, update_id, request.user)
        msg = "All update media deleted" if update_id is not None else "All project media deleted"
        return Response({"msg": msg, "deleted": deleted})


class MediaUploadView(APIView):
    """
    POST /api/projects/media/upload/

    Pushes files to the media store without attaching them. The returned
    refs go into an update's "uploadedImages", or to /media/discard/.
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        files = request.FILES.getlist("files")
        if not files:
            raise ValidationError({"files": "No file uploaded."})

        refs = upload_refs(files, request.user)
        return Response({"msg": "Media uploaded", "media": refs}, status=status.HTTP_201_CREATED)


class MediaDiscardView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = DiscardMediaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = discard_refs(serializer.validated_data["urls"], request.user)
        return Response({"msg": "Uploaded media discarded", **result})
