from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from projects.models import Comment, Reaction
from projects.serializers import CommentSerializer, ReportSerializer
from projects.services.lookups import get_project_or_404


class ProjectCommentListCreateView(APIView):
    """
    GET  /api/projects/<project_id>/comments/
    POST /api/projects/<project_id>/comments/  {"content": "..."}
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, project_id):
        project = get_project_or_404(project_id)
        comments = Comment.objects.filter(project=project).select_related("user")
        return Response({
            "project_id": project.id,
            "count": comments.count(),
            "comments": CommentSerializer(comments, many=True).data,
        })

    def post(self, request, project_id):
        project = get_project_or_404(project_id)
        serializer = CommentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = serializer.save(project=project, user=request.user)
        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)


class ProjectReactionView(APIView):
    """POST toggles the caller's reaction on the project."""
    permission_classes = [IsAuthenticated]

    def post(self, request, project_id):
        project = get_project_or_404(project_id)

        deleted, _ = Reaction.objects.filter(project=project, user=request.user).delete()
        if deleted:
            reacted = False
        else:
            Reaction.objects.get_or_create(project=project, user=request.user)
            reacted = True

        return Response({
            "reacted": reacted,
            "reaction_count": Reaction.objects.filter(project=project).count(),
        })


class ProjectReportView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, project_id):
        project = get_project_or_404(project_id)
        serializer = ReportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = serializer.save(project=project, user=request.user)
        return Response(ReportSerializer(report).data, status=status.HTTP_201_CREATED)
