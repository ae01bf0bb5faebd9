from rest_framework import serializers

from core.sanitizers import (
    sanitize_comment,
    sanitize_description,
    sanitize_remarks,
    sanitize_text,
    sanitize_title,
)
from core.serializers import BarangaySerializer, TagSerializer
from .models import Comment, Media, Project, Report, Update


class IdListField(serializers.Field):
    """
    Accepts "1,2,3" (form data) or [1, 2, 3] (JSON) and yields a list of
    unique ints in the order given.
    """
    default_error_messages = {
        "invalid": "Invalid id '{value}'.",
    }

    def to_internal_value(self, data):
        if isinstance(data, str):
            data = [chunk for chunk in data.split(",") if chunk.strip()]
        elif not isinstance(data, (list, tuple)):
            self.fail("invalid", value=data)

        ids = []
        for value in data:
            try:
                number = int(str(value).strip())
            except ValueError:
                self.fail("invalid", value=value)
            if number not in ids:
                ids.append(number)
        return ids

    def to_representation(self, value):
        return list(value)


# -----------------------------------------
# READ MODELS
# -----------------------------------------
class MediaSerializer(serializers.ModelSerializer):
    class Meta:
        model = Media
        fields = ["id", "url", "mime_type", "size", "project", "update", "created_at"]
        read_only_fields = fields


class UpdateSerializer(serializers.ModelSerializer):
    media = MediaSerializer(many=True, read_only=True)

    class Meta:
        model = Update
        fields = ["id", "project", "remarks", "progress", "media", "created_at", "updated_at"]
        read_only_fields = fields


class ProjectSerializer(serializers.ModelSerializer):
    tags = TagSerializer(many=True, read_only=True)
    barangays = BarangaySerializer(many=True, read_only=True)
    media = MediaSerializer(many=True, read_only=True)
    created_by_name = serializers.CharField(source="created_by.username", read_only=True)

    # Live counts annotated by the services; not stored on the row
    reaction_count = serializers.SerializerMethodField()
    comment_count = serializers.SerializerMethodField()
    report_count = serializers.SerializerMethodField()

    class Meta:
        model = Project
        fields = [
            "id",
            "title",
            "description",
            "objectives",
            "budget",
            "start_date",
            "due_date",
            "completion_date",
            "status",
            "progress",
            "views",
            "created_by",
            "created_by_name",
            "tags",
            "barangays",
            "media",
            "reaction_count",
            "comment_count",
            "report_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_reaction_count(self, obj):
        return getattr(obj, "reaction_count", None)

    def get_comment_count(self, obj):
        return getattr(obj, "comment_count", None)

    def get_report_count(self, obj):
        return getattr(obj, "report_count", None)


# -----------------------------------------
# WRITE PAYLOADS
# -----------------------------------------
class ProjectWriteSerializer(serializers.Serializer):
    """
    Create/edit payload. ``tagsIds`` and ``barangayIds`` come out as
    ``tag_ids`` / ``barangay_ids``. Use partial=True for edits.
    """
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    objectives = serializers.CharField(required=False, allow_blank=True)
    budget = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False)
    start_date = serializers.DateField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    completion_date = serializers.DateField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=Project.STATUS_CHOICES, required=False)
    progress = serializers.IntegerField(min_value=0, max_value=100, required=False)
    tagsIds = IdListField(source="tag_ids", required=False)
    barangayIds = IdListField(source="barangay_ids", required=False)

    def validate_title(self, value):
        value = sanitize_title(value)
        if not value:
            raise serializers.ValidationError("Title cannot be blank.")
        return value

    def validate_description(self, value):
        return sanitize_description(value)

    def validate_objectives(self, value):
        return sanitize_description(value)

    def validate(self, attrs):
        start, due = attrs.get("start_date"), attrs.get("due_date")
        if start and due and due < start:
            raise serializers.ValidationError({"due_date": "Due date cannot be before the start date."})
        return attrs


class MediaRefSerializer(serializers.Serializer):
    """An object the client already pushed through the direct upload endpoint."""
    url = serializers.CharField(max_length=1024)
    mime_type = serializers.CharField(max_length=100, required=False, allow_blank=True)
    size = serializers.IntegerField(min_value=0, required=False)


class UpdateWriteSerializer(serializers.Serializer):
    remarks = serializers.CharField()
    progress = serializers.IntegerField(min_value=0, max_value=100)
    uploadedImages = MediaRefSerializer(many=True, required=False, source="media_refs")

    def validate_remarks(self, value):
        value = sanitize_remarks(value)
        if not value:
            raise serializers.ValidationError("Remarks cannot be blank.")
        return value


class DiscardMediaSerializer(serializers.Serializer):
    urls = serializers.ListField(child=serializers.CharField(max_length=1024), allow_empty=False)


# -----------------------------------------
# ENGAGEMENT
# -----------------------------------------
class CommentSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = Comment
        fields = ["id", "project", "user", "username", "content", "created_at"]
        read_only_fields = ["id", "project", "user", "username", "created_at"]

    def validate_content(self, value):
        value = sanitize_comment(value)
        if not value:
            raise serializers.ValidationError("Comment cannot be blank.")
        return value


class ReportSerializer(serializers.ModelSerializer):
    class Meta:
        model = Report
        fields = ["id", "project", "user", "reason", "created_at"]
        read_only_fields = ["id", "project", "user", "created_at"]

    def validate_reason(self, value):
        return sanitize_text(value, max_length=2000)
