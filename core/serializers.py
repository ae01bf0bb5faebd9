from rest_framework import serializers

from .models import Barangay, Tag
from .sanitizers import sanitize_title


class TagSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tag
        fields = ["id", "name"]

    def validate_name(self, value):
        return sanitize_title(value)[:100]


class BarangaySerializer(serializers.ModelSerializer):
    class Meta:
        model = Barangay
        fields = ["id", "name"]

    def validate_name(self, value):
        return sanitize_title(value)
