import time

from django.conf import settings
from django.db import connections
from django.db.utils import OperationalError
from rest_framework import generics
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Barangay, Tag
from .permissions import IsAdminOrReadOnly
from .serializers import BarangaySerializer, TagSerializer


# -----------------------------
# REFERENCE DATA
# -----------------------------
class TagListView(generics.ListCreateAPIView):
    """
    GET  /api/core/tags/  -> all tags
    POST /api/core/tags/  -> create (admins only)
    """
    queryset = Tag.objects.all()
    serializer_class = TagSerializer
    permission_classes = [IsAdminOrReadOnly]
    pagination_class = None


class BarangayListView(generics.ListCreateAPIView):
    queryset = Barangay.objects.all()
    serializer_class = BarangaySerializer
    permission_classes = [IsAdminOrReadOnly]
    pagination_class = None


# -----------------------------
# HEALTH
# -----------------------------
class HealthCheckView(APIView):
    """
    Lightweight health endpoint for uptime checks.
    - Checks DB connectivity
    - Reports which media store is configured
    """
    permission_classes = [AllowAny]
    authentication_classes = []  # public endpoint

    def get(self, request, *args, **kwargs):
        start = time.time()

        db_ok = True
        try:
            connections["default"].cursor()
        except OperationalError:
            db_ok = False

        duration_ms = int((time.time() - start) * 1000)

        return Response(
            {
                "status": "ok" if db_ok else "degraded",
                "db": db_ok,
                "media_store": settings.MEDIA_STORE_BACKEND,
                "env": getattr(settings, "ENV", "unknown"),
                "latency_ms": duration_ms,
            }
        )
