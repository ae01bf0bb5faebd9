from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Project(models.Model):
    """
    A barangay community project: the root aggregate.
    Updates and media belong to it and are deleted with it.

    Invariant kept by the lifecycle services:
    status == completed  <=>  progress == 100
    """
    STATUS_PENDING = "pending"
    STATUS_ONGOING = "ongoing"
    STATUS_COMPLETED = "completed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_ONGOING, "Ongoing"),
        (STATUS_COMPLETED, "Completed"),
    ]

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    objectives = models.TextField(blank=True, default="")
    budget = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    start_date = models.DateField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True)
    completion_date = models.DateField(null=True, blank=True)

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True,
    )
    progress = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    views = models.PositiveIntegerField(default=0)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="projects",
    )
    tags = models.ManyToManyField("core.Tag", related_name="projects", blank=True)
    barangays = models.ManyToManyField("core.Barangay", related_name="projects", blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_by", "-created_at"], name="project_owner_created_idx"),
        ]

    def __str__(self):
        return self.title


class Update(models.Model):
    """A dated progress report nested under a project."""
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="updates",
        editable=False,
    )
    remarks = models.TextField()
    progress = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Update {self.pk} on {self.project_id} ({self.progress}%)"


class Media(models.Model):
    """
    A file attached to a project or to one of its updates.

    Update media also carry the update's project so a project delete
    reaches them. Project-level media are the rows with no update.
    """
    url = models.CharField(max_length=1024)
    mime_type = models.CharField(max_length=100)
    size = models.PositiveBigIntegerField(default=0)

    # Staged copy under MEDIA_ROOT; blank for refs uploaded straight to the store
    local_path = models.CharField(max_length=512, blank=True, default="")

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="media",
        null=True,
        blank=True,
    )
    update = models.ForeignKey(
        Update,
        on_delete=models.CASCADE,
        related_name="media",
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Media"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(project__isnull=False) | models.Q(update__isnull=False),
                name="media_has_owner",
            ),
        ]

    def __str__(self):
        return self.url


class PendingUpload(models.Model):
    """
    An object pushed through the direct upload endpoint and not yet
    attached to a Media row. Only its uploader may attach or discard it.
    """
    object_id = models.CharField(max_length=255, unique=True)
    url = models.CharField(max_length=1024)
    mime_type = models.CharField(max_length=100, blank=True, default="")
    size = models.PositiveBigIntegerField(default=0)
    local_path = models.CharField(max_length=512, blank=True, default="")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="pending_uploads",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.object_id


class View(models.Model):
    """One row per (user, project): gates the project's view counter."""
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="project_views",
    )
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="view_records",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "project"], name="unique_project_view"),
        ]

    def __str__(self):
        return f"{self.user} viewed {self.project_id}"


class Comment(models.Model):
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="comments",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="project_comments",
    )
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["project", "created_at"], name="project_comment_idx"),
        ]

    def __str__(self):
        return f"{self.user} commented on {self.project_id}"


class Reaction(models.Model):
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="reactions",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="project_reactions",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["project", "user"], name="unique_project_reaction"),
        ]

    def __str__(self):
        return f"{self.user} reacted to {self.project_id}"


class Report(models.Model):
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name="reports",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="project_reports",
    )
    reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} reported {self.project_id}"
