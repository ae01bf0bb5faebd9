from django.contrib import admin
from .models import Comment, Media, PendingUpload, Project, Reaction, Report, Update, View


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ('title', 'status', 'progress', 'budget', 'views', 'created_by', 'created_at')
    list_filter = ('status', 'barangays', 'tags', 'created_at')
    search_fields = ('title', 'description', 'created_by__username')
    filter_horizontal = ('tags', 'barangays')
    date_hierarchy = 'created_at'

@admin.register(Update)
class UpdateAdmin(admin.ModelAdmin):
    list_display = ('project', 'progress', 'created_at')
    search_fields = ('remarks', 'project__title')
    list_filter = ('created_at',)

@admin.register(Media)
class MediaAdmin(admin.ModelAdmin):
    list_display = ('url', 'mime_type', 'size', 'project', 'update', 'created_at')
    list_filter = ('mime_type',)
    search_fields = ('url', 'project__title')

@admin.register(View)
class ViewAdmin(admin.ModelAdmin):
    list_display = ('user', 'project', 'created_at')
    search_fields = ('user__username', 'project__title')

@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ('project', 'user', 'created_at')
    search_fields = ('content', 'project__title', 'user__username')

@admin.register(Reaction)
class ReactionAdmin(admin.ModelAdmin):
    list_display = ('project', 'user', 'created_at')

@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ('project', 'user', 'created_at')
    search_fields = ('reason', 'project__title')

@admin.register(PendingUpload)
class PendingUploadAdmin(admin.ModelAdmin):
    list_display = ('object_id', 'uploaded_by', 'mime_type', 'size', 'created_at')
    search_fields = ('object_id', 'uploaded_by__username')
