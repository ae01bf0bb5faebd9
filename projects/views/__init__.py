from .projects import ProjectListCreateView, ProjectDetailView
from .updates import UpdateListCreateView, UpdateDetailView
from .media import MediaSetView, MediaUploadView, MediaDiscardView
from .engagement import ProjectCommentListCreateView, ProjectReactionView, ProjectReportView
