from .user import User
from .project import Project, ProjectMember
from .task import Task
from .comment import Comment
from .file import File
from .audit import AuditLog
from .notification import Notification
