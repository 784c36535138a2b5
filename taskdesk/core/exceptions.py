# taskdesk/core/exceptions.py

class BaseAppException(Exception):
    """Базовый класс для всех кастомных исключений приложения."""
    def __init__(self, message: str = "App exception"):
        super().__init__(message)

# ==== Аутентификация / авторизация ====

class AuthError(BaseAppException):
    """Нет аутентифицированного пользователя."""
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)

class PermissionDeniedError(BaseAppException):
    """Действие запрещено для текущей роли."""
    def __init__(self, message: str = "Not enough permissions"):
        super().__init__(message)

# ==== Валидация ====

class ValidationError(BaseAppException):
    """Общая ошибка валидации."""
    def __init__(self, message: str = "Validation error"):
        super().__init__(message)

class UserValidationError(ValidationError):
    """Ошибка валидации пользователя."""
    def __init__(self, message: str = "User validation error"):
        super().__init__(message)

class ProjectValidationError(ValidationError):
    """Ошибка валидации проекта."""
    def __init__(self, message: str = "Project validation error"):
        super().__init__(message)

class TaskValidationError(ValidationError):
    """Ошибка валидации задачи."""
    def __init__(self, message: str = "Task validation error"):
        super().__init__(message)

class CommentValidationError(ValidationError):
    """Ошибка валидации комментария."""
    def __init__(self, message: str = "Comment validation error"):
        super().__init__(message)

class FileValidationError(ValidationError):
    """Ошибка валидации файла."""
    def __init__(self, message: str = "File validation error"):
        super().__init__(message)

# ==== NotFound ====

class NotFoundError(BaseAppException):
    """Ошибка отсутствия ресурса."""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)

class UserNotFound(NotFoundError):
    """Ошибка: пользователь не найден."""
    def __init__(self, message: str = "User not found"):
        super().__init__(message)

class ProjectNotFound(NotFoundError):
    """Ошибка: проект не найден."""
    def __init__(self, message: str = "Project not found"):
        super().__init__(message)

class TaskNotFound(NotFoundError):
    """Ошибка: задача не найдена."""
    def __init__(self, message: str = "Task not found"):
        super().__init__(message)

class CommentNotFound(NotFoundError):
    """Ошибка: комментарий не найден."""
    def __init__(self, message: str = "Comment not found"):
        super().__init__(message)

class FileNotFound(NotFoundError):
    """Ошибка: файл не найден."""
    def __init__(self, message: str = "File not found"):
        super().__init__(message)

class NotificationNotFound(NotFoundError):
    """Ошибка: уведомление не найдено."""
    def __init__(self, message: str = "Notification not found"):
        super().__init__(message)
