#taskdesk/schemas/response.py
from pydantic import BaseModel, Field
from typing import Any, Optional

class SuccessResponse(BaseModel):
    """
    SuccessResponse — универсальный ответ с результатом выполнения операции.
    """
    result: Any = Field(..., description="Результат запроса (может быть любым объектом)")
    detail: Optional[str] = Field(None, example="Operation successful", description="Дополнительная информация")

class SimpleMessage(BaseModel):
    """
    SimpleMessage — простое сообщение для подтверждения действия.
    """
    message: str = Field(..., example="Action completed successfully", description="Текстовое сообщение")
    usage: Optional[str] = Field(None, description="Подсказка по использованию")
