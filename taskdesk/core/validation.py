# taskdesk/core/validation.py

from typing import Any, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from taskdesk.core.exceptions import ValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def validate_payload(
    schema: Type[SchemaT],
    data: Any,
    error_cls: Type[ValidationError] = ValidationError,
) -> SchemaT:
    """
    Валидирует входные данные pydantic-схемой.
    При ошибке бросает error_cls с сообщением вида "field: message".
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        messages = []
        for err in e.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()))
            messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
        raise error_cls("; ".join(messages))
