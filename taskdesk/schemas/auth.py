#taskdesk/schemas/auth.py
from pydantic import BaseModel, Field

class LoginResponse(BaseModel):
    """
    LoginResponse — ответ на успешный логин.
    """
    access_token: str = Field(..., example="eyJhbGciOi...", description="JWT access token")
    token_type: str = Field("bearer", example="bearer", description="Тип токена")
    expires_in: int = Field(..., description="Время жизни access токена (секунды)", example=3600)
