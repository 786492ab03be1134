from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# chat_history.session_id is VARCHAR(100)
SESSION_ID_MAX = 100


class ChatRequest(BaseModel):
    # Blank-message check lives in chat_with_advisor so it returns BAD_REQUEST
    model_config = ConfigDict(extra="ignore")

    message: str = ""
    session_id: Optional[str] = Field(default=None, max_length=SESSION_ID_MAX)
