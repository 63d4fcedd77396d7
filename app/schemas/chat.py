from pydantic import BaseModel, Field
from typing import List, Literal

class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str

class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=4000)
    conversation: List[ChatMessage] = []

class ChatResponse(BaseModel):
    response: str
