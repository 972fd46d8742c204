"""Chatbot route: free-text inventory questions."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ai.groq_client import ChatCompletionClient
from app.api.deps import get_db, get_current_user, get_completion_client
from app.api.envelope import ok
from app.models.user import User
from app.schemas.chatbot import ChatQuery
from app.services import chatbot_service

router = APIRouter()


@router.post("/chat")
def chat(
    data: ChatQuery,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    completion: Optional[ChatCompletionClient] = Depends(get_completion_client),
):
    reply = chatbot_service.respond(db, data.query, completion)
    return ok({"query": data.query, "response": reply, "timestamp": datetime.utcnow()})
