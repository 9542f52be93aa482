import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings

from clinic.assistant.engine import run_turn
from clinic.assistant.provider import UNKNOWN_ERROR, AssistantError
from clinic.services.queries import capability_for_user

logger = logging.getLogger(__name__)

_END = object()


async def _ws_error(ws, code, message: str, *, close: bool = False):
    """Error frame; ``code`` is a 4xxx close code or a provider error code."""
    payload = {"type": "error", "code": code, "message": message}
    try:
        await ws.send(json.dumps(payload))
    finally:
        if close:
            await ws.close(code=code if isinstance(code, int) else 1011)


class AssistantChatConsumer(AsyncWebsocketConsumer):
    """Streams assistant turns: send ``{"type": "chat", "messages": [...]}``."""

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated):
            await self.close(code=4001)
            return
        if getattr(user, "role", None) not in settings.ASSISTANT_ALLOWED_ROLES:
            await self.close(code=4003)
            return
        self.user = user
        await self.accept()

    async def receive(self, text_data=None, bytes_data=None):
        if not text_data:
            return
        try:
            data = json.loads(text_data)
        except ValueError:
            await _ws_error(self, 4000, "invalid_json")
            return
        if not isinstance(data, dict) or data.get("type") != "chat":
            await _ws_error(self, 4002, "unsupported_type")
            return
        messages = data.get("messages")
        if not isinstance(messages, list) or not messages:
            await _ws_error(self, 4004, "No messages provided")
            return
        if not settings.GOOGLE_GENERATIVE_AI_API_KEY:
            await _ws_error(self, 5000, "AI service not configured.")
            return

        capability = await database_sync_to_async(capability_for_user)(self.user)
        turn = run_turn(capability, messages)
        step = database_sync_to_async(next)
        try:
            while True:
                chunk = await step(turn, _END)
                if chunk is _END:
                    break
                await self.send(json.dumps({"type": "chunk", "text": chunk}))
        except AssistantError as e:
            await _ws_error(self, e.code, e.message)
            return
        except Exception:
            logger.exception("assistant turn failed user=%s", self.user.id)
            await _ws_error(self, UNKNOWN_ERROR, "An error occurred while processing your request.")
            return
        await self.send(json.dumps({"type": "done"}))
