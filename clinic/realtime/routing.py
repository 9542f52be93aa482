from django.urls import path

from clinic.realtime.chat_consumers import AssistantChatConsumer
from clinic.realtime.consumers import UpdatesConsumer

websocket_urlpatterns = [
    path("ws/updates/", UpdatesConsumer.as_asgi()),
    path("ws/chat/", AssistantChatConsumer.as_asgi()),
]
