"""
WebSocket delivery of notifications.

Clients connect to ``/ws/notifications/?token=<access token>``; the
consumer joins the ``user.<id>`` group that
``clinic.services.notifications`` sends to after each commit.
"""
import json
from urllib.parse import parse_qs

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

from clinic.models import User
from clinic.services.notifications import unread_count, user_group


def _user_for_token(raw: str):
    try:
        token = AccessToken(raw)
    except TokenError:
        return None
    return User.objects.filter(id=token.get('user_id'), is_active=True).first()


class NotificationConsumer(AsyncWebsocketConsumer):
    async def connect(self):
        query = parse_qs(self.scope.get("query_string", b"").decode())
        raw = (query.get("token") or [""])[0]
        user = await sync_to_async(_user_for_token)(raw) if raw else None
        if user is None:
            await self.close(code=4401)
            return

        self.user_id = user.id
        self.group_name = user_group(user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        count = await sync_to_async(unread_count)(user)
        await self.send(json.dumps({"type": "welcome", "unreadCount": count}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def notification_message(self, event):
        # event: {"type": "notification.message", "id": ..., "title": ..., ...}
        payload = {k: v for k, v in event.items() if k != "type"}
        await self.send(json.dumps({"type": "notification", **payload}))
