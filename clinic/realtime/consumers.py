import json

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from clinic.models import Doctor


@database_sync_to_async
def _doctor_id(user):
    return Doctor.objects.filter(user_id=user.id).values_list("id", flat=True).first()


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes new appointments to the doctor they were booked with."""

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated):
            await self.close(code=4001)
            return
        doctor_id = await _doctor_id(user)
        if not doctor_id:
            await self.close(code=4003)
            return
        self.group_name = f"doctor.{doctor_id}"
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected", "doctorId": doctor_id}))

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def appointment_created(self, event):
        # event: {"type": "appointment.created", "appointmentId": int, "patientId": int, ...}
        await self.send(json.dumps(event))
