"""
Conversational tool loop.

One turn sends the conversation to the model, runs every function call it
asks for through :func:`clinic.services.queries.execute`, feeds the
narrated results back and repeats until the model answers without
calling a tool or the step budget runs out.  Text is yielded to the
caller as it streams in.
"""
import logging
from typing import Iterator, Optional

from django.conf import settings
from django.utils import timezone

from clinic.assistant.provider import GeminiClient
from clinic.assistant.tools import build_tool_declarations
from clinic.models import User
from clinic.services import queries
from clinic.services.access import Capability
from clinic.services.appointments import clean_text
from clinic.services.results import narrate

logger = logging.getLogger(__name__)

ROLE_CONTEXT = {
    User.ROLE_ADMIN: 'You have full access to all patient data in the system.',
    User.ROLE_STAFF: 'You can view and manage patient data for staff operations.',
    User.ROLE_DOCTOR: 'You can see your own schedule and look up doctors.',
    User.ROLE_PATIENT: 'You can only see records belonging to this patient.',
}

SYSTEM_PROMPT = """You are "HealthBot", an advanced medical assistant for healthcare staff.

CONTEXT:
- User ID: {user_id}
- User Role: {role}
- Current Time: {now}
- {role_context}

GUIDELINES:
- Use the provided tools to fetch real data. DO NOT hallucinate appointments or bills.
- When users ask for patient data, use the relevant tools (getPatientProfile, getAppointments, etc.)
- When listing doctors, include their consultation fees and specialization.
- Admins: You can access all patient records and system-wide data.
- Staff: You can access patient data for administrative and scheduling purposes.
- Tone: Professional, Empathetic, Concise.
- SAFETY: For medical concerns, direct users to appropriate healthcare providers."""


def build_system_prompt(capability: Capability, now=None) -> str:
    now = timezone.localtime(now or timezone.now())
    return SYSTEM_PROMPT.format(
        user_id=capability.user_id,
        role=(capability.role or '').upper(),
        now=now.strftime('%Y-%m-%d %H:%M:%S %Z'),
        role_context=ROLE_CONTEXT.get(capability.role, ''),
    )


def _message_text(message: dict) -> str:
    content = message.get('content')
    if isinstance(content, str):
        return content
    # {"parts": [{"type": "text", "text": ...}]} as sent by chat widgets
    parts = message.get('parts') or (content if isinstance(content, list) else [])
    return ''.join(p.get('text', '') for p in parts if isinstance(p, dict))


def to_contents(messages: list) -> list:
    """Convert chat history into Gemini ``contents``; system and empty messages are dropped."""
    contents = []
    for message in messages:
        role = message.get('role')
        if role not in ('user', 'assistant', 'model'):
            continue
        text = clean_text(_message_text(message))
        if not text:
            continue
        contents.append({'role': 'user' if role == 'user' else 'model', 'parts': [{'text': text}]})
    return contents


def _call_tools(capability: Capability, calls: list) -> list:
    responses = []
    for call in calls:
        name = call.get('name', '')
        result = queries.execute(capability, name, call.get('args') or {})
        logger.info('assistant tool %s user=%s ok=%s', name, capability.user_id, result.ok)
        responses.append({'functionResponse': {'name': name, 'response': {'result': narrate(result)}}})
    return responses


def run_turn(capability: Capability, messages: list, *, client: Optional[GeminiClient] = None,
             max_steps: Optional[int] = None, now=None) -> Iterator[str]:
    """Yield response text for one user turn; provider failures raise ``AssistantError``."""
    client = client or GeminiClient.from_settings()
    max_steps = max_steps or settings.ASSISTANT_MAX_STEPS
    system = build_system_prompt(capability, now)
    tools = build_tool_declarations(capability)
    contents = to_contents(messages)

    for step in range(1, max_steps + 1):
        model_parts = []
        calls = []
        for part in client.stream(system=system, contents=contents, tools=tools):
            model_parts.append(part)
            if 'functionCall' in part:
                calls.append(part['functionCall'])
            elif part.get('text') and not part.get('thought'):
                yield part['text']
        if not calls:
            logger.info('assistant turn done user=%s steps=%s', capability.user_id, step)
            return
        # model parts go back unchanged so thought signatures survive
        contents.append({'role': 'model', 'parts': model_parts})
        contents.append({'role': 'user', 'parts': _call_tools(capability, calls)})
    logger.warning('assistant step budget exhausted user=%s steps=%s', capability.user_id, max_steps)
