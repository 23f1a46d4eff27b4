"""Render dialogue actions as Twilio TwiML documents."""

from twilio.twiml.messaging_response import MessagingResponse
from twilio.twiml.voice_response import VoiceResponse

from clarity.state_machine import Action

DEFAULT_VOICE = "Polly.Joanna-Neural"
CONTEXT_LOST_LINE = "I lost the call context. Goodbye."


def render_action(action: Action, gather_url: str, voice: str = DEFAULT_VOICE) -> str:
    """Speak, optionally pause, then either hang up or gather speech.

    The gather posts to ``gather_url`` even when nothing was heard, so the
    dialogue sees silence as an empty utterance.
    """
    resp = VoiceResponse()
    if action.speak:
        resp.say(action.speak, voice=voice)
    if action.pause:
        resp.pause(length=action.pause)
    if action.end_call:
        resp.hangup()
        return str(resp)

    gather = resp.gather(
        input="speech",
        action=gather_url,
        method="POST",
        speech_timeout="auto",
        timeout=action.listen_timeout,
        action_on_empty_result=True,
    )
    if action.prompt:
        gather.say(action.prompt, voice=voice)
    return str(resp)


def context_lost(voice: str = DEFAULT_VOICE) -> str:
    resp = VoiceResponse()
    resp.say(CONTEXT_LOST_LINE, voice=voice)
    resp.hangup()
    return str(resp)


def sms_reply(text: str) -> str:
    resp = MessagingResponse()
    if text:
        resp.message(text)
    return str(resp)
