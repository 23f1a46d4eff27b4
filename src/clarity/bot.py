import json
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from clarity.clinics import ClinicSearchClient, infer_specialty
from clarity.config import Settings, validate_config
from clarity.controller import CallController
from clarity.fallback import FallbackResponder
from clarity.patients import SavedClinic
from clarity.session import CallRequest
from clarity.state_machine import DialogueMachine
from clarity.store import SessionStore
from clarity.telephony import TwilioGateway
from clarity.twiml import sms_reply

logger = logging.getLogger(__name__)


def _xml(body: str) -> Response:
    return Response(content=body, media_type="application/xml")


def _bad_request(error: str) -> JSONResponse:
    return JSONResponse({"ok": False, "error": error}, status_code=400)


def parse_preferred_times(value) -> tuple[str, ...]:
    """Accept a list, a JSON-encoded list, or a single free-text window."""
    if not value:
        return ()
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return (value.strip(),)
        value = decoded if isinstance(decoded, list) else [str(decoded)]
    if not isinstance(value, list):
        return (str(value),)
    return tuple(str(v).strip() for v in value if str(v).strip())


def _field(body: dict, key: str) -> str:
    """A JSON text field; numbers are accepted as text, other types are not."""
    value = body.get(key)
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError(f"{key} must be a string")
    return str(value).strip()


def parse_call_request(body: dict) -> CallRequest:
    to = _field(body, "clinicPhone") or _field(body, "to")
    if not to:
        raise ValueError("clinicPhone is required")
    return CallRequest(
        patient_name=_field(body, "name"),
        reason_for_visit=_field(body, "reason"),
        preferred_time_windows=parse_preferred_times(body.get("preferredTimes")),
        clinic_display_name=_field(body, "clinicName"),
        clinic_phone_number=to,
        callback_identity=_field(body, "callback"),
    )


async def _json_body(request: Request) -> Optional[dict]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def create_app(
    controller: CallController,
    clinics: Optional[ClinicSearchClient] = None,
    checks: Optional[dict] = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down, closing outbound HTTP clients")
        if clinics is not None:
            await clinics.close()
        if isinstance(controller.fallback, FallbackResponder):
            await controller.fallback.close()

    app = FastAPI(title="Clarity Concierge", lifespan=lifespan)
    health_checks = checks if checks is not None else {"twilio": True}

    @app.get("/")
    async def root():
        return PlainTextResponse("Clarity backend alive")

    @app.get("/healthz")
    async def healthz():
        ok = bool(health_checks.get("twilio"))
        return JSONResponse({"ok": ok, "checks": health_checks}, status_code=200 if ok else 500)

    @app.post("/call")
    async def start_call(request: Request):
        body = await _json_body(request)
        if body is None:
            return _bad_request("JSON body required")
        try:
            call_request = parse_call_request(body)
        except ValueError as e:
            return _bad_request(str(e))
        call_id = await controller.start_call(call_request)
        if not call_id:
            return JSONResponse({"ok": False, "error": "call could not be placed"}, status_code=502)
        return {"ok": True, "callSid": call_id}

    @app.post("/voice")
    async def voice(request: Request):
        form = await request.form()
        return _xml(await controller.on_call_answered(form.get("CallSid", "")))

    @app.post("/gather")
    async def gather(request: Request):
        form = await request.form()
        twiml = await controller.on_speech_captured(form.get("CallSid", ""), form.get("SpeechResult", ""))
        return _xml(twiml)

    @app.post("/status")
    async def status(request: Request):
        form = await request.form()
        await controller.on_call_status_changed(form.get("CallSid", ""), form.get("CallStatus", ""))
        return Response(status_code=204)

    @app.post("/sms")
    async def sms(request: Request):
        form = await request.form()
        reply = await controller.handle_sms(form.get("From", ""), form.get("Body", ""))
        return _xml(sms_reply(reply))

    @app.post("/profile/clinic")
    async def save_clinic(request: Request):
        body = await _json_body(request)
        if body is None:
            return _bad_request("JSON body required")
        try:
            callback = _field(body, "callback")
            if not callback:
                return _bad_request("callback is required")
            clinic = SavedClinic(
                name=_field(body, "name"),
                phone=_field(body, "phone"),
                address=_field(body, "address"),
            )
            saved = controller.patients.save_clinic(callback, clinic)
        except ValueError as e:
            return _bad_request(str(e))
        clinics_list = [asdict(c) for c in controller.patients.clinics(callback)]
        return {"ok": True, "saved": saved, "clinics": clinics_list}

    @app.get("/profile/clinic")
    async def list_clinics(callback: str = ""):
        if not callback:
            return _bad_request("callback is required")
        return {"ok": True, "clinics": [asdict(c) for c in controller.patients.clinics(callback)]}

    @app.post("/clinics/search")
    async def search_clinics(request: Request):
        body = await _json_body(request)
        if body is None:
            return _bad_request("JSON body required")
        try:
            zip_code = _field(body, "zip")
            symptoms = _field(body, "symptoms")
        except ValueError as e:
            return _bad_request(str(e))
        if not zip_code:
            return _bad_request("zip is required")
        specialty = infer_specialty(symptoms)
        found = await clinics.find_clinics(zip_code, specialty) if clinics else []
        return {"ok": True, "specialty": specialty, "clinics": [c.to_dict() for c in found]}

    return app


def build_app_from_env() -> FastAPI:
    load_dotenv()
    validate_config()
    settings = Settings.from_env()

    gateway = TwilioGateway(
        settings.twilio_account_sid,
        settings.twilio_auth_token,
        settings.twilio_caller_id,
        settings.public_base_url,
    )
    controller = CallController(
        gateway,
        machine=DialogueMachine(settings.brand_name, settings.brand_slogan),
        store=SessionStore(ttl_seconds=settings.session_ttl_seconds),
        fallback=FallbackResponder(settings.openai_api_key, model=settings.openai_model),
        voice=settings.tts_voice,
    )
    clinics = ClinicSearchClient(settings.google_maps_api_key)
    checks = {
        "twilio": True,
        "maps": bool(settings.google_maps_api_key),
        "openai": bool(settings.openai_api_key),
    }
    return create_app(controller, clinics=clinics, checks=checks)


def main():
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(build_app_from_env(), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
