import logging
from dataclasses import dataclass
from typing import Optional

from quart import Blueprint, jsonify, request
from quart_schema import validate_request

from app_init.app_init import BeanFactory
from common.config.conts import STATUS_PENDING
from common.exception.exceptions import ValidationError
from common.utils.token import auth_required

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

factory = BeanFactory()
services = factory.get_services()
adoption_lifecycle = services["adoption_lifecycle"]
pet_service = services["pet_service"]
report_service = services["report_service"]
messaging_service = services["messaging_service"]
notification_feed = services["notification_feed"]
console_service = services["console_service"]
admin_auth_provider = services["admin_auth_provider"]

routes_bp = Blueprint('routes', __name__)


@dataclass
class DecisionRequest:
    decision: str
    reason: Optional[str] = None


@dataclass
class ReportStatusRequest:
    status: str


@dataclass
class SignInRequest:
    email: str
    password: str


async def _read_upload(field: str) -> Optional[dict]:
    files = await request.files
    upload = files.get(field)
    if upload is None or not upload.filename:
        return None
    return {
        "filename": upload.filename,
        "content": upload.read(),
        "content_type": upload.content_type,
    }


async def _read_payload():
    """JSON body, or form fields plus an optional file for multipart uploads."""
    if request.mimetype == "multipart/form-data":
        form = await request.form
        return form.to_dict(), True
    data = await request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data, False


# Adoption requests

@routes_bp.route('/api/requests', methods=['GET'])
@auth_required
async def list_requests(session):
    status = request.args.get("status", STATUS_PENDING)
    requests = await adoption_lifecycle.list_by_status(status)
    return jsonify({"status": status, "requests": requests})


@routes_bp.route('/api/requests/<string:request_id>', methods=['GET'])
@auth_required
async def get_request_details(request_id, session):
    return jsonify(await adoption_lifecycle.get_request_details(request_id))


@routes_bp.route('/api/requests/<string:request_id>/decision', methods=['POST'])
@auth_required
@validate_request(DecisionRequest)
async def submit_decision(request_id, data: DecisionRequest, session):
    logger.info(f"Admin {session.admin_uid} submitted {data.decision} for request {request_id}")
    updated = await adoption_lifecycle.submit_decision(request_id, data.decision, data.reason)
    return jsonify(updated)


# Pets

@routes_bp.route('/api/pets', methods=['GET'])
@auth_required
async def list_pets(session):
    pets = await pet_service.list_pets(request.args.get("status"))
    return jsonify({"pets": pets})


@routes_bp.route('/api/pets', methods=['POST'])
@auth_required
async def add_pet(session):
    data, multipart = await _read_payload()
    image = await _read_upload("image") if multipart else None
    technical_id = await pet_service.add_pet(data, image=image)
    return jsonify({"technical_id": technical_id}), 201


@routes_bp.route('/api/pets/search', methods=['GET'])
@auth_required
async def search_pets(session):
    pets = await pet_service.search_pets(request.args.get("q", ""))
    return jsonify({"pets": pets})


@routes_bp.route('/api/pets/<string:pet_id>', methods=['GET'])
@auth_required
async def get_pet(pet_id, session):
    return jsonify(await pet_service.get_pet(pet_id))


@routes_bp.route('/api/pets/<string:pet_id>', methods=['PATCH'])
@auth_required
async def update_pet(pet_id, session):
    changes, _ = await _read_payload()
    return jsonify(await pet_service.update_pet(pet_id, changes))


@routes_bp.route('/api/pets/<string:pet_id>', methods=['DELETE'])
@auth_required
async def delete_pet(pet_id, session):
    await pet_service.delete_pet(pet_id)
    return "", 204


@routes_bp.route('/api/pets/<string:pet_id>/reconcile', methods=['POST'])
@auth_required
async def reconcile_pet(pet_id, session):
    return jsonify(await adoption_lifecycle.reconcile_pet_status(pet_id))


# Lost and found reports

@routes_bp.route('/api/reports', methods=['GET'])
@auth_required
async def list_reports(session):
    report_type = request.args.get("report_type") or None
    reports = await report_service.list_reports(report_type, request.args.get("status") or None)
    counts = await report_service.report_counts(report_type)
    return jsonify({"reports": reports, "counts": counts})


@routes_bp.route('/api/reports/<string:report_id>/status', methods=['POST'])
@auth_required
@validate_request(ReportStatusRequest)
async def update_report_status(report_id, data: ReportStatusRequest, session):
    return jsonify(await report_service.update_report_status(report_id, data.status))


# Messages

@routes_bp.route('/api/messages/unread', methods=['GET'])
@auth_required
async def unread_counts(session):
    return jsonify(await messaging_service.unread_counts(session.admin_uid))


@routes_bp.route('/api/messages/<string:uid>', methods=['GET'])
@auth_required
async def get_conversation(uid, session):
    messages = await messaging_service.conversation(session.admin_uid, uid)
    return jsonify({"messages": messages})


@routes_bp.route('/api/messages/<string:uid>', methods=['POST'])
@auth_required
async def send_message(uid, session):
    data, multipart = await _read_payload()
    attachment = await _read_upload("attachment") if multipart else None
    technical_id = await messaging_service.send_message(
        session.admin_uid, uid, data.get("text", ""), attachment=attachment
    )
    return jsonify({"technical_id": technical_id}), 201


@routes_bp.route('/api/messages/<string:uid>/read', methods=['POST'])
@auth_required
async def mark_read(uid, session):
    marked = await messaging_service.mark_conversation_read(session.admin_uid, uid)
    return jsonify({"marked_read": marked})


# Console views

@routes_bp.route('/api/notifications', methods=['GET'])
@auth_required
async def notifications(session):
    return jsonify({"notifications": await notification_feed.current()})


@routes_bp.route('/api/users/customers', methods=['GET'])
@auth_required
async def list_customers(session):
    return jsonify({"users": await console_service.list_customers()})


@routes_bp.route('/api/feedback', methods=['GET'])
@auth_required
async def list_feedback(session):
    return jsonify({"feedback": await console_service.list_feedback()})


@routes_bp.route('/api/stats', methods=['GET'])
@auth_required
async def dashboard_stats(session):
    return jsonify(await console_service.dashboard_stats())


# Session

@routes_bp.route('/api/session', methods=['GET'])
@auth_required
async def current_session(session):
    return jsonify(session.to_dict())


@routes_bp.route('/api/session/sign-in', methods=['POST'])
@validate_request(SignInRequest)
async def sign_in(data: SignInRequest):
    session = await admin_auth_provider.sign_in(data.email, data.password)
    return jsonify({"session": session.to_dict(), "access_token": session.access_token})


@routes_bp.route('/api/session/sign-out', methods=['POST'])
@auth_required
async def sign_out(session):
    return jsonify((await admin_auth_provider.sign_out(session)).to_dict())
