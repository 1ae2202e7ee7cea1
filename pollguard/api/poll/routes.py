from flask import Blueprint, request
from flasgger import swag_from

from ...errors import error_response
from ...schemas.poll import PollInputSchema, PollReadSchema
from ...services import polls as poll_service
from ...utils.validation import validate_or_abort

polls_bp = Blueprint("polls", __name__)

poll_input_schema = PollInputSchema()
poll_read_schema = PollReadSchema()
poll_read_many_schema = PollReadSchema(many=True)

_POLL_BODY = {
    "in": "body",
    "name": "body",
    "required": True,
    "schema": {
        "type": "object",
        "properties": {
            "question": {"type": "string", "example": "Coffee or tea?"},
            "options": {"type": "array", "items": {"type": "string"}, "example": ["Coffee", "Tea"]},
        },
        "required": ["question", "options"],
    },
}


def _poll_payload():
    payload = request.get_json(silent=True) or {}
    payload = validate_or_abort(poll_input_schema, payload)
    return payload.get("question"), payload.get("options")


@polls_bp.post("/")
@swag_from({
    "tags": ["Polls"],
    "security": [{"BearerAuth": []}],
    "summary": "Create a poll owned by the caller",
    "parameters": [_POLL_BODY],
    "responses": {201: {"description": "Created"}, 400: {"description": "Validation error"}, 401: {"description": "Unauthenticated"}}
})
def create_poll():
    question, options = _poll_payload()

    poll, err = poll_service.create_poll(question, options)
    if err:
        return error_response(err)
    return {"poll": poll_read_schema.dump(poll)}, 201


@polls_bp.get("/")
@swag_from({
    "tags": ["Polls"],
    "security": [{"BearerAuth": []}],
    "summary": "List the caller's polls, newest first",
    "responses": {200: {"description": "OK"}, 401: {"description": "Unauthenticated"}}
})
def list_polls():
    polls, err = poll_service.get_user_polls()
    if err:
        return error_response(err)
    return {"polls": poll_read_many_schema.dump(polls)}, 200


@polls_bp.get("/<poll_id>")
@swag_from({"tags": ["Polls"], "summary": "Get a poll (public)", "responses": {200: {}, 404: {}}})
def get_poll(poll_id):
    poll, err = poll_service.get_poll_public(poll_id)
    if err:
        return error_response(err)
    return {"poll": poll_read_schema.dump(poll)}, 200


@polls_bp.get("/<poll_id>/edit")
@swag_from({
    "tags": ["Polls"],
    "security": [{"BearerAuth": []}],
    "summary": "Get a poll for editing (owner only)",
    "description": "Polls owned by someone else are reported as not found.",
    "responses": {200: {}, 401: {}, 404: {}}
})
def get_poll_for_edit(poll_id):
    poll, err = poll_service.get_poll_for_edit(poll_id)
    if err:
        return error_response(err)
    return {"poll": poll_read_schema.dump(poll)}, 200


@polls_bp.put("/<poll_id>")
@swag_from({
    "tags": ["Polls"],
    "security": [{"BearerAuth": []}],
    "summary": "Replace question and options (owner only)",
    "parameters": [_POLL_BODY],
    "responses": {200: {}, 400: {}, 401: {}}
})
def update_poll(poll_id):
    question, options = _poll_payload()

    err = poll_service.update_poll(poll_id, question, options)
    if err:
        return error_response(err)

    poll, err = poll_service.get_poll_for_edit(poll_id)
    if err:
        return error_response(err)
    return {"poll": poll_read_schema.dump(poll)}, 200


@polls_bp.delete("/<poll_id>")
@swag_from({
    "tags": ["Polls"],
    "security": [{"BearerAuth": []}],
    "summary": "Delete a poll (owner only)",
    "responses": {200: {}, 400: {}, 401: {}}
})
def delete_poll(poll_id):
    err = poll_service.delete_poll(poll_id)
    if err:
        return error_response(err)
    return {"message": "Poll deleted successfully"}, 200
