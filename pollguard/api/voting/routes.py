from flask import Blueprint, request
from flasgger import swag_from

from ...errors import error_response
from ...schemas.vote import VoteSubmitSchema, VoteStatusSchema
from ...services import polls as poll_service
from ...utils.validation import validate_or_abort

voting_bp = Blueprint("voting", __name__)
vote_submit_schema = VoteSubmitSchema()
vote_status_schema = VoteStatusSchema()


@voting_bp.post("/<poll_id>/vote")
@swag_from({
    "tags": ["Voting"],
    "summary": "Submit a vote (authenticated or anonymous)",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "option_index": {"type": "integer", "example": 0},
            },
            "required": ["option_index"],
        },
    }],
    "responses": {
        201: {"description": "Vote recorded"},
        400: {"description": "Validation error / option out of range"},
        404: {"description": "Poll not found"},
        409: {"description": "Duplicate vote"},
        503: {"description": "Store unavailable"},
    },
})
def submit_vote(poll_id):
    payload = request.get_json(silent=True) or {}
    payload = validate_or_abort(vote_submit_schema, payload)

    err = poll_service.submit_vote(poll_id, payload["option_index"])
    if err:
        return error_response(err)
    return {"message": "Vote recorded", "poll_id": poll_id.strip()}, 201


@voting_bp.get("/<poll_id>/vote/status")
@swag_from({
    "tags": ["Voting"],
    "summary": "Check whether the current user has voted",
    "responses": {200: {"description": "OK"}, 404: {"description": "Poll not found"}},
})
def vote_status(poll_id):
    status, err = poll_service.get_vote_status(poll_id)
    if err:
        return error_response(err)
    return vote_status_schema.dump(status), 200
