from flask import Blueprint
from flasgger import swag_from

from ...errors import error_response
from ...schemas.results import PollTallySchema
from ...services import polls as poll_service

results_bp = Blueprint("results", __name__)
poll_tally_schema = PollTallySchema()


@results_bp.get("/<poll_id>/results")
@swag_from({
    "tags": ["Results"],
    "summary": "Get vote counts for a poll",
    "description": (
        "Counts are returned per option index; votes for indices no longer "
        "present on the poll are ignored. `total` is the sum of `counts`."
    ),
    "responses": {
        200: {"description": "Results"},
        404: {"description": "Poll not found"},
        503: {"description": "Store unavailable"},
    }
})
def poll_results(poll_id):
    tally, err = poll_service.get_vote_tally(poll_id)
    if err:
        return error_response(err)
    return poll_tally_schema.dump(tally), 200
