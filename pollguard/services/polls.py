"""
Poll and vote operations.

Each operation validates and sanitizes its input, resolves the caller through
the identity oracle, applies the access guard, and only then touches the
store. Failures come back as `ServiceError` values; store exceptions are
logged here and never leave this module.
"""
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from ..errors import ErrorKind, ServiceError, store_unavailable, validation_failed
from ..extensions import db
from ..models.polls import Poll
from ..models.vote import Vote
from ..signals import notify_polls_changed
from ..utils.access import require_authenticated, scoped_poll_query
from ..utils.audit import audit_log
from ..utils.sanitize import sanitize
from ..utils.validation import parse_id, validate_poll_input
from .identity import get_user

POLL_NOT_FOUND = "Poll not found."
# Same text whether the poll is missing or owned by someone else
POLL_NOT_FOUND_OR_DENIED = "Poll not found or access denied."
INVALID_OPTION = "Invalid option selected."


def _unauthenticated(message: str = "Authentication required.") -> ServiceError:
    return ServiceError(ErrorKind.UNAUTHENTICATED, message)


def _store_failure(action: str, fallback: ServiceError | None = None, exc: Exception | None = None) -> ServiceError:
    """Roll back, log the store error with its traceback, return a safe error."""
    db.session.rollback()
    current_app.logger.exception("DB error during %s", action)
    if fallback is not None and not isinstance(exc, OperationalError):
        return fallback
    return store_unavailable()


def _clean_poll_input(question, options):
    """
    Validate, then sanitize, then check the sanitized values again so that
    input made only of stripped characters cannot produce an empty poll.

    Returns `(question, options, errors)`.
    """
    errors = validate_poll_input(question, options)
    if errors:
        return None, None, errors

    clean_question = sanitize(question)
    clean_options = [sanitize(opt) for opt in options if isinstance(opt, str) and opt.strip()]
    clean_options = [opt for opt in clean_options if opt]

    errors = validate_poll_input(clean_question, clean_options)
    if errors:
        return None, None, errors
    return clean_question, clean_options, []


def create_poll(question, options):
    """Returns `(poll, None)` or `(None, ServiceError)`."""
    question, options, errors = _clean_poll_input(question, options)
    if errors:
        return None, validation_failed(errors)

    user = get_user()
    if not require_authenticated(user):
        return None, _unauthenticated("You must be logged in to create a poll.")

    poll = Poll(user_id=user.id, question=question, options=options)
    try:
        db.session.add(poll)
        db.session.flush()

        audit_log(
            action="POLL_CREATED",
            entity_type="POLL",
            entity_id=poll.id,
            details={"option_count": len(options)},
        )
        db.session.commit()
    except SQLAlchemyError as e:
        return None, _store_failure("poll create", exc=e)

    notify_polls_changed("created", poll.id)
    return poll, None


def get_user_polls():
    """Returns `(polls, None)` newest first, or `([], ServiceError)`."""
    user = get_user()
    if not require_authenticated(user):
        return [], _unauthenticated()

    try:
        polls = (
            Poll.query
            .filter(Poll.user_id == user.id)
            .order_by(Poll.created_at.desc())
            .all()
        )
    except SQLAlchemyError as e:
        return [], _store_failure("poll listing", exc=e)
    return polls, None


def get_poll_public(poll_id):
    """
    Fetch any poll by id; reading is public.

    A malformed id and a missing poll give the same error.
    """
    pid = parse_id(poll_id)
    if pid is None:
        return None, ServiceError(ErrorKind.NOT_FOUND, POLL_NOT_FOUND)

    try:
        poll = db.session.get(Poll, pid)
    except SQLAlchemyError as e:
        return None, _store_failure("poll read", exc=e)

    if poll is None:
        return None, ServiceError(ErrorKind.NOT_FOUND, POLL_NOT_FOUND)
    return poll, None


def get_poll_for_edit(poll_id):
    """Fetch a poll only if the caller owns it."""
    user = get_user()
    if not require_authenticated(user):
        return None, _unauthenticated()

    not_found = ServiceError(ErrorKind.NOT_FOUND, POLL_NOT_FOUND_OR_DENIED)
    pid = parse_id(poll_id)
    if pid is None:
        return None, not_found

    try:
        poll = scoped_poll_query(pid, user.id).first()
    except SQLAlchemyError as e:
        return None, _store_failure("poll read for edit", exc=e)

    if poll is None:
        current_app.logger.info("Scoped poll lookup missed poll=%s user=%s", pid, user.id)
        return None, not_found
    return poll, None


def update_poll(poll_id, question, options) -> ServiceError | None:
    """
    Replace question and options of a poll the caller owns. Last write wins.

    A poll that is missing or not owned is reported exactly like a failed
    write.
    """
    question, options, errors = _clean_poll_input(question, options)
    if errors:
        return validation_failed(errors)

    user = get_user()
    if not require_authenticated(user):
        return _unauthenticated("Authentication required to update polls.")

    failed = ServiceError(ErrorKind.UPDATE_FAILED, "Failed to update poll. You can only update your own polls.")
    pid = parse_id(poll_id)
    if pid is None:
        return failed

    try:
        poll = scoped_poll_query(pid, user.id).first()
        if poll is None:
            current_app.logger.info("Poll update matched no rows poll=%s user=%s", pid, user.id)
            return failed

        poll.question = question
        poll.options = options

        audit_log(
            action="POLL_UPDATED",
            entity_type="POLL",
            entity_id=poll.id,
            details={"option_count": len(options)},
        )
        db.session.commit()
    except SQLAlchemyError as e:
        return _store_failure("poll update", fallback=failed, exc=e)

    notify_polls_changed("updated", pid)
    return None


def delete_poll(poll_id) -> ServiceError | None:
    user = get_user()
    if not require_authenticated(user):
        return _unauthenticated("Authentication required to delete polls.")

    failed = ServiceError(ErrorKind.DELETE_FAILED, "Failed to delete poll. You can only delete your own polls.")
    pid = parse_id(poll_id)
    if pid is None:
        return failed

    try:
        poll = scoped_poll_query(pid, user.id).first()
        if poll is None:
            current_app.logger.info("Poll delete matched no rows poll=%s user=%s", pid, user.id)
            return failed

        audit_log(
            action="POLL_DELETED",
            entity_type="POLL",
            entity_id=poll.id,
            details={"question": poll.question},
        )
        db.session.delete(poll)
        db.session.commit()
    except SQLAlchemyError as e:
        return _store_failure("poll delete", fallback=failed, exc=e)

    notify_polls_changed("deleted", pid)
    return None


def _prior_vote(poll_id, user_id):
    return Vote.query.filter_by(poll_id=poll_id, user_id=user_id).first()


def submit_vote(poll_id, option_index) -> ServiceError | None:
    """
    Record one vote. Anonymous votes are accepted and may repeat;
    an authenticated voter gets one vote per poll.
    """
    pid = parse_id(poll_id)
    if pid is None:
        return ServiceError(ErrorKind.VALIDATION_FAILED, "Invalid poll ID.", details=["Invalid poll ID."])

    # bool is an int subclass; True is not an option index
    if not isinstance(option_index, int) or isinstance(option_index, bool) or option_index < 0:
        return ServiceError(ErrorKind.VALIDATION_FAILED, INVALID_OPTION, details=[INVALID_OPTION])

    poll, err = get_poll_public(pid)
    if err:
        return err

    if not poll.has_option(option_index):
        return ServiceError(ErrorKind.OPTION_OUT_OF_RANGE, INVALID_OPTION)

    user = get_user()
    duplicate = ServiceError(ErrorKind.DUPLICATE_VOTE, "You have already voted on this poll.")

    try:
        if user is not None and _prior_vote(pid, user.id) is not None:
            return duplicate

        vote = Vote(poll_id=pid, option_index=option_index, user_id=user.id if user else None)
        db.session.add(vote)
        db.session.flush()

        audit_log(
            action="VOTE_SUBMITTED",
            entity_type="VOTE",
            entity_id=vote.id,
            details={
                "poll_id": str(pid),
                "option_index": option_index,
                "mode": "authenticated" if user else "anonymous",
            },
        )
        db.session.commit()

    except IntegrityError:
        # The unique (poll_id, user_id) constraint caught a concurrent duplicate
        db.session.rollback()
        current_app.logger.info("Duplicate vote attempt poll=%s", pid)
        return duplicate
    except SQLAlchemyError as e:
        return _store_failure("vote submit", exc=e)

    notify_polls_changed("voted", pid)
    return None


def get_vote_tally(poll_id):
    """
    Count votes per option.

    Returns `(tally, None)` where tally has `counts` (one entry per option),
    `total` and per-option `results` with percentages.
    """
    poll, err = get_poll_public(poll_id)
    if err:
        return None, err

    try:
        rows = (
            db.session.query(Vote.option_index, func.count(Vote.id))
            .filter(Vote.poll_id == poll.id)
            .group_by(Vote.option_index)
            .all()
        )
    except SQLAlchemyError as e:
        return None, _store_failure("vote tally", exc=e)

    counts = [0] * len(poll.options)
    for index, votes in rows:
        # Votes pointing past the current options (after an edit) are dropped
        if poll.has_option(index):
            counts[index] += int(votes)

    total = sum(counts)
    results = []
    for index, text in enumerate(poll.options):
        pct = (counts[index] / total * 100.0) if total > 0 else 0.0
        results.append({
            "index": index,
            "option": text,
            "votes": counts[index],
            "percentage": round(pct, 2),
        })

    return {"poll_id": str(poll.id), "counts": counts, "total": total, "results": results}, None


def get_vote_status(poll_id):
    """Whether the authenticated caller has voted on the poll, and for what."""
    poll, err = get_poll_public(poll_id)
    if err:
        return None, err

    user = get_user()
    if user is None:
        return {"has_voted": False, "option_index": None}, None

    try:
        vote = _prior_vote(poll.id, user.id)
    except SQLAlchemyError as e:
        return None, _store_failure("vote status", exc=e)

    if vote is None:
        return {"has_voted": False, "option_index": None}, None
    return {"has_voted": True, "option_index": vote.option_index}, None
