from ..models.polls import Poll


def require_authenticated(acting_identity) -> bool:
    return acting_identity is not None


def require_ownership(resource_owner_id, acting_identity) -> bool:
    """
    True only when there is an acting identity and it owns the resource.

    `acting_identity` may be a user id or anything with an `id` attribute.
    """
    if acting_identity is None or resource_owner_id is None:
        return False
    actor_id = getattr(acting_identity, "id", acting_identity)
    return str(actor_id) == str(resource_owner_id)


def scoped_poll_query(poll_id, owner_id):
    """
    Polls matching both id and owner.

    Ownership is part of the query predicate, so a poll owned by someone else
    is indistinguishable from a poll that does not exist.
    """
    return Poll.query.filter(Poll.id == poll_id, Poll.user_id == owner_id)
