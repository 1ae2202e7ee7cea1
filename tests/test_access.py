import uuid
from types import SimpleNamespace

from pollguard.extensions import db
from pollguard.models.polls import Poll
from pollguard.utils.access import require_authenticated, require_ownership, scoped_poll_query


def test_require_authenticated():
    assert require_authenticated(SimpleNamespace(id=uuid.uuid4())) is True
    assert require_authenticated(None) is False


def test_require_ownership_matches_owner_only():
    owner_id = uuid.uuid4()

    assert require_ownership(owner_id, owner_id) is True
    assert require_ownership(owner_id, str(owner_id)) is True
    assert require_ownership(owner_id, SimpleNamespace(id=owner_id)) is True
    assert require_ownership(owner_id, uuid.uuid4()) is False
    assert require_ownership(owner_id, None) is False
    assert require_ownership(None, owner_id) is False


def test_scoped_query_hides_polls_of_other_owners(app, alice, bob):
    with app.app_context():
        poll = Poll(user_id=alice.id, question="Coffee or tea?", options=["Coffee", "Tea"])
        db.session.add(poll)
        db.session.commit()
        poll_id = poll.id

        assert scoped_poll_query(poll_id, alice.id).first() is not None
        assert scoped_poll_query(poll_id, bob.id).first() is None
        assert scoped_poll_query(uuid.uuid4(), alice.id).first() is None
