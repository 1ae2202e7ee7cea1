from blinker import Namespace
from flask import current_app

_signals = Namespace()

#: Sent after a poll or vote change is committed. Receivers get the listing
#: `path` to revalidate plus `action` and `poll_id`.
polls_changed = _signals.signal("polls-changed")

POLLS_LISTING_PATH = "/polls"


def notify_polls_changed(action: str, poll_id) -> None:
    polls_changed.send(
        current_app._get_current_object(),
        path=POLLS_LISTING_PATH,
        action=action,
        poll_id=str(poll_id),
    )
