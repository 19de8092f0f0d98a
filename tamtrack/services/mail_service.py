import logging
from typing import Any, Dict

from typing_extensions import Protocol

logger = logging.getLogger(__name__)

SUBJECTS = {
    "welcome": "Welcome to TamTrack",
    "model_pack_purchased": "Your model pack is ready",
    "model_unshared": "One of your shared models was unshared",
}


class EmailSender(Protocol):
    def send(self, recipient: str, template: str, data: Dict[str, Any]) -> None: ...


class LoggingEmailSender:
    """Writes outgoing mail to the log instead of a mail server."""

    def send(self, recipient: str, template: str, data: Dict[str, Any]) -> None:
        subject = SUBJECTS.get(template, template)
        logger.info("mail %r to %s: %s", template, recipient, subject)


_sender = LoggingEmailSender()


def get_email_sender() -> EmailSender:
    return _sender
