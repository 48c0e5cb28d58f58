"""Email channel port — the message shape and the adapter interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

SHOP_SENDER = "BS Climbing <post@bsclimbing.no>"
SHOP_REPLY_TO = "post@bsclimbing.no"


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    text: str
    html: str | None = None
    sender: str = SHOP_SENDER
    reply_to: str = SHOP_REPLY_TO

    def to_dict(self) -> dict:
        return {
            "from": self.sender,
            "reply_to": self.reply_to,
            "to": self.to,
            "subject": self.subject,
            "body": self.text,
            "html_body": self.html,
        }


class EmailPort(ABC):
    """Transactional email adapters implement this."""

    @abstractmethod
    def deliver(self, message: OutgoingEmail) -> dict:
        """Hand one message to the mail provider.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
