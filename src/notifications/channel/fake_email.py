"""Fake email adapter — keeps outgoing mail in memory."""

from uuid import uuid4

from notifications.channel.email_port import EmailPort, OutgoingEmail


class FakeEmailAdapter(EmailPort):
    """Records messages for assertions; can be told to fail or to raise."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.should_raise = False
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed", should_raise=False):
        self.should_succeed = should_succeed
        self.should_raise = should_raise
        self.failure_reason = failure_reason

    def deliver(self, message: OutgoingEmail) -> dict:
        if self.should_raise:
            raise ConnectionError(self.failure_reason)
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append({"message_id": message_id, **message.to_dict()})
        return {"message_id": message_id, "status": "sent"}

    def reset(self):
        """Clear sent emails and restore default behavior."""
        self.sent_emails.clear()
        self.configure()
