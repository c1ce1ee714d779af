"""Order confirmation delivery.

Mail transport is outside this service; ``LoggingConfirmationMailer`` records
what would be sent. Swap ``confirmation_mailer`` for a real adapter with the
same ``send`` method.
"""

import structlog

logger = structlog.get_logger(__name__)


class LoggingConfirmationMailer:
    def send(self, recipient: str, receipt: dict) -> None:
        logger.info(
            "order_confirmation_sent",
            recipient=recipient,
            order_id=receipt["order_id"],
            order_number=receipt["order_number"],
            total=receipt["total"],
        )


confirmation_mailer = LoggingConfirmationMailer()
