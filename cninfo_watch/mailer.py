from __future__ import annotations

import logging
import smtplib
from datetime import date
from email.message import EmailMessage
from email.utils import formataddr
from typing import Callable

from cninfo_watch.errors import NotificationError
from cninfo_watch.models import Announcement, DividendRecord, Stock
from cninfo_watch.retry import NO_RETRY, RetryPolicy

logger = logging.getLogger(__name__)

SUBJECT_TAG = "「FIN」"
SENDER_NAME = "Monitor"
SMTP_SSL_PORT = 465


def should_notify_dividend(records: list[DividendRecord], today: date) -> bool:
    """Only alert on the day the most recent payout lands."""
    if not records:
        return False
    return records[0].pay_date == today.isoformat()


def render_dividend_message(stock: Stock, records: list[DividendRecord]) -> tuple[str, str]:
    subject = f"{SUBJECT_TAG}{stock.name}({stock.code}) 分红信息"
    lines = ["今日以及历史分红信息", ""]
    lines += [f"{record.display_period} {record.plan} {record.pay_date}" for record in records]
    return subject, "\r\n".join(lines) + "\r\n"


def render_report_message(stock: Stock, announcements: list[Announcement]) -> tuple[str, str]:
    subject = f"{SUBJECT_TAG}{stock.name}({stock.code}) 年度报告"
    lines = ["今日年度报告发布", ""]
    lines += [announcement.title for announcement in announcements]
    return subject, "\r\n".join(lines) + "\r\n"


def split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise NotificationError(f"invalid smtp addr {addr!r}, expected host:port")
    return host, int(port)


class Mailer:
    def __init__(
        self,
        addr: str | None,
        user: str,
        password: str,
        retry: RetryPolicy = NO_RETRY,
        smtp_factory: Callable[..., smtplib.SMTP] | None = None,
        timeout_seconds: int = 30,
    ) -> None:
        self.addr = addr
        self.user = user
        self.password = password
        self.retry = retry
        self.smtp_factory = smtp_factory
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.addr)

    def notify_dividend(self, stock: Stock, records: list[DividendRecord], today: date) -> bool:
        if not records:
            logger.info("send dividend notification skip. no dividend record. code=%s", stock.code)
            return False
        if not should_notify_dividend(records, today):
            return False
        subject, body = render_dividend_message(stock, records)
        return self.send(subject, body)

    def notify_reports(self, stock: Stock, announcements: list[Announcement]) -> bool:
        if not announcements:
            logger.info("send report notification skip. no report announcements. code=%s", stock.code)
            return False
        subject, body = render_report_message(stock, announcements)
        return self.send(subject, body)

    def build_message(self, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((SENDER_NAME, self.user))
        msg["To"] = self.user
        # non-ASCII headers are RFC 2047 encoded by the default policy
        msg["Subject"] = subject
        msg.set_content(body, charset="utf-8")
        return msg

    def send(self, subject: str, body: str) -> bool:
        if not self.addr:
            logger.info("send notification skip. addr is empty")
            return False

        host, port = split_addr(self.addr)
        msg = self.build_message(subject, body)
        logger.info("sending notification. subject=%s", subject)
        try:
            self.retry.call(
                self._deliver,
                host,
                port,
                msg,
                retry_on=(smtplib.SMTPException, OSError),
            )
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"send notification failed: {exc}") from exc
        logger.info("send notification success. subject=%s", subject)
        return True

    def _deliver(self, host: str, port: int, msg: EmailMessage) -> None:
        factory = self.smtp_factory
        if factory is None:
            factory = smtplib.SMTP_SSL if port == SMTP_SSL_PORT else smtplib.SMTP
        with factory(host, port, timeout=self.timeout_seconds) as server:
            if not isinstance(server, smtplib.SMTP_SSL):
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
            if self.user:
                server.login(self.user, self.password)
            server.send_message(msg)
