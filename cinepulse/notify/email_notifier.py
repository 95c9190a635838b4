"""
Email digest of newly saved content.

Builds a ``multipart/alternative`` message with a plain-text summary
and an HTML body that lists movies and series in separate tables (the
rating column only appears when at least one record has a rating) and
sends it over SMTP with STARTTLS.
"""

from __future__ import annotations

import html
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, List, Optional, Sequence

from ..config import EmailSettings, mask_secret
from ..errors import NotifyError
from ..records import ContentRecord, ContentType
from .base import NotificationSink

logger = logging.getLogger(__name__)

STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 800px; margin: 0 auto; }
    h1 { color: #e50914; }
    h2 { color: #0071c5; margin-top: 30px; }
    table { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
    th { background-color: #f4f4f4; text-align: left; padding: 10px; }
    td { padding: 10px; border-bottom: 1px solid #ddd; }
    .movie { background-color: #fff3e0; }
    .series { background-color: #e3f2fd; }
    .footer { font-size: 12px; color: #666; margin-top: 50px; text-align: center; }
    .count { font-weight: bold; color: #e50914; }
    .source { font-style: italic; color: #666; }
"""
FOOTER = "This is an automated email from Cine Pulse. Please do not reply."


def _cell(value: object) -> str:
    return f"<td>{html.escape(str(value))}</td>"


def _rating(record: ContentRecord) -> str:
    return f"{record.rating:g}/10" if record.rating is not None else "-"


def _table(records: List[ContentRecord], kind: ContentType, with_ratings: bool) -> str:
    headers = ["Title"]
    if kind is ContentType.MOVIE:
        headers.append("Year")
    headers += ["Category", "Extra Info"]
    if with_ratings:
        headers.append("Rating")

    rows = []
    for record in records:
        cells = [_cell(record.title)]
        if kind is ContentType.MOVIE:
            cells.append(_cell(record.year if record.year is not None else "-"))
        cells += [_cell(record.category), _cell(record.extra_info)]
        if with_ratings:
            cells.append(_cell(_rating(record)))
        rows.append(f'<tr class="{kind.value}">{"".join(cells)}</tr>')

    header_row = "".join(f"<th>{h}</th>" for h in headers)
    title = "Movies" if kind is ContentType.MOVIE else "Series"
    return (
        f"<h2>{title} ({len(records)})</h2>\n"
        f"<table>\n<tr>{header_row}</tr>\n" + "\n".join(rows) + "\n</table>"
    )


def render_html(records: Sequence[ContentRecord], sources: Sequence[str], sent_at: datetime) -> str:
    movies = [r for r in records if r.type is ContentType.MOVIE]
    series = [r for r in records if r.type is ContentType.SERIES]
    with_ratings = any(r.rating is not None for r in records)
    sections = []
    if movies:
        sections.append(_table(movies, ContentType.MOVIE, with_ratings))
    if series:
        sections.append(_table(series, ContentType.SERIES, with_ratings))
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>Cine Pulse - New Content Update</title>
<style>{STYLE}</style>
</head>
<body>
<h1>Cine Pulse - Content Update</h1>
<p>The following content was scraped on {format_date(sent_at)} from {len(sources)} source(s).</p>
<p>Total content scraped: <span class="count">{len(records)}</span></p>
{chr(10).join(sections)}
<div class="source"><p>Source(s): {html.escape(", ".join(sources))}</p></div>
<div class="footer"><p>{FOOTER}</p></div>
</body>
</html>"""


def format_date(value: datetime) -> str:
    return value.strftime("%B %d, %Y at %I:%M %p").replace(" 0", " ")


def render_text(records: Sequence[ContentRecord], sources: Sequence[str], sent_at: datetime) -> str:
    movies = sum(1 for r in records if r.type is ContentType.MOVIE)
    series = sum(1 for r in records if r.type is ContentType.SERIES)
    return (
        "Cine Pulse Content Update\n\n"
        f"New content scraped on {format_date(sent_at)} from {len(sources)} source(s).\n"
        f"Total items: {len(records)} ({movies} movies, {series} series)\n\n"
        f"Sources: {', '.join(sources)}\n\n"
        f"{FOOTER}"
    )


def build_subject(records: Sequence[ContentRecord]) -> str:
    movies = sum(1 for r in records if r.type is ContentType.MOVIE)
    series = sum(1 for r in records if r.type is ContentType.SERIES)
    return f"Cine Pulse: {len(records)} New Content Items ({movies} Movies, {series} Series)"


class EmailNotifier(NotificationSink):
    """Send the content digest over SMTP.

    Args:
        settings: SMTP host, port, credentials and recipient.
        smtp_factory: Callable returning an ``smtplib.SMTP``-like object;
            replaced in tests.
        clock: Returns the timestamp shown in the message.
    """

    def __init__(
        self,
        settings: EmailSettings,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        clock: Callable[[], datetime] = datetime.now,
        timeout: float = 30.0,
    ) -> None:
        self.settings = settings
        self.smtp_factory = smtp_factory
        self.clock = clock
        self.timeout = timeout

    def build_message(self, records: Sequence[ContentRecord], sources: Sequence[str]) -> MIMEMultipart:
        sent_at = self.clock()
        msg = MIMEMultipart("alternative")
        msg["Subject"] = build_subject(records)
        msg["From"] = self.settings.sender
        msg["To"] = self.settings.recipient
        msg.attach(MIMEText(render_text(records, sources, sent_at), "plain", "utf-8"))
        msg.attach(MIMEText(render_html(records, sources, sent_at), "html", "utf-8"))
        return msg

    def notify(self, records: Sequence[ContentRecord], sources: Sequence[str]) -> None:
        if not records:
            logger.info("No content to notify about")
            return
        if not self.settings.recipient:
            logger.info("No recipient email configured, skipping notification")
            return

        msg = self.build_message(records, sources)
        logger.debug(
            "Email configuration - SMTP host: %s, port: %d, sender: %s, token: %s",
            self.settings.smtp_host,
            self.settings.smtp_port,
            self.settings.sender,
            mask_secret(self.settings.password),
        )
        try:
            with self.smtp_factory(self.settings.smtp_host, self.settings.smtp_port, timeout=self.timeout) as server:
                server.ehlo()
                server.starttls()
                server.ehlo()
                if self.settings.password:
                    server.login(self.settings.smtp_user, self.settings.password)
                server.sendmail(self.settings.sender, [self.settings.recipient], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise NotifyError(f"failed to send email: {exc}") from exc
        logger.info("Email notification sent to %s with %d content items", self.settings.recipient, len(records))


def build_notifier(settings: EmailSettings) -> Optional[EmailNotifier]:
    """Return an :class:`EmailNotifier`, or ``None`` when email is not configured."""
    if not settings.enabled:
        logger.info("Email notifications disabled: missing configuration")
        return None
    logger.info("Email notifications will be sent to: %s", settings.recipient)
    return EmailNotifier(settings)
