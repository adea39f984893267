"""
Emergency-contact notifications.

When a task is completed, the owning user's emergency contact gets an
email. Sending happens after the HTTP response (as a background task) and
every failure stops here: it is logged, never raised and never retried.
"""
import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from typing import Any, Dict, Optional, Protocol

from pymongo.database import Database

from config import Settings
from database import USERS, to_object_id

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


class SmtpMailer:
    """Blocking SMTP sender authenticated with the configured account."""

    def __init__(self, settings: Settings):
        self._settings = settings

    @property
    def sender(self) -> str:
        return f"LifeTrack <{self._settings.email_user}>"

    def send(self, to: str, subject: str, body: str) -> None:
        s = self._settings
        if not s.email_configured:
            raise RuntimeError("Missing email credentials: set EMAIL_USER and EMAIL_PASS")

        msg = MIMEText(body)
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to

        server = smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=30)
        try:
            if s.smtp_starttls:
                server.starttls()
            server.login(s.email_user, s.email_password)
            server.sendmail(s.email_user, [to], msg.as_string())
        finally:
            server.quit()


def alert_subject(user_name: str) -> str:
    return f"LifeTrack Alert: {user_name} Completed a Task"


def alert_body(user_name: str, task_title: str) -> str:
    return f'Hello, \n\n{user_name} has successfully completed the task: "{task_title}".'


class NotificationDispatcher:
    def __init__(self, db: Database, mailer: Optional[Mailer]):
        self.db = db
        self.mailer = mailer

    async def task_completed(self, task: Dict[str, Any]) -> bool:
        """
        Email the owner's emergency contact about a completed task.

        Returns True when an email went out. Missing user, missing contact,
        unconfigured mail and transport errors all return False.
        """
        # pymongo blocks; keep both the lookup and the send off the event loop
        try:
            user = await asyncio.to_thread(self._owner, task)
        except Exception:
            logger.exception("Could not load owner of task %s", task.get("_id"))
            return False
        if not user or not user.get("emergencyContact"):
            return False
        if self.mailer is None:
            logger.warning("Email not configured; skipping alert for task %s", task.get("_id"))
            return False

        name = user.get("name", "")
        to = user["emergencyContact"]
        try:
            await asyncio.to_thread(
                self.mailer.send, to, alert_subject(name), alert_body(name, task.get("title", ""))
            )
        except Exception:
            logger.exception("Email to %s failed for task %s", to, task.get("_id"))
            return False
        logger.info("Email sent to %s for task %s", to, task.get("_id"))
        return True

    def _owner(self, task: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        user_id = to_object_id(task.get("userId"))
        if user_id is None:
            return None
        return self.db[USERS].find_one({"_id": user_id})
