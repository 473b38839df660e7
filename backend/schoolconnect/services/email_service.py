"""
Service d'envoi d'emails SMTP.
Utilisé pour prévenir un parent de la décision prise sur sa demande.
Désactivé par défaut (SMTP_ENABLED).
"""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from schoolconnect.config import settings

logger = logging.getLogger(__name__)

STATUS_LABELS = {"approved": "acceptée", "rejected": "refusée"}


def send_form_decision_email(
    to_email: str,
    parent_name: str,
    student_name: str,
    form_title: str,
    status: str,
    admin_notes: Optional[str] = None,
) -> None:
    """
    Envoie un email HTML annonçant la décision sur une demande.
    Lève une exception en cas d'échec SMTP.
    """
    label = STATUS_LABELS.get(status, status)
    # texte saisi par les utilisateurs, inséré hors attributs
    safe = {
        "parent": html.escape(parent_name, quote=False),
        "student": html.escape(student_name, quote=False),
        "title": html.escape(form_title, quote=False),
        "notes": html.escape(admin_notes, quote=False) if admin_notes else "",
    }

    msg = MIMEMultipart("alternative")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = f"SchoolConnect : votre demande « {form_title} » a été {label}"

    notes_html = (
        f"<p><strong>Commentaire de l'établissement :</strong> {safe['notes']}</p>" if admin_notes else ""
    )
    html_content = f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: auto;">
        <h2 style="color: #1a73e8;">SchoolConnect : suivi de votre demande</h2>
        <p>Bonjour {safe['parent']},</p>
        <p>
          Votre demande <strong>{safe['title']}</strong> concernant <strong>{safe['student']}</strong>
          a été <strong>{label}</strong>.
        </p>
        {notes_html}
        <hr style="border: none; border-top: 1px solid #eee;" />
        <p style="font-size: 12px; color: #888;">
          Ce message est généré automatiquement par SchoolConnect. Ne pas répondre à cet email.
        </p>
      </body>
    </html>
    """
    msg.attach(MIMEText(html_content, "html", "utf-8"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("Email de décision (%s) envoyé à %s", status, to_email)


def notify_form_decision(**kwargs) -> None:
    """Tâche de fond : un échec SMTP est journalisé sans affecter la décision déjà validée."""
    try:
        send_form_decision_email(**kwargs)
    except (smtplib.SMTPException, OSError):
        logger.exception("Échec de l'envoi de l'email de décision à %s", kwargs.get("to_email"))
