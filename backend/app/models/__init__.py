from app.models.comment import Comment
from app.models.form import Form
from app.models.form_response import FormResponse
from app.models.form_share import FormShare
from app.models.form_version import FormVersion
from app.models.form_view import FormView
from app.models.google_sheets_integration import GoogleSheetsIntegration
from app.models.slack_integration import SlackIntegration
from app.models.template import Template
from app.models.user import User
from app.models.webhook import Webhook

__all__ = [
    "Comment",
    "Form",
    "FormResponse",
    "FormShare",
    "FormVersion",
    "FormView",
    "GoogleSheetsIntegration",
    "SlackIntegration",
    "Template",
    "User",
    "Webhook",
]
