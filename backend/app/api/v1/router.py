from fastapi import APIRouter

from app.api.v1.endpoints import (
    analytics,
    auth,
    comments,
    forms,
    google_sheets,
    responses,
    shares,
    slack,
    templates,
    versions,
    webhooks,
)

api_v1_router = APIRouter()

api_v1_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_v1_router.include_router(forms.router, prefix="/forms", tags=["forms"])
api_v1_router.include_router(responses.router, prefix="/forms/{form_id}/responses", tags=["responses"])
api_v1_router.include_router(
    comments.router, prefix="/forms/{form_id}/responses/{response_id}/comments", tags=["comments"]
)
api_v1_router.include_router(comments.comment_router, prefix="/comments", tags=["comments"])
api_v1_router.include_router(analytics.router, prefix="/forms/{form_id}/analytics", tags=["analytics"])
api_v1_router.include_router(shares.router, prefix="/forms/{form_id}/shares", tags=["sharing"])
api_v1_router.include_router(versions.router, prefix="/forms/{form_id}/versions", tags=["versions"])
api_v1_router.include_router(templates.router, prefix="/templates", tags=["templates"])
api_v1_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
api_v1_router.include_router(slack.router, prefix="/slack", tags=["slack"])
api_v1_router.include_router(google_sheets.router, prefix="/google-sheets", tags=["google-sheets"])
