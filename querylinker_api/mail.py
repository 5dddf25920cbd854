from fastapi import APIRouter, Depends

from querylinker_core.config import settings
from querylinker_core.schemas import EmailResultOut, EmailStatusResponse, EmailTestRequest, EmailTestResponse
from querylinker_api.dependencies import get_email_service
from querylinker_services.mail.service import EmailService
from querylinker_services.mail.templates import generate_test_email

router = APIRouter(prefix="/api/email", tags=["email"])


@router.post("/test", response_model=EmailTestResponse)
def send_test_email(payload: EmailTestRequest, email_service: EmailService = Depends(get_email_service)):
    content = generate_test_email(payload.email, email_service.provider)
    result = email_service.send_email(payload.email, "QueryLinker test e-mail", content["html"], content["text"])
    return EmailTestResponse(
        success=result.success,
        message="Test email sent successfully" if result.success else "Failed to send test email",
        result=EmailResultOut(
            email_sent=result.success,
            provider=result.provider,
            message_id=result.message_id,
            delivery_time_ms=result.delivery_time_ms,
            preview_url=result.preview_url,
            error=result.error,
        ),
    )


@router.get("/status", response_model=EmailStatusResponse)
def email_status(email_service: EmailService = Depends(get_email_service)):
    status = email_service.status(settings)
    return EmailStatusResponse(
        success=True,
        provider=status.provider,
        configured=status.configured,
        from_email=status.from_email,
        recommendations=status.recommendations,
    )
